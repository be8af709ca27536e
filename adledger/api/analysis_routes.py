"""ADLEDGER — Keyword Analysis Routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from adledger.analyzer.keyword_engine import analyze_keywords
from adledger.api.deps import require_client_access
from adledger.database import get_session
from adledger.ingest.storage import SQLModelStore
from adledger.models.analysis_models import KeywordAnalysis, KeywordPolicy
from adledger.models.canonical_models import GoogleAdsKeyword

router = APIRouter(prefix="/analysis", tags=["Analysis"])


@router.get("/keywords", response_model=KeywordAnalysis)
def keyword_analysis(
    client_id: str = Depends(require_client_access),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Wasteful keywords and growth opportunities for one client.

    Thresholds come from the KEYWORD_* settings.
    """
    keywords = SQLModelStore(session).list_records(GoogleAdsKeyword, client_id, start, end)
    return analyze_keywords(
        keywords, client_id, policy=KeywordPolicy.from_settings(), start=start, end=end
    )
