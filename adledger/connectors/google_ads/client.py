"""ADLEDGER — Google Ads REST Client.

Handles OAuth token refresh, retry logic and GAQL search pagination.
Customer handles are memoized in an explicit CustomerCache owned by the
caller, so two clients never share hidden state.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from adledger.config import settings
from adledger.core.logging import get_logger

logger = get_logger("google_ads.client")

MAX_RETRIES = 3
RETRY_BASE_DELAY = 2  # seconds
TOKEN_EXPIRY_MARGIN = 60  # refresh this many seconds before expiry


class GoogleAdsAPIError(Exception):
    """Raised when the Google Ads API (or its OAuth endpoint) returns an error."""

    def __init__(self, message: str, status_code: int = 0, error_code: str = ""):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


def micros_to_units(micros: Any) -> float:
    """Google Ads reports money in micros (1/1,000,000 of the currency unit)."""
    try:
        return float(micros or 0) / 1_000_000
    except (TypeError, ValueError):
        return 0.0


def clean_customer_id(customer_id: str) -> str:
    return str(customer_id).replace("-", "").strip()


@dataclass(frozen=True)
class CustomerHandle:
    """Connection parameters for one Google Ads account."""

    customer_id: str
    refresh_token: str
    login_customer_id: Optional[str] = None


class CustomerCache:
    """Memoizes CustomerHandles per (customer id, refresh token)."""

    def __init__(self) -> None:
        self._handles: Dict[str, CustomerHandle] = {}

    @staticmethod
    def key(customer_id: str, refresh_token: str) -> str:
        return f"{clean_customer_id(customer_id)}-{refresh_token}"

    def get(self, key: str) -> Optional[CustomerHandle]:
        return self._handles.get(key)

    def put(self, key: str, handle: CustomerHandle) -> None:
        self._handles[key] = handle

    def evict(self, key: str) -> None:
        self._handles.pop(key, None)

    def clear(self) -> None:
        self._handles.clear()

    def __len__(self) -> int:
        return len(self._handles)


class GoogleAdsClient:
    """Async HTTP client for the Google Ads REST API."""

    def __init__(
        self,
        cache: CustomerCache | None = None,
        developer_token: str | None = None,
        refresh_token: str | None = None,
        login_customer_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cache = cache if cache is not None else CustomerCache()
        self.developer_token = developer_token or settings.google_ads_developer_token
        self.refresh_token = refresh_token or settings.google_ads_refresh_token
        self.login_customer_id = login_customer_id or settings.google_ads_login_customer_id
        self.api_base = f"{settings.google_ads_base_url}/{settings.google_ads_api_version}"
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._tokens: Dict[str, Tuple[str, float]] = {}  # refresh token -> (access, expiry)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=30.0, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Customer handles ──

    def customer(
        self,
        customer_id: str,
        refresh_token: str | None = None,
        login_customer_id: str | None = None,
    ) -> CustomerHandle:
        """Return the cached handle for an account, creating it on first use."""
        token = refresh_token or self.refresh_token
        key = CustomerCache.key(customer_id, token)
        handle = self.cache.get(key)
        if handle is None:
            login = login_customer_id or self.login_customer_id
            handle = CustomerHandle(
                customer_id=clean_customer_id(customer_id),
                refresh_token=token,
                login_customer_id=clean_customer_id(login) if login else None,
            )
            self.cache.put(key, handle)
        return handle

    # ── OAuth ──

    async def _get_access_token(self, refresh_token: str) -> str:
        cached = self._tokens.get(refresh_token)
        if cached and time.monotonic() < cached[1]:
            return cached[0]

        client = await self._get_client()
        try:
            resp = await client.post(
                settings.google_oauth_token_url,
                data={
                    "client_id": settings.google_ads_client_id,
                    "client_secret": settings.google_ads_client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GoogleAdsAPIError(
                f"OAuth token refresh failed: {e.response.text}",
                e.response.status_code,
                "OAUTH_REFRESH_FAILED",
            ) from e
        except httpx.RequestError as e:
            raise GoogleAdsAPIError(f"OAuth token refresh failed: {e}") from e

        body = resp.json()
        access_token = body["access_token"]
        expires_in = float(body.get("expires_in", 3600))
        self._tokens[refresh_token] = (
            access_token,
            time.monotonic() + expires_in - TOKEN_EXPIRY_MARGIN,
        )
        return access_token

    async def _headers(self, handle: CustomerHandle) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {await self._get_access_token(handle.refresh_token)}",
            "developer-token": self.developer_token,
        }
        if handle.login_customer_id:
            headers["login-customer-id"] = handle.login_customer_id
        return headers

    # ── Core Request Method ──

    async def _request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        json: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """Make a request with retry + rate-limit handling."""
        client = await self._get_client()

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                resp = await client.request(method, url, headers=headers, json=json)

                if resp.status_code == 429:
                    wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                    logger.warning(
                        f"Rate limited (429). Retrying in {wait}s (attempt {attempt}/{MAX_RETRIES})"
                    )
                    await asyncio.sleep(wait)
                    continue

                resp.raise_for_status()
                return resp.json()

            except httpx.HTTPStatusError as e:
                body = (
                    e.response.json()
                    if e.response.headers.get("content-type", "").startswith(
                        "application/json"
                    )
                    else {}
                )
                error = body.get("error", {}) if isinstance(body, dict) else {}
                error_msg = error.get("message", str(e))
                error_code = error.get("status", "")

                if attempt < MAX_RETRIES and e.response.status_code >= 500:
                    wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                    logger.warning(
                        f"Server error {e.response.status_code}. Retrying in {wait}s"
                    )
                    await asyncio.sleep(wait)
                    continue

                raise GoogleAdsAPIError(
                    error_msg, e.response.status_code, error_code
                ) from e

            except httpx.RequestError as e:
                if attempt < MAX_RETRIES:
                    wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                    logger.warning(f"Request error: {e}. Retrying in {wait}s")
                    await asyncio.sleep(wait)
                    continue
                raise GoogleAdsAPIError(
                    f"Connection failed after {MAX_RETRIES} retries: {e}"
                ) from e

        raise GoogleAdsAPIError("Max retries exhausted", 429, "RESOURCE_EXHAUSTED")

    # ── GAQL ──

    async def search(
        self, handle: CustomerHandle, query: str, max_pages: int = 50
    ) -> List[Dict[str, Any]]:
        """Run a GAQL query and return every result row across pages."""
        url = f"{self.api_base}/customers/{handle.customer_id}/googleAds:search"
        headers = await self._headers(handle)
        results: List[Dict[str, Any]] = []
        payload: Dict[str, Any] = {"query": " ".join(query.split())}

        for _ in range(max_pages):
            body = await self._request("POST", url, headers, json=payload)
            results.extend(body.get("results", []))
            page_token = body.get("nextPageToken")
            if not page_token:
                break
            payload = {**payload, "pageToken": page_token}

        logger.info(f"Fetched {len(results)} rows for customer {handle.customer_id}")
        return results
