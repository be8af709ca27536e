"""ADLEDGER — Field Normalizer.

Pure helpers that turn raw, locale-ambiguous cell values into typed values.
Every parser returns None when the input cannot be resolved; callers decide
explicitly whether that means "reject the row" or "default to zero".
"""

import math
import re
import unicodedata
from datetime import date, datetime
from typing import Any, Dict, Iterable, Mapping, Optional

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_CURRENCY_CODES = re.compile(r"(BRL|USD|EUR|GBP)", re.IGNORECASE)
_CURRENCY_SYMBOLS = re.compile(r"R\$|[$€£]")
_NUMERIC_CHARS = re.compile(r"[^0-9,.\-]")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DAY_FIRST_DATE = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})$")


def normalize_key(name: Any) -> str:
    """Fold a header name for alias matching.

    "Impressões" -> "impressoes", "Campaign ID" -> "campaign id",
    "campaign_id" -> "campaign id", "Conv. value" -> "conv value".
    """
    text = unicodedata.normalize("NFD", str(name if name is not None else ""))
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return _NON_ALNUM.sub(" ", text.lower()).strip()


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class RowFields:
    """A raw row indexed by normalized header name.

    The first header that folds to a given key wins, so a row carrying both
    "Campaign" and "campaign" resolves to whichever came first.
    """

    def __init__(self, row: Mapping[str, Any]):
        self.row = row
        self._index: Dict[str, Any] = {}
        for key, value in row.items():
            folded = normalize_key(key)
            if folded and folded not in self._index:
                self._index[folded] = value

    def resolve(self, candidates: Iterable[str]) -> Optional[str]:
        """Return the first candidate's non-empty trimmed value, else None."""
        for candidate in candidates:
            value = _clean_text(self._index.get(normalize_key(candidate)))
            if value is not None:
                return value
        return None

    def resolve_value(self, candidates: Iterable[str]) -> Any:
        """Like resolve(), but JSON numbers come back as numbers.

        str(5e-05) is "5e-05", which the locale number parser cannot read.
        """
        for candidate in candidates:
            raw = self._index.get(normalize_key(candidate))
            if isinstance(raw, (int, float)) and not isinstance(raw, bool):
                return raw
            value = _clean_text(raw)
            if value is not None:
                return value
        return None


def resolve_field(row: Mapping[str, Any], candidates: Iterable[str]) -> Optional[str]:
    """Pick the first candidate header present in `row` with a non-empty value."""
    return RowFields(row).resolve(candidates)


def parse_number(value: Any) -> Optional[float]:
    """Parse a number written in either decimal convention.

    >>> parse_number("1.234,56"), parse_number("1,234.56")
    (1234.56, 1234.56)
    >>> parse_number("R$ 1.000,00"), parse_number("45,5%")
    (1000.0, 45.5)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    s = str(value).replace("\u00a0", " ").replace("%", "")
    s = re.sub(r"\s+", "", s)
    s = _CURRENCY_CODES.sub("", s)
    s = _CURRENCY_SYMBOLS.sub("", s)
    s = _NUMERIC_CHARS.sub("", s)
    if not s:
        return None

    has_comma = "," in s
    has_dot = "." in s
    if has_comma and has_dot:
        # The rightmost separator is the decimal point
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif has_comma:
        s = s.replace(",", ".")

    try:
        number = float(s)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_date(value: Any) -> Optional[str]:
    """Normalize a date to YYYY-MM-DD.

    Accepts ISO dates and day-first D/M/YYYY or D-M-YYYY. Anything else,
    including impossible calendar dates, yields None.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    s = _clean_text(value)
    if s is None:
        return None

    match = _ISO_DATE.match(s)
    if match:
        year, month, day = match.groups()
    else:
        match = _DAY_FIRST_DATE.match(s)
        if not match:
            return None
        day, month, year = match.groups()

    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def round_count(value: float) -> int:
    """Round half-up to the nearest integer (impressions, clicks)."""
    return int(math.floor(value + 0.5))
