"""ADLEDGER — Tabular Decoder.

Decodes an uploaded CSV byte blob of unknown encoding and delimiter into
headers + rows. Google Ads UI exports arrive as UTF-8 with or without BOM,
or as UTF-16 with tab delimiters; pt-BR locales use semicolons.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

UTF8_BOM = b"\xef\xbb\xbf"
UTF16_LE_BOM = b"\xff\xfe"
UTF16_BE_BOM = b"\xfe\xff"

# Checked in this order; the first BOM that matches decides the codec
_BOMS: Tuple[Tuple[bytes, str, str], ...] = (
    (UTF8_BOM, "utf-8", "utf8-bom"),
    (UTF16_LE_BOM, "utf-16-le", "utf16le-bom"),
    (UTF16_BE_BOM, "utf-16-be", "utf16be-bom"),
)

# Tie-break priority is the tuple order
DELIMITER_CANDIDATES: Tuple[str, ...] = (",", ";", "\t")

# Unicode line separators (U+2028, \x1e, ...) are field content
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class DecodeError(ValueError):
    """Raised when a CSV blob is empty or cannot be decoded."""


@dataclass
class DecodedTable:
    encoding: str
    delimiter: str
    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)

    @property
    def delimiter_label(self) -> str:
        """Delimiter as stored on the import record (TAB spelled out)."""
        return "TAB" if self.delimiter == "\t" else self.delimiter


def detect_encoding(data: bytes) -> Tuple[str, str]:
    """Return (text, encoding_label) for a byte blob, honouring any BOM."""
    codec, label, payload = "utf-8", "utf8", data
    for bom, bom_codec, bom_label in _BOMS:
        if data.startswith(bom):
            codec, label, payload = bom_codec, bom_label, data[len(bom):]
            break
    try:
        return payload.decode(codec), label
    except UnicodeDecodeError as e:
        raise DecodeError(f"Could not decode input as {label}: {e}") from e


def _scan(text: str) -> Iterator[Tuple[str, bool]]:
    """Yield (char, quoted) pairs.

    Every double quote toggles quoting and is dropped, wherever it sits in a
    field; a doubled quote inside quotes yields one literal quote.
    """
    in_quotes = False
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            if in_quotes and text[i + 1 : i + 2] == '"':
                yield '"', True
                i += 2
                continue
            in_quotes = not in_quotes
        else:
            yield ch, in_quotes
        i += 1


def count_unquoted(line: str, delimiter: str) -> int:
    """Count delimiter occurrences that sit outside quoted fields."""
    return sum(1 for ch, quoted in _scan(line) if ch == delimiter and not quoted)


def detect_delimiter(text: str) -> str:
    """Pick the candidate that occurs most often in the header line."""
    header_line = next((ln for ln in _LINE_BREAK.split(text) if ln.strip()), "")
    best, best_count = DELIMITER_CANDIDATES[0], -1
    for candidate in DELIMITER_CANDIDATES:
        count = count_unquoted(header_line, candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def parse_csv(text: str, delimiter: str) -> List[List[str]]:
    """Split decoded text into rows, dropping rows whose fields are all blank.

    Quoted fields may hold delimiters, line breaks and doubled quotes. Only
    CR, LF and CRLF end a row.
    """
    rows: List[List[str]] = []
    row: List[str] = []
    chars: List[str] = []
    after_cr = False
    for ch, quoted in _scan(text):
        if not quoted and ch in "\r\n":
            if not (ch == "\n" and after_cr):
                row.append("".join(chars))
                rows.append(row)
                row, chars = [], []
            after_cr = ch == "\r"
            continue
        after_cr = False
        if not quoted and ch == delimiter:
            row.append("".join(chars))
            chars = []
        else:
            chars.append(ch)
    if row or chars:
        row.append("".join(chars))
        rows.append(row)
    return [r for r in rows if any(value.strip() for value in r)]


def decode_table(data: bytes) -> DecodedTable:
    """Decode a CSV blob into encoding, delimiter, headers and data rows."""
    if not data:
        raise DecodeError("Empty input")

    text, encoding = detect_encoding(data)
    delimiter = detect_delimiter(text)
    rows = parse_csv(text, delimiter)
    if not rows:
        raise DecodeError("CSV is empty or invalid")

    headers = [h.strip() for h in rows[0]]
    if not any(headers):
        raise DecodeError("No header row found (first line is blank?)")

    return DecodedTable(
        encoding=encoding, delimiter=delimiter, headers=headers, rows=rows[1:]
    )


def row_to_record(headers: List[str], fields: List[str]) -> Dict[str, str]:
    """Zip one data row onto the header row; blank headers become col_<n>."""
    record: Dict[str, str] = {}
    for i, header in enumerate(headers):
        key = header or f"col_{i + 1}"
        record[key] = fields[i] if i < len(fields) else ""
    return record
