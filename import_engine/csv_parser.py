"""
import_engine.csv_parser - Low-level delimited-text reading and cleaning.

Responsibilities:
  • BOM removal (UTF-8 / UTF-8-SIG)
  • Header whitespace stripping
  • Skipping blank lines
  • Returning plain dicts, keyed "Column N" when there is no header row
"""

from __future__ import annotations

import csv
import io

from import_engine.errors import DecodeError


def decode_rows(
    raw: str | bytes,
    delimiter: str = ",",
    has_headers: bool = True,
    encoding: str = "utf-8",
) -> list[dict[str, str]]:
    """
    Parse raw text into ordered column → value dicts.
    Raises DecodeError if the text cannot be parsed.
    """
    text = _decode(raw, encoding)
    if not text or not text.strip():
        raise DecodeError("file is empty")

    try:
        reader = csv.reader(io.StringIO(text), delimiter=delimiter, strict=True)
        records = [r for r in reader if any(c.strip() for c in r)]
    except (csv.Error, TypeError) as exc:
        raise DecodeError(str(exc)) from exc

    if not records:
        raise DecodeError("file has no rows")

    if has_headers:
        headers = [h.strip() for h in records[0]]
        body = records[1:]
    else:
        width = max(len(r) for r in records)
        headers = [f"Column {i + 1}" for i in range(width)]
        body = records

    rows = []
    for rec in body:
        rows.append({h: (rec[i] if i < len(rec) else "") for i, h in enumerate(headers)})
    return rows


def _decode(raw: str | bytes, encoding: str) -> str:
    if isinstance(raw, bytes):
        # Strip UTF-8 BOM
        if raw.startswith(b"\xef\xbb\xbf"):
            raw = raw[3:]
        try:
            return raw.decode(encoding)
        except (UnicodeDecodeError, LookupError) as exc:
            raise DecodeError(f"cannot decode file as {encoding}: {exc}") from exc
    if raw.startswith("\ufeff"):
        return raw[1:]
    return raw
