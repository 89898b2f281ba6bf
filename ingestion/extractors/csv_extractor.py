"""
CSV source reader over HTTP
"""

import io
import logging
from typing import Dict, List

import httpx
import pandas as pd

from ingestion.http import fetch

logger = logging.getLogger(__name__)


def _normalized_lines(text: str) -> List[str]:
    """Unify line endings and drop whitespace-only lines"""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return [line for line in lines if line.strip()]


def _split_loose(line: str) -> List[str]:
    """
    Split a line the tokenizer rejects (an unclosed quote).

    Quotes toggle comma splitting and ``""`` is a literal quote; an open
    quote simply runs to the end of the line.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"' and line[i + 1:i + 2] == '"':
            current.append('"')
            i += 2
            continue
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1
    fields.append("".join(current))
    return fields


def _split_line(line: str) -> List[str]:
    """Tokenize one line on its own, so quote state never spans lines"""
    try:
        frame = pd.read_csv(
            io.StringIO(line),
            header=None,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
        )
    except pd.errors.EmptyDataError:
        return [""]
    except pd.errors.ParserError:
        logger.debug(f"Unbalanced quotes, splitting loosely: {line[:80]!r}")
        return _split_loose(line)

    if frame.empty:
        return [""]
    return [str(value) for value in frame.iloc[0]]


def parse_csv(text: str) -> List[Dict[str, str]]:
    """
    Parse CSV text into one dict per data row, keyed by header name.

    - The first non-blank line is the header
    - Missing trailing fields become "", extra fields are ignored
    - Every header name and value is stripped of surrounding whitespace
    - Quoted fields may contain commas and doubled quotes
    - Each line is its own record; a stray quote never swallows later lines
    - Fewer than two non-blank lines gives an empty list
    """
    lines = _normalized_lines(text)
    if len(lines) < 2:
        return []

    header = [name.strip() for name in _split_line(lines[0])]

    records = []
    for line in lines[1:]:
        values = _split_line(line)
        records.append({
            name: (values[i] if i < len(values) else "").strip()
            for i, name in enumerate(header)
        })
    return records


class CSVSource:
    """
    Read CSV exports published at a URL.

    Raises FetchError on a non-2xx response and TransportError when the
    host cannot be reached; malformed rows never raise.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def read(self, url: str) -> List[Dict[str, str]]:
        logger.info(f"Reading CSV from {url}")

        response = await fetch(self.client, url)
        records = parse_csv(response.text)

        logger.info(f"Read {len(records)} records from CSV")
        return records
