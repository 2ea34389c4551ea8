"""
Header-row detection.

Responsibilities:
- delimiter sniffing on the header line (quote-aware)
- quote-aware splitting of the header line into column names
- orchestration over a streamed byte source
"""

from __future__ import annotations

import logging
from typing import AsyncIterable, List

from .models import DetectedHeaders
from .rules import CANDIDATE_DELIMITERS, DEFAULT_DELIMITER, DEFAULT_ENCODING, QUOTE
from .stream import read_first_line

logger = logging.getLogger(__name__)


def sniff_delimiter(line: str) -> str:
    """
    Guess the delimiter of ``line`` by counting unquoted candidates.

    A candidate wins only with a strictly higher count than every other
    candidate. Ties and lines without any candidate resolve to comma.
    """
    counts = dict.fromkeys(CANDIDATE_DELIMITERS, 0)
    in_quotes = False

    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == QUOTE:
            if in_quotes and i + 1 < n and line[i + 1] == QUOTE:
                i += 2
                continue
            in_quotes = not in_quotes
        elif not in_quotes and ch in counts:
            counts[ch] += 1
        i += 1

    best = max(counts.values())
    winners = [d for d in CANDIDATE_DELIMITERS if counts[d] == best]
    if best == 0 or len(winners) > 1:
        return DEFAULT_DELIMITER
    return winners[0]


def split_fields(line: str, delimiter: str) -> List[str]:
    """
    Split one CSV line on ``delimiter``.

    Quotes group a field and are dropped; ``""`` inside quotes is a literal
    quote. Fields are whitespace-trimmed. An unterminated quote simply runs
    to the end of the line.
    """
    fields: List[str] = []
    field: List[str] = []
    in_quotes = False

    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if in_quotes:
            if ch == QUOTE:
                if i + 1 < n and line[i + 1] == QUOTE:
                    field.append(QUOTE)
                    i += 2
                    continue
                in_quotes = False
            else:
                field.append(ch)
        elif ch == QUOTE:
            in_quotes = True
        elif ch == delimiter:
            fields.append("".join(field).strip())
            field = []
        else:
            field.append(ch)
        i += 1

    fields.append("".join(field).strip())
    return fields


def has_columns(headers: List[str]) -> bool:
    """False when nothing usable was found, e.g. an empty file yields ``[""]``."""
    return any(headers)


async def extract_headers(
    chunks: AsyncIterable[bytes], encoding: str = DEFAULT_ENCODING
) -> DetectedHeaders:
    line = await read_first_line(chunks, encoding)
    delimiter = sniff_delimiter(line)
    headers = split_fields(line, delimiter)
    logger.debug("header line split on %r into %d columns", delimiter, len(headers))
    return DetectedHeaders(delimiter=delimiter, headers=headers)
