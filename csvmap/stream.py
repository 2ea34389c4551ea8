"""
Incremental first-line reader.

Only the bytes up to the first line feed are decoded; the rest of the
source is left unread (as far as the transport allows).
"""

from __future__ import annotations

import codecs
import logging
from typing import Any, AsyncIterable, AsyncIterator

from .rules import BOM, DEFAULT_ENCODING

logger = logging.getLogger(__name__)


async def iter_upload(upload: Any, chunk_size: int) -> AsyncIterator[bytes]:
    """
    Yield chunks from an object with async ``seek``/``read`` (e.g. UploadFile).

    The upload is rewound first and left open, so it can be read again later.
    """
    await upload.seek(0)
    while True:
        chunk = await upload.read(chunk_size)
        if not chunk:
            break
        yield chunk


async def iter_bytes(data: bytes, chunk_size: int) -> AsyncIterator[bytes]:
    for start in range(0, len(data), chunk_size):
        yield data[start:start + chunk_size]


async def _release(chunks: Any) -> None:
    """Best-effort close of a chunk source. Never raises."""
    aclose = getattr(chunks, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as exc:
        logger.debug("ignoring error while closing chunk source: %s", exc)


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


async def read_first_line(
    chunks: AsyncIterable[bytes], encoding: str = DEFAULT_ENCODING
) -> str:
    """
    Decode ``chunks`` until the first line feed and return that line.

    Rules:
    - Undecodable bytes become U+FFFD instead of raising.
    - One leading BOM is stripped.
    - One trailing CR is stripped (CRLF files).
    - The source is closed on every exit path once the line is known.
    """
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    parts: list[str] = []
    started = False

    source = chunks.__aiter__()
    try:
        async for chunk in source:
            text = decoder.decode(chunk)
            if not text:
                continue

            if not started:
                started = True
                if text.startswith(BOM):
                    text = text[1:]

            # only the new chunk is scanned, never the whole buffer
            newline = text.find("\n")
            if newline != -1:
                parts.append(text[:newline])
                return _strip_cr("".join(parts))

            parts.append(text)

        parts.append(decoder.decode(b"", final=True))
        return _strip_cr("".join(parts))
    finally:
        await _release(source)
