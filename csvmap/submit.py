"""HTTP client handing accepted imports to the remote API."""

import logging
from typing import Any, Optional

import httpx

from .config import settings
from .errors import SubmissionError
from .models import NormalizedMapping

logger = logging.getLogger(__name__)


class ImportSubmitter:
    """Posts the original CSV plus its normalized mapping."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.submission_url
        self.timeout = timeout if timeout is not None else settings.submission_timeout
        self.transport = transport

    async def submit(self, upload: Any, mapping: NormalizedMapping) -> Any:
        # rewound, then streamed from the underlying file by httpx
        await upload.seek(0)
        files = {"file": (upload.filename, upload.file, upload.content_type or "text/csv")}
        data = {"mapping": mapping.model_dump_json(by_alias=True)}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, files=files, data=data)
        except httpx.HTTPError as e:
            raise SubmissionError(f"Submission failed: {e}") from e

        if response.is_error:
            raise SubmissionError(
                f"Submission failed: {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug("submitted %s to %s", upload.filename, self.url)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            # accepted; a non-JSON reply is passed through as text
            return response.text
