"""Configuration management for csv-header-mapper."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel

from .rules import DEFAULT_ENCODING

load_dotenv()


class Settings(BaseModel):
    """Application settings."""

    # Remote API receiving the file plus its normalized mapping
    submission_url: str = os.getenv("SUBMISSION_URL", "http://localhost:3002/participants")
    submission_timeout: float = float(os.getenv("SUBMISSION_TIMEOUT", "30.0"))

    # Header extraction
    header_chunk_size: int = int(os.getenv("HEADER_CHUNK_SIZE", "65536"))
    csv_encoding: str = os.getenv("CSV_ENCODING", DEFAULT_ENCODING)

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
