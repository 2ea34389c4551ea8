import logging

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from pydantic import ValidationError

from .config import settings
from .headers import extract_headers, has_columns
from .mapping import can_save, save, state_from_mapping, validation_messages
from .models import DetectedHeaders, HeadersResponse, HealthResponse, ImportResponse, parse_mapping
from .stream import iter_upload
from .submit import ImportSubmitter

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="csv-header-mapper",
    description="Streaming CSV header detection and column mapping for participant imports",
    version="0.1.0",
)


def get_submitter() -> ImportSubmitter:
    return ImportSubmitter()


def _require_csv(file: UploadFile) -> None:
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=422, detail="Only CSV files are supported")


async def _detect(file: UploadFile) -> DetectedHeaders:
    chunks = iter_upload(file, settings.header_chunk_size)
    return await extract_headers(chunks, settings.csv_encoding)


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/headers", response_model=HeadersResponse)
async def detect_headers(file: UploadFile = File(...)):
    _require_csv(file)

    detected = await _detect(file)
    return HeadersResponse(
        filename=file.filename,
        delimiter=detected.delimiter,
        headers=detected.headers,
        columns_detected=has_columns(detected.headers),
    )


@app.post("/imports", response_model=ImportResponse)
async def create_import(
    file: UploadFile = File(...),
    mapping: str = Form(...),
    submitter: ImportSubmitter = Depends(get_submitter),
):
    _require_csv(file)

    try:
        requested = parse_mapping(mapping)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"errors": [err["msg"] for err in e.errors()]})

    detected = await _detect(file)
    state = state_from_mapping(file.filename, detected.headers, requested)
    if not can_save(state):
        raise HTTPException(status_code=422, detail={"errors": validation_messages(state)})

    outcome = await save(state, file, submitter.submit)
    if not outcome.ok:
        raise HTTPException(status_code=502, detail=outcome.message)

    logger.info("accepted import of %s as %s mapping", file.filename, outcome.mapping.type)
    return ImportResponse(filename=file.filename, mapping=outcome.mapping, result=outcome.result)
