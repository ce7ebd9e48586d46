from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import FastAPI, UploadFile, File, HTTPException, Query

from .errors import NormalizationError
from .logging_setup import setup_logging
from .models import NormalizeResponse, HealthResponse
from .normalize import build_response, normalize_bytes
from .settings import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    yield


app = FastAPI(
    title="textnorm",
    description="Best-effort text encoding normalization to UTF-8",
    version="0.1.0",
    lifespan=lifespan,
)

@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}

@app.post("/normalize", response_model=NormalizeResponse)
async def normalize_text(
    file: UploadFile = File(...),
    source_encoding: Optional[str] = Query(default=None),
    newline: Optional[Literal["keep", "lf", "crlf"]] = Query(default=None),
    bom: Optional[bool] = Query(default=None),
):
    settings = get_settings()
    filename = (file.filename or "").lower()
    if not any(filename.endswith(ext) for ext in settings.extensions):
        raise HTTPException(
            status_code=422,
            detail=f"Unsupported file type; allowed: {', '.join(settings.extensions)}",
        )

    raw = await file.read()
    try:
        outcome = normalize_bytes(
            raw,
            source_encoding=source_encoding,
            newline=newline,
            bom=bom,
            settings=settings,
        )
    except NormalizationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return build_response(outcome)
