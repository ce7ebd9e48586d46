"""
Runtime settings.

Every value can be overridden with a TEXTNORM_* environment variable or a
.env file in the working directory.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .rules import DEFAULT_ENCODING


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TEXTNORM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === DETECTION ===
    sample_size: int = Field(default=64 * 1024, gt=0)  # bytes handed to the detector
    detection_threshold: float = Field(default=0.2, ge=0.0, le=1.0)  # max chaos accepted
    default_encoding: str = DEFAULT_ENCODING
    # tried first when the detector finds several equally clean single-byte candidates
    preferred_encodings: str = "cp1252,latin-1"

    # === DECODING / OUTPUT ===
    errors: Literal["replace", "strict"] = "replace"
    newline: Literal["keep", "lf", "crlf"] = "keep"
    output_bom: bool = False

    # === FILES ===
    backup: bool = False
    backup_suffix: str = ".bak"
    allowed_extensions: str = ".txt,.md,.markdown,.csv,.tsv,.json,.html,.xml,.rst,.log"
    exclude_dirs: str = ".git,.hg,.svn,__pycache__,node_modules,.venv,venv"

    # === LOGGING ===
    log_level: str = "INFO"
    log_format: str = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"

    @property
    def extensions(self) -> List[str]:
        return [_dotted(e) for e in _split(self.allowed_extensions)]

    @property
    def preferences(self) -> List[str]:
        return _split(self.preferred_encodings)

    @property
    def excluded_dirs(self) -> List[str]:
        return _split(self.exclude_dirs)


def _split(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _dotted(ext: str) -> str:
    ext = ext.lower()
    return ext if ext.startswith(".") else "." + ext


@lru_cache
def get_settings() -> Settings:
    return Settings()
