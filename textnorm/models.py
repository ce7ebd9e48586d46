from __future__ import annotations

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class Detection(BaseModel):
    encoding: str
    method: str
    chaos: Optional[float] = Field(default=None, examples=[0.0])
    fallback: bool = False


class EncodingReport(BaseModel):
    detected: Optional[str] = None
    method: str
    chaos: Optional[float] = None
    decode_used: str
    decode_fallback: bool = False
    replacements: int = 0
    output: str = "utf-8"
    bom: bool = False


class NewlineReport(BaseModel):
    policy: str = "keep"
    before: Dict[str, int] = Field(default_factory=dict)
    after: Dict[str, int] = Field(default_factory=dict)
    changed: bool = False


class ReportItem(BaseModel):
    issue: str
    value: Optional[str] = None
    action: str


class ReportSummary(BaseModel):
    changed: bool = False
    warnings: int = 0


class NormalizationReport(BaseModel):
    summary: ReportSummary
    encoding: EncodingReport
    newlines: NewlineReport
    warnings: List[ReportItem] = Field(default_factory=list)


class NormalizedContent(BaseModel):
    sha256: str
    encoding: str = Field(default="utf-8")
    content_b64: str


class NormalizeResponse(BaseModel):
    normalized: NormalizedContent
    report: NormalizationReport


class HealthResponse(BaseModel):
    ok: bool = True


class FileResult(BaseModel):
    path: str
    changed: bool = False
    written: bool = False
    backup: Optional[str] = None
    report: Optional[NormalizationReport] = None
    error: Optional[str] = None
