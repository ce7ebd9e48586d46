"""
Core normalization logic.

Responsibilities:
- encoding detection (BOM, strict UTF-8, then charset-normalizer on a sample)
- best-effort decoding with U+FFFD substitution
- optional newline normalization
- UTF-8 re-encoding and reporting
"""

from __future__ import annotations

import base64
import codecs
import hashlib
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from charset_normalizer import from_bytes
from charset_normalizer.md import mess_ratio

from .errors import NormalizationError, UnknownEncodingError
from .models import (
    Detection,
    EncodingReport,
    NewlineReport,
    NormalizationReport,
    NormalizedContent,
    NormalizeResponse,
    ReportItem,
    ReportSummary,
)
from .rules import BOMS, NEWLINE_POLICIES, REPLACEMENT_CHAR, TARGET_ENCODING, UTF8_BOM
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

# chaos ratios closer than this count as a tie
_CHAOS_TIE = 1e-6


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def canonical_encoding(name: str) -> str:
    """Map any codec alias ("latin-1", "UTF8", "cp_1252") to Python's canonical name."""
    try:
        return codecs.lookup(name.strip()).name
    except LookupError:
        raise UnknownEncodingError(name) from None


def _detect_bom(raw: bytes) -> Optional[str]:
    for bom, encoding in BOMS:
        if raw.startswith(bom):
            return encoding
    return None


def is_utf8(raw: bytes) -> bool:
    try:
        raw.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def _decodes(raw: bytes, encoding: str) -> bool:
    try:
        raw.decode(encoding)
    except (UnicodeDecodeError, LookupError):
        return False
    return True


def _aliases(match) -> List[str]:
    names = []
    for name in [match.encoding, *match.could_be_from_charset]:
        try:
            names.append(codecs.lookup(name).name)
        except LookupError:
            continue
    return names


def _preferred_over(best, payload: bytes, preferred: Sequence[str], threshold: float) -> Optional[str]:
    """Return the first preferred encoding that reads ``payload`` as cleanly as ``best`` does."""
    aliases = _aliases(best)
    for encoding in preferred:
        if encoding in aliases:
            return encoding
        try:
            text = payload.decode(encoding)
        except UnicodeDecodeError:
            continue
        if mess_ratio(text, threshold) <= best.chaos + _CHAOS_TIE:
            return encoding
    return None


def _pick(
    payload: bytes,
    raw: bytes,
    threshold: float,
    preferred: Sequence[str],
) -> Tuple[Optional[Detection], Optional[Detection]]:
    """
    Run the detector on ``payload`` and return ``(verified, unverified)``.

    ``verified`` is the first candidate that decodes all of ``raw`` strictly.
    ``unverified`` is the top candidate, kept for when none of them does.
    """
    matches = from_bytes(payload, threshold=threshold)
    best = matches.best()
    if best is None:
        return None, None

    candidates: List[Tuple[str, float]] = []
    chosen = _preferred_over(best, payload, preferred, threshold)
    if chosen is not None:
        candidates.append((chosen, round(float(best.chaos), 4)))
    for match in matches:
        candidates.append((canonical_encoding(match.encoding), round(float(match.chaos), 4)))

    for encoding, chaos in candidates:
        if _decodes(raw, encoding):
            return Detection(encoding=encoding, method="detector", chaos=chaos), None

    encoding, chaos = candidates[0]
    return None, Detection(encoding=encoding, method="detector", chaos=chaos)


def detect_encoding(
    raw: bytes,
    *,
    sample_size: Optional[int] = None,
    threshold: Optional[float] = None,
    default: Optional[str] = None,
    preferred: Optional[Sequence[str]] = None,
) -> Detection:
    """
    Estimate the encoding of ``raw``.

    Rules, in order:
    - empty input is inconclusive -> default
    - a BOM decides outright
    - input that is valid UTF-8 as a whole is UTF-8
    - otherwise charset-normalizer looks at the first ``sample_size`` bytes
      (the whole payload when that prefix is plain ASCII); among equally clean
      candidates the ``preferred`` encodings win
    - a candidate is accepted only if it decodes the whole payload strictly;
      when none from the sample does, the detector runs again on everything
    - no usable match -> default
    """
    settings = get_settings()
    sample_size = sample_size or settings.sample_size
    threshold = settings.detection_threshold if threshold is None else threshold
    default = canonical_encoding(default or settings.default_encoding)
    preferred = [canonical_encoding(e) for e in (settings.preferences if preferred is None else preferred)]

    if not raw:
        return Detection(encoding=default, method="default", fallback=True)

    bom = _detect_bom(raw)
    if bom is not None:
        return Detection(encoding=bom, method="bom")

    if is_utf8(raw):
        return Detection(encoding="utf-8", method="utf-8")

    sample = raw[:sample_size]
    if sample.isascii() and len(raw) > len(sample):
        sample = raw

    verified, unverified = _pick(sample, raw, threshold, preferred)
    if verified is None and len(sample) < len(raw):
        # The cut may split a multibyte character; let the detector sample the whole payload itself.
        logger.debug("No clean match in the first %d bytes, retrying on all %d", len(sample), len(raw))
        verified, retried = _pick(raw, raw, threshold, preferred)
        unverified = retried or unverified

    if verified is not None:
        return verified
    if unverified is not None:
        logger.debug("No candidate decodes all %d bytes cleanly, keeping %s", len(raw), unverified.encoding)
        return unverified

    logger.debug("Detection inconclusive for %d bytes, using %s", len(raw), default)
    return Detection(encoding=default, method="default", fallback=True)


def decode_bytes(raw: bytes, encoding: str, errors: str = "replace") -> Tuple[str, int]:
    """
    Decode ``raw`` as ``encoding``.

    Returns the text and the number of U+FFFD placeholders that decoding
    inserted. Placeholders already present in the source are not counted.
    """
    try:
        return raw.decode(encoding), 0
    except UnicodeDecodeError:
        if errors == "strict":
            raise

    text = raw.decode(encoding, errors="replace")
    already_there = raw.decode(encoding, errors="ignore").count(REPLACEMENT_CHAR)
    return text, text.count(REPLACEMENT_CHAR) - already_there


def _count_newlines(text: str) -> Dict[str, int]:
    crlf = text.count("\r\n")
    return {
        "crlf": crlf,
        "cr": text.count("\r") - crlf,
        "lf": text.count("\n") - crlf,
    }


def normalize_newlines(text: str, policy: str) -> Tuple[str, Dict[str, int], Dict[str, int]]:
    if policy not in NEWLINE_POLICIES:
        raise NormalizationError(f"Unknown newline policy: {policy!r}")

    before = _count_newlines(text)
    if policy != "keep":
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        if policy == "crlf":
            text = text.replace("\n", "\r\n")
    return text, before, _count_newlines(text)


@dataclass
class NormalizeOutcome:
    data: bytes
    text: str
    report: NormalizationReport

    @property
    def changed(self) -> bool:
        return self.report.summary.changed


def normalize_bytes(
    raw: bytes,
    *,
    source_encoding: Optional[str] = None,
    newline: Optional[str] = None,
    bom: Optional[bool] = None,
    settings: Optional[Settings] = None,
) -> NormalizeOutcome:
    """
    Normalize input bytes to UTF-8.

    - Detect the source encoding unless ``source_encoding`` is given.
    - Decode everything; undecodable sequences become U+FFFD and are reported.
    - Apply the newline policy.
    - Encode as UTF-8, with a BOM only when asked.
    """
    settings = settings or get_settings()
    newline = newline or settings.newline
    bom = settings.output_bom if bom is None else bom

    warnings: List[ReportItem] = []

    if source_encoding:
        detection = Detection(encoding=canonical_encoding(source_encoding), method="explicit")
    else:
        detection = detect_encoding(
            raw,
            sample_size=settings.sample_size,
            threshold=settings.detection_threshold,
            default=settings.default_encoding,
            preferred=settings.preferences,
        )

    if detection.fallback and raw:
        warnings.append(ReportItem(
            issue="detection_inconclusive",
            value=None,
            action=f"decoded_as_{detection.encoding}",
        ))

    decode_used = detection.encoding
    # If input is UTF-8 and begins with a BOM, decode with utf-8-sig so the BOM doesn't end up in the text.
    if decode_used == "utf-8" and raw.startswith(UTF8_BOM):
        decode_used = "utf-8-sig"

    try:
        text, replacements = decode_bytes(raw, decode_used, settings.errors)
    except UnicodeDecodeError as exc:
        raise NormalizationError(f"Cannot decode input as {decode_used}: {exc}") from exc

    if replacements:
        logger.warning("Replaced %d undecodable sequence(s) while decoding as %s", replacements, decode_used)
        warnings.append(ReportItem(
            issue="undecodable_bytes_replaced",
            value=str(replacements),
            action="replaced_with_U+FFFD",
        ))

    text, nl_before, nl_after = normalize_newlines(text, newline)

    normalized = text.encode(TARGET_ENCODING)
    if bom:
        normalized = UTF8_BOM + normalized

    changed = normalized != raw

    report = NormalizationReport(
        summary=ReportSummary(
            changed=changed,
            warnings=len(warnings),
        ),
        encoding=EncodingReport(
            detected=None if detection.fallback else detection.encoding,
            method=detection.method,
            chaos=detection.chaos,
            decode_used=decode_used,
            decode_fallback=detection.fallback,
            replacements=replacements,
            output=TARGET_ENCODING,
            bom=bom,
        ),
        newlines=NewlineReport(
            policy=newline,
            before=nl_before,
            after=nl_after,
            changed=nl_before != nl_after,
        ),
        warnings=warnings,
    )
    return NormalizeOutcome(data=normalized, text=text, report=report)


def build_response(outcome: NormalizeOutcome) -> NormalizeResponse:
    """Wrap an outcome in the API's response envelope."""
    return NormalizeResponse(
        normalized=NormalizedContent(
            sha256=_sha256_hex(outcome.data),
            encoding="utf-8-sig" if outcome.report.encoding.bom else TARGET_ENCODING,
            content_b64=base64.b64encode(outcome.data).decode("ascii"),
        ),
        report=outcome.report,
    )
