"""Normalizing files on disk: backups, atomic replacement and directory walks."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from .errors import BackupExistsError, NormalizationError
from .models import FileResult
from .normalize import normalize_bytes
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def backup_path_for(path: Path, suffix: str) -> Path:
    return path.with_name(path.name + suffix)


def _atomic_write(path: Path, data: bytes) -> None:
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def normalize_file(
    path: PathLike,
    *,
    source_encoding: Optional[str] = None,
    backup: Optional[bool] = None,
    newline: Optional[str] = None,
    bom: Optional[bool] = None,
    dry_run: bool = False,
    settings: Optional[Settings] = None,
) -> FileResult:
    """
    Rewrite ``path`` as UTF-8 in place.

    Nothing is written when the file is already in its normalized form. With
    ``backup`` the original bytes are first copied next to the file.
    """
    settings = settings or get_settings()
    backup = settings.backup if backup is None else backup
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if not path.is_file():
        raise NormalizationError(f"Not a regular file: {path}")

    raw = path.read_bytes()
    outcome = normalize_bytes(
        raw,
        source_encoding=source_encoding,
        newline=newline,
        bom=bom,
        settings=settings,
    )
    result = FileResult(path=str(path), changed=outcome.changed, report=outcome.report)

    if not outcome.changed:
        logger.debug("%s: already normalized", path)
        return result

    enc = outcome.report.encoding
    if dry_run:
        logger.info("%s: would convert %s -> utf-8 (dry run)", path, enc.decode_used)
        return result

    if backup:
        target = backup_path_for(path, settings.backup_suffix)
        if target.exists():
            raise BackupExistsError(target)
        shutil.copy2(path, target)
        result.backup = str(target)
        logger.info("%s: original saved to %s", path, target)

    _atomic_write(path, outcome.data)
    result.written = True
    logger.info(
        "%s: converted %s -> utf-8 (%d replacement(s))",
        path, enc.decode_used, enc.replacements,
    )
    return result


def iter_text_files(
    root: PathLike,
    extensions: Iterable[str] = (),
    exclude_dirs: Iterable[str] = (),
) -> Iterator[Path]:
    """Yield files under ``root`` whose suffix is allowed, skipping excluded directories."""
    root = Path(root)
    allowed = {ext.lower() for ext in extensions}
    excluded = set(exclude_dirs)

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        for filename in sorted(filenames):
            if allowed and Path(filename).suffix.lower() not in allowed:
                continue
            yield Path(dirpath) / filename


def normalize_tree(
    root: PathLike,
    *,
    source_encoding: Optional[str] = None,
    backup: Optional[bool] = None,
    newline: Optional[str] = None,
    bom: Optional[bool] = None,
    dry_run: bool = False,
    settings: Optional[Settings] = None,
) -> List[FileResult]:
    """Normalize every matching file under ``root``. One bad file does not stop the walk."""
    settings = settings or get_settings()
    results: List[FileResult] = []

    for path in iter_text_files(root, settings.extensions, settings.excluded_dirs):
        if path.name.endswith(settings.backup_suffix):
            continue
        try:
            results.append(normalize_file(
                path,
                source_encoding=source_encoding,
                backup=backup,
                newline=newline,
                bom=bom,
                dry_run=dry_run,
                settings=settings,
            ))
        except (NormalizationError, OSError) as exc:
            logger.error("%s: %s", path, exc)
            results.append(FileResult(path=str(path), error=str(exc)))

    return results
