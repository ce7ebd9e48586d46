"""LangChain document loader that decodes files the same way ``normalize_file`` does, without writing."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Optional, Union

from langchain_core.document_loaders import BaseLoader
from langchain_core.documents import Document

from .normalize import normalize_bytes
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


class NormalizedTextLoader(BaseLoader):
    """Load a text file of unknown encoding as a single ``Document``.

    Unlike ``langchain_community``'s ``TextLoader`` this never fails on
    undecodable bytes: they come through as U+FFFD and are counted in the
    document metadata.
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        source_encoding: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self.file_path = Path(file_path)
        self.source_encoding = source_encoding
        self.settings = settings or get_settings()

    def lazy_load(self) -> Iterator[Document]:
        if not self.file_path.exists():
            raise FileNotFoundError(f"Text file not found: {self.file_path}")

        outcome = normalize_bytes(
            self.file_path.read_bytes(),
            source_encoding=self.source_encoding,
            bom=False,
            settings=self.settings,
        )
        enc = outcome.report.encoding
        logger.debug("Loaded %s as %s", self.file_path, enc.decode_used)

        yield Document(
            page_content=outcome.text,
            metadata={
                "source": str(self.file_path),
                "encoding": enc.decode_used,
                "detection_method": enc.method,
                "replacements": enc.replacements,
            },
        )
