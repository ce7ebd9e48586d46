from __future__ import annotations


class NormalizationError(Exception):
    """Base class for everything textnorm raises on purpose."""


class UnknownEncodingError(NormalizationError):
    def __init__(self, encoding: str):
        super().__init__(f"Unknown encoding: {encoding!r}")
        self.encoding = encoding


class BackupExistsError(NormalizationError):
    def __init__(self, path):
        super().__init__(f"Refusing to overwrite existing backup: {path}")
        self.path = path
