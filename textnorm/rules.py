"""
Deterministic normalization rules.

This file exists to make the output contract explicit and enforceable.
"""

TARGET_ENCODING = "utf-8"  # no BOM unless asked for
DEFAULT_ENCODING = "utf-8"
REPLACEMENT_CHAR = "�"

# Order matters: the UTF-32 LE BOM starts with the UTF-16 LE one.
BOMS = (
    (b"\xff\xfe\x00\x00", "utf-32"),
    (b"\x00\x00\xfe\xff", "utf-32"),
    (b"\xef\xbb\xbf", "utf-8-sig"),
    (b"\xff\xfe", "utf-16"),
    (b"\xfe\xff", "utf-16"),
)
UTF8_BOM = b"\xef\xbb\xbf"

NEWLINE_POLICIES = ("keep", "lf", "crlf")
