import pytest

from textnorm.loader import NormalizedTextLoader
from textnorm.settings import Settings


def test_loads_legacy_text_as_document(tmp_path):
    text = "Le café de Montréal a été fermé pendant l'été. Le réseau était lent.\n"
    path = tmp_path / "legacy.txt"
    path.write_bytes(text.encode("latin-1"))

    docs = NormalizedTextLoader(path, settings=Settings()).load()

    assert len(docs) == 1
    assert docs[0].page_content == text
    assert docs[0].metadata["source"] == str(path)
    assert docs[0].metadata["detection_method"] == "detector"
    assert docs[0].metadata["replacements"] == 0
    # loading never rewrites the file
    assert path.read_bytes() == text.encode("latin-1")


def test_undecodable_bytes_do_not_fail(tmp_path):
    path = tmp_path / "broken.txt"
    path.write_bytes(b"good \xff bad")

    docs = NormalizedTextLoader(path, source_encoding="utf-8", settings=Settings()).load()

    assert docs[0].page_content == "good � bad"
    assert docs[0].metadata["encoding"] == "utf-8"
    assert docs[0].metadata["replacements"] == 1


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        NormalizedTextLoader(tmp_path / "missing.txt").load()
