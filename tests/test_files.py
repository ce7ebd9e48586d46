from pathlib import Path

import pytest

from textnorm.errors import BackupExistsError, NormalizationError
from textnorm.files import iter_text_files, normalize_file, normalize_tree
from textnorm.settings import Settings

FRENCH = "Le café de Montréal a été fermé pendant l'été. Le réseau était lent.\n"


@pytest.fixture
def settings():
    return Settings(backup=False, backup_suffix=".bak", newline="keep", output_bom=False)


def test_rewrites_legacy_file_in_place(tmp_path, settings):
    path = tmp_path / "notes.txt"
    path.write_bytes(FRENCH.encode("latin-1"))

    result = normalize_file(path, settings=settings)

    assert result.changed and result.written
    assert result.backup is None
    assert path.read_bytes().decode("utf-8") == FRENCH
    assert [p.name for p in tmp_path.iterdir()] == ["notes.txt"]


def test_backup_keeps_original_bytes(tmp_path, settings):
    path = tmp_path / "notes.txt"
    original = FRENCH.encode("latin-1")
    path.write_bytes(original)

    result = normalize_file(path, backup=True, settings=settings)

    backup = tmp_path / "notes.txt.bak"
    assert result.backup == str(backup)
    assert backup.read_bytes() == original


def test_refuses_to_clobber_backup(tmp_path, settings):
    path = tmp_path / "notes.txt"
    path.write_bytes(FRENCH.encode("latin-1"))
    (tmp_path / "notes.txt.bak").write_bytes(b"older")

    with pytest.raises(BackupExistsError):
        normalize_file(path, backup=True, settings=settings)

    assert path.read_bytes() == FRENCH.encode("latin-1")


def test_utf8_file_is_not_touched(tmp_path, settings):
    path = tmp_path / "ok.md"
    path.write_bytes("déjà\n".encode("utf-8"))
    mtime = path.stat().st_mtime_ns

    result = normalize_file(path, backup=True, settings=settings)

    assert not result.changed and not result.written
    assert path.stat().st_mtime_ns == mtime
    assert not (tmp_path / "ok.md.bak").exists()


def test_dry_run_does_not_write(tmp_path, settings):
    path = tmp_path / "notes.txt"
    original = FRENCH.encode("latin-1")
    path.write_bytes(original)

    result = normalize_file(path, dry_run=True, settings=settings)

    assert result.changed and not result.written
    assert path.read_bytes() == original


def test_missing_and_directory_paths(tmp_path, settings):
    with pytest.raises(FileNotFoundError):
        normalize_file(tmp_path / "nope.txt", settings=settings)
    with pytest.raises(NormalizationError):
        normalize_file(tmp_path, settings=settings)


def _make_tree(root):
    (root / "a.txt").write_bytes(FRENCH.encode("latin-1"))
    (root / "b.md").write_bytes(b"already fine\n")
    (root / "c.bin").write_bytes(b"\x00\x01\x02")
    (root / ".git").mkdir()
    (root / ".git" / "d.txt").write_bytes(b"\xff")
    (root / "sub").mkdir()
    (root / "sub" / "e.txt").write_bytes(b"nested\n")


def test_iter_text_files_filters(tmp_path):
    _make_tree(tmp_path)

    found = iter_text_files(tmp_path, [".txt", ".md"], [".git"])

    assert [p.relative_to(tmp_path).as_posix() for p in found] == ["a.txt", "b.md", "sub/e.txt"]


def test_normalize_tree(tmp_path):
    _make_tree(tmp_path)
    settings = Settings(allowed_extensions=".txt,.md", exclude_dirs=".git")

    results = normalize_tree(tmp_path, settings=settings)

    names = sorted(Path(r.path).relative_to(tmp_path).as_posix() for r in results)
    assert names == ["a.txt", "b.md", "sub/e.txt"]
    changed = [r for r in results if r.changed]
    assert len(changed) == 1
    assert (tmp_path / "a.txt").read_bytes().decode("utf-8") == FRENCH
    assert (tmp_path / ".git" / "d.txt").read_bytes() == b"\xff"


def test_normalize_tree_records_failures(tmp_path):
    _make_tree(tmp_path)
    settings = Settings(allowed_extensions=".txt,.md", exclude_dirs=".git")

    results = normalize_tree(tmp_path, source_encoding="bogus-codec", settings=settings)

    assert len(results) == 3
    assert all(r.error and "bogus-codec" in r.error for r in results)
