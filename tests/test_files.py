import os
from pathlib import Path

import pytest

from conduit_bridge.adapters.files import (
    FileQueryService,
    InvalidPathError,
    ListFilesError,
)


def test_list_files_describes_entries(tmp_path: Path):
    (tmp_path / "b.txt").write_bytes(b"12345")
    (tmp_path / "a_dir").mkdir()
    os.utime(tmp_path / "b.txt", (1_700_000_000, 1_700_000_000))

    listing = FileQueryService(tmp_path / "unused").list_files(str(tmp_path))

    assert listing["path"] == str(tmp_path.absolute())
    assert [entry["name"] for entry in listing["files"]] == ["a_dir", "b.txt"]
    directory, regular = listing["files"]
    assert directory["isDirectory"] is True
    assert directory["size"] == (tmp_path / "a_dir").stat().st_size
    assert regular == {
        "name": "b.txt",
        "path": str((tmp_path / "b.txt").absolute()),
        "isDirectory": False,
        "size": 5,
        "lastModified": 1_700_000_000_000,
    }


def test_default_directory_is_created(tmp_path: Path):
    service = FileQueryService(tmp_path / "private")

    listing = service.list_files()

    assert listing == {"files": [], "path": str((tmp_path / "private").absolute())}
    assert (tmp_path / "private").is_dir()


@pytest.mark.parametrize("name", ["missing", "plain.txt"])
def test_invalid_path_is_rejected(tmp_path: Path, name: str):
    (tmp_path / "plain.txt").write_text("x", encoding="utf-8")

    with pytest.raises(InvalidPathError, match="not a valid directory"):
        FileQueryService(tmp_path).list_files(str(tmp_path / name))


def test_dangling_symlink_is_listed(tmp_path: Path):
    (tmp_path / "link").symlink_to(tmp_path / "nowhere")

    listing = FileQueryService(tmp_path).list_files(str(tmp_path))

    assert [entry["name"] for entry in listing["files"]] == ["link"]
    assert listing["files"][0]["isDirectory"] is False


def test_unreadable_directory_is_list_failure(tmp_path: Path, monkeypatch):
    def broken_iterdir(self):
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "iterdir", broken_iterdir)

    with pytest.raises(ListFilesError) as excinfo:
        FileQueryService(tmp_path).list_files(str(tmp_path))

    assert excinfo.value.details == "denied"
