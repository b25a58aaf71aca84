from datetime import datetime
from pathlib import Path

from conduit_bridge.adapters.storage import MediaStorage, image_filename


def _fixed_clock():
    return datetime(2024, 3, 9, 7, 5, 4, 321987)


def test_image_filename_uses_millisecond_timestamp():
    assert image_filename(_fixed_clock(), "jpg") == "IMG_20240309_070504321.jpg"


def test_new_image_file_prefers_media_subdirectory(tmp_path: Path):
    storage = MediaStorage(tmp_path / "files", tmp_path / "media", clock=_fixed_clock)

    target = storage.new_image_file("jpg")

    assert target == (tmp_path / "media" / "captures" / "IMG_20240309_070504321.jpg")
    assert target.is_absolute()
    assert target.parent.is_dir()


def test_unavailable_media_directory_falls_back_to_files_dir(tmp_path: Path, caplog):
    blocker = tmp_path / "media"
    blocker.write_text("not a directory", encoding="utf-8")
    storage = MediaStorage(tmp_path / "files", blocker, clock=_fixed_clock)

    with caplog.at_level("WARNING"):
        target = storage.new_image_file("jpg")

    assert target.parent == tmp_path / "files"
    assert (tmp_path / "files").is_dir()
    assert "unavailable" in caplog.text


def test_no_media_directory_uses_files_dir(tmp_path: Path):
    storage = MediaStorage(tmp_path / "files", None, clock=_fixed_clock)

    assert storage.resolve_directory() == tmp_path / "files"


def test_same_millisecond_gets_unique_name(tmp_path: Path):
    storage = MediaStorage(tmp_path / "files", tmp_path / "media", clock=_fixed_clock)

    first = storage.new_image_file("jpg")
    first.write_bytes(b"x")
    second = storage.new_image_file("jpg")
    second.write_bytes(b"y")
    third = storage.new_image_file("jpg")

    assert second.name == "IMG_20240309_070504321_1.jpg"
    assert third.name == "IMG_20240309_070504321_2.jpg"
