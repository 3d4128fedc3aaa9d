from __future__ import annotations

from pathlib import Path

import pytest

from favro_exporter.engine import AttachmentDownloader
from favro_exporter.engine.attachments import safe_file_name


def test_empty_attachment_list_is_a_no_op(destination: Path, fake_files) -> None:
    downloader = AttachmentDownloader(destination, client=fake_files.client())
    report = downloader.download_all("card-1", [])
    assert report.attempted == 0
    assert not (destination / "attachments-card-1").exists()
    assert fake_files.requests == []


def test_failed_download_does_not_stop_siblings(destination: Path, fake_files) -> None:
    fake_files.files["https://files.test/b.png"] = b"PNGDATA"
    downloader = AttachmentDownloader(destination, client=fake_files.client())

    report = downloader.download_all(
        "card-1",
        [
            {"name": "a.pdf", "fileURL": "https://files.test/a.pdf"},
            {"name": "b.png", "fileURL": "https://files.test/b.png"},
        ],
    )

    directory = destination / "attachments-card-1"
    assert fake_files.requests == ["https://files.test/a.pdf", "https://files.test/b.png"]
    assert report.attempted == 2
    assert report.downloaded == [directory / "b.png"]
    assert report.failed == ["https://files.test/a.pdf"]
    assert (directory / "b.png").read_bytes() == b"PNGDATA"
    assert not (directory / "a.pdf").exists()


def test_directory_failure_skips_all_downloads(tmp_path: Path, fake_files) -> None:
    blocker = tmp_path / "export"
    blocker.write_text("not a directory", encoding="utf-8")
    downloader = AttachmentDownloader(blocker, client=fake_files.client())

    report = downloader.download_all("card-1", [{"name": "a.txt", "fileURL": "https://files.test/a.txt"}])

    assert report.directory is None
    assert report.attempted == 0
    assert fake_files.requests == []


def test_attachment_without_url_is_reported(destination: Path, fake_files) -> None:
    downloader = AttachmentDownloader(destination, client=fake_files.client())
    report = downloader.download_all("card-2", [{"name": "ghost.txt"}])
    assert report.failed == ["ghost.txt"]
    assert fake_files.requests == []


@pytest.mark.parametrize(
    ("name", "url", "expected"),
    [
        ("report.pdf", "https://files.test/x", "report.pdf"),
        ("../../etc/passwd", "https://files.test/x", "passwd"),
        ("dir\\nested.txt", "https://files.test/x", "nested.txt"),
        ("", "https://files.test/path/image%20one.png", "image one.png"),
        (None, "https://files.test/", "attachment"),
    ],
)
def test_safe_file_name(name, url, expected) -> None:
    assert safe_file_name(name, url) == expected


def test_unrepresentable_file_name_fails_only_that_attachment(destination: Path, fake_files) -> None:
    fake_files.files["https://files.test/bad.txt"] = b"BAD"
    fake_files.files["https://files.test/b.png"] = b"PNGDATA"
    downloader = AttachmentDownloader(destination, client=fake_files.client())

    report = downloader.download_all(
        "card-1",
        [
            {"name": "bad\x00name.txt", "fileURL": "https://files.test/bad.txt"},
            {"name": "b.png", "fileURL": "https://files.test/b.png"},
        ],
    )

    directory = destination / "attachments-card-1"
    assert report.failed == ["https://files.test/bad.txt"]
    assert report.downloaded == [directory / "b.png"]
    assert [path.name for path in directory.iterdir()] == ["b.png"]


def test_unrepresentable_card_id_skips_its_attachments(destination: Path, fake_files) -> None:
    downloader = AttachmentDownloader(destination, client=fake_files.client())

    report = downloader.download_all("c\x001", [{"name": "a.txt", "fileURL": "https://files.test/a.txt"}])

    assert report.directory is None
    assert report.attempted == 0
    assert fake_files.requests == []
