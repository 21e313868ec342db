"""
Tests for the Orchestrator import flow.

Downloads are served from memory by monkeypatching requests.get, so no
test touches the network.
"""
import pytest
import tempfile
import shutil
from pathlib import Path

import requests

from pkstream.base import ExtractionStatus, NotAnArchiveError
from pkstream.config import Config
from pkstream.orchestrator import Orchestrator

from archive_builder import CENTRAL_DIRECTORY, stored_entry, streaming_deflated_entry


@pytest.fixture
def temp_dir():
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def config():
    cfg = Config()
    cfg.replace_existing = False
    cfg.verify_crc = False
    return cfg


ARCHIVE = (
    stored_entry("skin/info.json", b'{"name": "classic"}')
    + streaming_deflated_entry("skin/layout.txt", b"portrait landscape " * 30)
    + CENTRAL_DIRECTORY
)


class _FakeResponse:
    def __init__(self, body: bytes, status: int = 200, with_length: bool = True):
        self.body = body
        self.status_code = status
        self.headers = {'content-length': str(len(body))} if with_length else {}

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i:i + chunk_size]


# ------------------------------------------------------------ local files

def test_install_file(config, temp_dir):
    archive = temp_dir / "classic.zip"
    archive.write_bytes(ARCHIVE)
    dest = temp_dir / "skins" / "classic"

    result = Orchestrator(config=config).install_file(archive, dest)

    assert result.status == ExtractionStatus.COMPLETE
    assert (dest / "skin" / "info.json").read_bytes() == b'{"name": "classic"}'
    assert (dest / "skin" / "layout.txt").read_bytes() == b"portrait landscape " * 30


def test_install_file_keeps_existing_by_default(config, temp_dir):
    archive = temp_dir / "classic.zip"
    archive.write_bytes(ARCHIVE)
    dest = temp_dir / "dest"
    dest.mkdir()
    (dest / "stale.txt").write_text("old")

    Orchestrator(config=config).install_file(archive, dest)

    assert (dest / "stale.txt").exists()


def test_install_file_replace_removes_existing(config, temp_dir):
    archive = temp_dir / "classic.zip"
    archive.write_bytes(ARCHIVE)
    dest = temp_dir / "dest"
    dest.mkdir()
    (dest / "stale.txt").write_text("old")

    result = Orchestrator(config=config).install_file(archive, dest, replace=True)

    assert result.ok
    assert not (dest / "stale.txt").exists()
    assert (dest / "skin" / "info.json").exists()


def test_install_file_missing_archive(config, temp_dir):
    with pytest.raises(FileNotFoundError):
        Orchestrator(config=config).install_file(temp_dir / "nope.zip", temp_dir / "dest")


def test_install_file_not_a_zip(config, temp_dir):
    archive = temp_dir / "fake.zip"
    archive.write_bytes(b"<html>not found</html>")

    result = Orchestrator(config=config).install_file(archive, temp_dir / "dest")

    assert result.status == ExtractionStatus.FAILED
    assert result.count == 0


# ------------------------------------------------------------ URLs

def test_install_url_downloads_and_extracts(config, temp_dir, monkeypatch):
    calls = []

    def fake_get(url, stream=False, timeout=None):
        calls.append((url, stream, timeout))
        return _FakeResponse(ARCHIVE)

    monkeypatch.setattr(requests, "get", fake_get)
    dest = temp_dir / "dest"

    result = Orchestrator(config=config).install_url("https://example.com/skins/classic.zip?dl=1", dest)

    assert result.ok
    assert result.count == 2
    assert calls == [("https://example.com/skins/classic.zip?dl=1", True, config.download_timeout)]
    assert (dest / "skin" / "layout.txt").exists()


def test_install_url_http_error_propagates(config, temp_dir, monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, stream=False, timeout=None: _FakeResponse(b"", 404))

    with pytest.raises(requests.exceptions.HTTPError):
        Orchestrator(config=config).install_url("https://example.com/missing.zip", temp_dir / "dest")

    assert not (temp_dir / "dest").exists()


def test_install_url_not_a_zip_keeps_destination(config, temp_dir, monkeypatch):
    """A rejected download never reaches the replace step."""
    monkeypatch.setattr(requests, "get",
                        lambda url, stream=False, timeout=None: _FakeResponse(b"<html>login</html>"))
    dest = temp_dir / "dest"
    dest.mkdir()
    (dest / "current.txt").write_text("keep me")

    with pytest.raises(NotAnArchiveError):
        Orchestrator(config=config).install_url("https://example.com/classic.zip", dest, replace=True)

    assert (dest / "current.txt").read_text() == "keep me"
