"""
Tests for LocalFileSystem.
"""
import pytest
import tempfile
import shutil
from pathlib import Path

from pkstream.storage.local_filesystem import LocalFileSystem


@pytest.fixture
def temp_dir():
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def fs():
    return LocalFileSystem()


def test_create_directory_with_intermediates(temp_dir, fs):
    target = temp_dir / "a" / "b" / "c"
    assert fs.create_directory(target, create_intermediates=True) is True
    assert target.is_dir()


def test_create_directory_existing_is_ok(temp_dir, fs):
    assert fs.create_directory(temp_dir) is True


def test_create_directory_without_intermediates_fails(temp_dir, fs):
    assert fs.create_directory(temp_dir / "missing" / "child", create_intermediates=False) is False


def test_create_directory_over_file_fails(temp_dir, fs):
    (temp_dir / "file").write_bytes(b"x")
    assert fs.create_directory(temp_dir / "file") is False


def test_write_file_replaces_content(temp_dir, fs):
    target = temp_dir / "out.bin"
    target.write_bytes(b"old content that is longer")
    assert fs.write_file(target, b"new") is True
    assert target.read_bytes() == b"new"


def test_write_file_missing_parent_fails(temp_dir, fs):
    assert fs.write_file(temp_dir / "nope" / "out.bin", b"x") is False
