"""
Tests for Config and the default-instance helpers.
"""
import os

import pytest

from pkstream.config import Config, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_config():
    reset_config()
    yield
    reset_config()


def test_defaults(monkeypatch):
    for name in ('INFLATE_CHUNK_SIZE', 'VERIFY_CRC', 'REPLACE_EXISTING', 'LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)
    cfg = Config()
    assert cfg.inflate_chunk_size == 65536
    assert cfg.verify_crc is False
    assert cfg.replace_existing is False
    assert cfg.log_level == 'INFO'


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('INFLATE_CHUNK_SIZE', '4096')
    monkeypatch.setenv('VERIFY_CRC', 'true')
    monkeypatch.setenv('REPLACE_EXISTING', 'yes')
    monkeypatch.setenv('LOG_LEVEL', 'debug')

    cfg = Config()

    assert cfg.inflate_chunk_size == 4096
    assert cfg.verify_crc is True
    assert cfg.replace_existing is True
    assert cfg.log_level == 'DEBUG'


def test_env_file_is_loaded(monkeypatch, tmp_path):
    monkeypatch.delenv('DOWNLOAD_TIMEOUT', raising=False)
    env_file = tmp_path / '.env'
    env_file.write_text('DOWNLOAD_TIMEOUT=5\n')

    try:
        cfg = Config(str(env_file))
    finally:
        os.environ.pop('DOWNLOAD_TIMEOUT', None)

    assert cfg.download_timeout == 5


def test_rejects_non_positive_chunk(monkeypatch):
    monkeypatch.setenv('INFLATE_CHUNK_SIZE', '0')
    with pytest.raises(ValueError):
        Config()


def test_get_config_returns_same_instance():
    assert get_config() is get_config()


def test_reset_config_creates_new_instance():
    first = get_config()
    reset_config()
    assert get_config() is not first
