"""Shared fixtures for photo import tests."""

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml


@pytest.fixture
def card_root(tmp_path):
    """A fake SD card mounted under a Volumes directory, with an empty DCIM."""
    root = tmp_path / 'Volumes' / 'NIKON'
    (root / 'DCIM').mkdir(parents=True)
    return root


@pytest.fixture
def library_root(tmp_path):
    root = tmp_path / 'Pictures'
    root.mkdir()
    return root


@pytest.fixture
def write_config(tmp_path):
    """Factory fixture: write a YAML config file and return its path."""

    def _write(overrides=None, filename='config.yml'):
        config_data = {
            'photo_import': {
                'library_root': str(tmp_path / 'Pictures'),
                'volumes': {
                    'mount_prefixes': [str(tmp_path / 'Volumes')],
                },
                'process': {'exit_delay_seconds': 0},
            },
        }
        for key_path, value in (overrides or {}).items():
            target = config_data
            keys = key_path.split('.')
            for key in keys[:-1]:
                target = target.setdefault(key, {})
            target[keys[-1]] = value

        config_path = tmp_path / filename
        with open(config_path, 'w') as f:
            yaml.dump(config_data, f)
        return config_path

    return _write


@pytest.fixture
def sample_config(write_config):
    from photo_importer.config import Config
    return Config(str(write_config()))


@pytest.fixture
def create_image():
    """Factory fixture: create a file with given content and creation day."""

    def _create(path, content=b'jpeg-data', created=datetime(2023, 5, 1, 12, 0, tzinfo=timezone.utc)):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        # Without a birth time the older of mtime/ctime is the creation time
        timestamp = created.timestamp()
        os.utime(path, (timestamp, timestamp))
        return path

    return _create
