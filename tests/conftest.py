"""Shared test fixtures."""

import shutil
import tempfile

import pytest

from TexStitch.config import StitchConfig

from _fragments import build_split_texture


@pytest.fixture
def tmp_dir():
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def default_config():
    return StitchConfig()


@pytest.fixture
def split_texture(tmp_dir):
    """Factory writing a split texture into `tmp_dir`."""
    def _build(base="tex", **kwargs):
        return build_split_texture(tmp_dir, base, **kwargs)
    return _build
