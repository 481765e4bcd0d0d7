"""
Tests for the version module.
"""
import importlib
import re
from importlib import metadata as importlib_metadata
from unittest.mock import mock_open, patch

import flowdeploy.version as vmod
from flowdeploy import __version__


def _not_installed(name):
    raise importlib_metadata.PackageNotFoundError(name)


def test_version_format():
    """Test that the version string follows semantic versioning"""
    assert re.match(r"^\d+\.\d+\.\d+", __version__)


@patch("importlib.metadata.version")
def test_version_from_metadata(mock_metadata_version):
    mock_metadata_version.return_value = "2.3.4"
    importlib.reload(vmod)
    assert vmod.__version__ == "2.3.4"


@patch("importlib.metadata.version", side_effect=_not_installed)
@patch("pathlib.Path.open", new_callable=mock_open, read_data=b'[project]\nversion = "1.2.3"\n')
def test_version_from_pyproject(mock_open_file, mock_metadata_version):
    importlib.reload(vmod)
    assert vmod.__version__ == "1.2.3"


def test_version_key_error(monkeypatch):
    monkeypatch.setattr(importlib_metadata, "version", _not_installed)
    monkeypatch.setattr("pathlib.Path.open", mock_open(read_data=b'[project]\nname = "flowdeploy"\n'))
    importlib.reload(vmod)
    assert vmod.__version__ == "0.1.0"


def test_version_file_not_found(monkeypatch):
    def missing(*args, **kwargs):
        raise FileNotFoundError()

    monkeypatch.setattr(importlib_metadata, "version", _not_installed)
    monkeypatch.setattr("pathlib.Path.open", missing)
    importlib.reload(vmod)
    assert vmod.__version__ == "0.1.0"
