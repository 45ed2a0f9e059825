"""Tests for fallback font download."""

import pytest
import requests

from fontsplit.core.errors import DownloadError
from fontsplit.operations import download
from fontsplit.operations.download import (
    FALLBACK_FONTS,
    DownloadItem,
    download_fallback_fonts,
    download_file,
)


class FakeResponse:
    def __init__(self, content=b"", status=200):
        self.content = content
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Error")


def test_download_file_writes_content(tmp_path, monkeypatch):
    monkeypatch.setattr(download.requests, "get", lambda url, timeout: FakeResponse(b"font"))
    item = DownloadItem("https://example.com/a.ttf", "a.ttf", "A")

    assert download_file(item, tmp_path)
    assert (tmp_path / "a.ttf").read_bytes() == b"font"


def test_download_file_reports_http_error(tmp_path, monkeypatch):
    monkeypatch.setattr(download.requests, "get", lambda url, timeout: FakeResponse(status=404))
    item = DownloadItem("https://example.com/a.ttf", "a.ttf", "A")

    assert not download_file(item, tmp_path)
    assert not (tmp_path / "a.ttf").exists()


def test_download_fallback_fonts_raises_on_failure(tmp_path, monkeypatch):
    def get(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(download.requests, "get", get)
    with pytest.raises(DownloadError):
        download_fallback_fonts(tmp_path)


def test_download_fallback_fonts_force(tmp_path, monkeypatch):
    fetched = []

    def get(url, timeout):
        fetched.append(url)
        return FakeResponse(b"font")

    monkeypatch.setattr(download.requests, "get", get)
    for path in download.fallback_font_paths(tmp_path):
        path.write_bytes(b"old")

    paths = download_fallback_fonts(tmp_path, force=True)

    assert len(fetched) == len(FALLBACK_FONTS)
    assert all(path.read_bytes() == b"font" for path in paths)
