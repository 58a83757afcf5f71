# WORKFLOW: Tests for archive download.
# requests.get is replaced with a stub; no network access.

from datetime import datetime, timezone

import pytest
import requests

from etl import fetch
from etl.errors import FetchError
from etl.fetch import fetch_archive, parse_http_date

URL = "https://example.test/rvu24a.zip"


class StubResponse:
    def __init__(self, content=b"PK\x05\x06", status_code=200, headers=None):
        self.content = content
        self.status_code = status_code
        self.headers = headers if headers is not None else {
            "Last-Modified": "Mon, 15 Jan 2024 08:30:00 GMT",
            "Date": "Thu, 01 Feb 2024 12:00:00 GMT",
        }

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


@pytest.fixture
def stub_get(monkeypatch):
    calls = []

    def install(response=None, error=None):
        def fake_get(url, timeout=None):
            calls.append((url, timeout))
            if error is not None:
                raise error
            return response or StubResponse()
        monkeypatch.setattr(fetch.requests, "get", fake_get)
        return calls

    return install


def test_fetch_returns_content_and_timestamps(stub_get):
    calls = stub_get()

    result = fetch_archive(URL, timeout=5)

    assert calls == [(URL, 5)]
    assert result.source == URL
    assert result.content == b"PK\x05\x06"
    assert result.last_modified == datetime(2024, 1, 15, 8, 30, tzinfo=timezone.utc)
    assert result.retrieved_at == datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)


def test_default_timeout_comes_from_settings(stub_get):
    calls = stub_get()
    fetch_archive(URL)
    assert calls[0][1] == fetch.settings.http_timeout


@pytest.mark.parametrize("headers", [
    {"Date": "Thu, 01 Feb 2024 12:00:00 GMT"},
    {"Last-Modified": "Mon, 15 Jan 2024 08:30:00 GMT"},
    {"Last-Modified": "yesterday", "Date": "Thu, 01 Feb 2024 12:00:00 GMT"},
])
def test_missing_or_bad_headers_fail(stub_get, headers):
    stub_get(StubResponse(headers=headers))
    with pytest.raises(FetchError):
        fetch_archive(URL)


def test_http_error_status_fails(stub_get):
    stub_get(StubResponse(status_code=404))
    with pytest.raises(FetchError) as exc_info:
        fetch_archive(URL)
    assert URL in str(exc_info.value)


def test_transport_error_fails(stub_get):
    stub_get(error=requests.ConnectionError("connection refused"))
    with pytest.raises(FetchError):
        fetch_archive(URL)


def test_session_is_used_when_given():
    class StubSession:
        def __init__(self):
            self.urls = []

        def get(self, url, timeout=None):
            self.urls.append(url)
            return StubResponse()

    session = StubSession()
    fetch_archive(URL, session=session)
    assert session.urls == [URL]


def test_parse_http_date_converts_offsets_to_utc():
    parsed = parse_http_date("Mon, 15 Jan 2024 10:30:00 +0200", "Last-Modified", URL)
    assert parsed == datetime(2024, 1, 15, 8, 30, tzinfo=timezone.utc)
    assert parsed.tzinfo == timezone.utc
