#!/usr/bin/env python3
"""Tests for OneNoteClient with urllib.request.urlopen patched out."""

import http.client
import json
import sys
import tempfile
import urllib.error
from pathlib import Path
from unittest import mock
from urllib.parse import parse_qs, urlsplit

sys.path.insert(0, str(Path(__file__).parent))

from onenote_repository.api.client import OneNoteClient
from onenote_repository.errors import AuthenticationError, NotLoggedInError, RemoteAPIError

BASE = "https://graph.example/v1.0/me/onenote"


class FakeResponse:
    def __init__(self, body):
        self._body = body if isinstance(body, bytes) else body.encode("utf-8")

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeGraph:
    """Routes requests by URL and records them."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, req, timeout=None):
        url = req if isinstance(req, str) else req.full_url
        self.requests.append(req)
        if url not in self.routes:
            raise urllib.error.HTTPError(url, 404, "Not Found", {}, None)
        body = self.routes[url]
        if isinstance(body, Exception):
            raise body
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        return FakeResponse(body)


def make_client():
    return OneNoteClient(
        "cid",
        "secret",
        "http://lms.example/callback?callback=yes",
        api_base_url=BASE,
        token_url="https://login.example/token",
        auth_url="https://login.example/authorize",
        logout_url="https://login.example/logout",
    )


def test_login_url():
    client = make_client()
    parts = urlsplit(client.login_url(state="xyz"))
    query = parse_qs(parts.query)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://login.example/authorize"
    assert query["client_id"] == ["cid"]
    assert query["redirect_uri"] == ["http://lms.example/callback?callback=yes"]
    assert query["response_type"] == ["code"]
    assert query["state"] == ["xyz"]
    print("✓ login_url carries client id, redirect URI and state")


def test_token_exchange():
    graph = FakeGraph({"https://login.example/token": {"access_token": "tok-1", "token_type": "Bearer"}})
    client = make_client()
    with mock.patch("urllib.request.urlopen", graph):
        token = client.get_access_token("code-1")
    assert token == "tok-1"

    req = graph.requests[0]
    assert req.get_method() == "POST"
    form = parse_qs(req.data.decode("utf-8"))
    assert form["code"] == ["code-1"]
    assert form["grant_type"] == ["authorization_code"]
    assert form["client_secret"] == ["secret"]
    print("✓ Token exchange posts the code and returns the access token")


def test_token_exchange_failures():
    cases = [
        urllib.error.HTTPError("https://login.example/token", 400, "Bad Request", {}, None),
        urllib.error.URLError("connection refused"),
        {"error": "invalid_grant"},
        "not json",
    ]
    client = make_client()
    for body in cases:
        graph = FakeGraph({"https://login.example/token": body})
        with mock.patch("urllib.request.urlopen", graph):
            try:
                client.get_access_token("code-1")
            except AuthenticationError:
                pass
            else:
                raise AssertionError(f"expected AuthenticationError for {body!r}")
    print("✓ Token exchange failures surface as AuthenticationError")


def test_set_access_token_null():
    client = make_client()
    client.set_access_token("tok-1")
    assert client.access_token == "tok-1"
    client.set_access_token("null")
    assert client.access_token is None
    client.set_access_token("")
    assert client.access_token is None
    print("✓ set_access_token treats empty and 'null' as no token")


def test_listing_root_and_notebook():
    graph = FakeGraph(
        {
            f"{BASE}/notebooks": {
                "value": [
                    {"id": "nb-1", "displayName": "Work", "lastModifiedDateTime": "2024-01-02T03:04:05Z"},
                ],
                "@odata.nextLink": f"{BASE}/notebooks?page=2",
            },
            f"{BASE}/notebooks?page=2": {"value": [{"id": "nb-2", "displayName": "Home"}]},
            f"{BASE}/notebooks/nb-1/sections": {
                "value": [
                    {"id": "sec-1", "displayName": "Standup", "lastModifiedDateTime": "2024-01-02T03:04:05.1234567Z"},
                ],
            },
        }
    )
    client = make_client()
    client.set_access_token("tok-1")
    with mock.patch("urllib.request.urlopen", graph):
        root = client.get_items_list("")
        sections = client.get_items_list("nb-1")

    assert [(i.title, i.path, i.is_folder) for i in root] == [
        ("Work", "nb-1", True),
        ("Home", "nb-2", True),
    ]
    assert root[0].date == 1704164645
    assert root[1].date is None
    assert [(i.title, i.source, i.is_folder) for i in sections] == [("Standup.html", "sec-1", False)]
    assert sections[0].date == 1704164645
    assert graph.requests[0].get_header("Authorization") == "Bearer tok-1"
    print("✓ Listing maps notebooks to folders and sections to files")


def test_explicit_token_and_missing_token():
    graph = FakeGraph({f"{BASE}/notebooks/nb-1": {"id": "nb-1", "displayName": "Work"}})
    client = make_client()
    with mock.patch("urllib.request.urlopen", graph):
        assert client.get_notebook_name("nb-1", "tok-2") == "Work"
        try:
            client.get_notebook_name("nb-1")
        except NotLoggedInError:
            pass
        else:
            raise AssertionError("expected NotLoggedInError without a token")
    assert graph.requests[0].get_header("Authorization") == "Bearer tok-2"
    print("✓ Explicit tokens are used; no token at all is refused")


def test_remote_errors_propagate():
    client = make_client()
    client.set_access_token("tok-1")
    graph = FakeGraph({})
    with mock.patch("urllib.request.urlopen", graph):
        try:
            client.get_items_list("")
        except RemoteAPIError as e:
            assert e.status == 404
        else:
            raise AssertionError("expected RemoteAPIError")
    assert len(graph.requests) == 1
    print("✓ Remote failures raise RemoteAPIError after a single attempt")


def test_download_section():
    graph = FakeGraph(
        {
            f"{BASE}/sections/sec-1": {
                "id": "sec-1",
                "displayName": "Standup & Notes",
                "links": {"oneNoteWebUrl": {"href": "https://onenote.example/sec-1"}},
            },
            f"{BASE}/sections/sec-1/pages": {
                "value": [
                    {"id": "p1", "title": "Monday", "contentUrl": f"{BASE}/pages/p1/content"},
                    {"id": "p2", "title": "Tuesday"},
                ]
            },
            f"{BASE}/pages/p1/content": "<html><head></head><body><p>first</p></body></html>",
            f"{BASE}/pages/p2/content": "<p>second</p>",
        }
    )
    client = make_client()
    client.set_access_token("tok-1")
    with tempfile.TemporaryDirectory() as tmp:
        target = Path(tmp) / "out" / "section.html"
        with mock.patch("urllib.request.urlopen", graph):
            result = client.download_section("sec-1", target)

        assert result.path == target
        assert result.url == "https://onenote.example/sec-1"
        text = target.read_text(encoding="utf-8")
        assert "<title>Standup &amp; Notes</title>" in text
        assert "<h1>Monday</h1>" in text and "<p>first</p>" in text
        assert "<h1>Tuesday</h1>" in text and "<p>second</p>" in text
        assert "<body><p>first" not in text
    print("✓ download_section writes all pages into one HTML document")


def test_connection_drops_are_wrapped():
    client = make_client()
    client.set_access_token("tok-1")
    dropped = http.client.RemoteDisconnected("closed")
    graph = FakeGraph(
        {
            f"{BASE}/notebooks": dropped,
            "https://login.example/token": TimeoutError("timed out"),
        }
    )
    with mock.patch("urllib.request.urlopen", graph):
        try:
            client.get_items_list("")
        except RemoteAPIError as e:
            assert e.status is None
            assert "RemoteDisconnected" in str(e)
        else:
            raise AssertionError("expected RemoteAPIError for a dropped connection")

        try:
            client.get_access_token("code-1")
        except AuthenticationError:
            pass
        else:
            raise AssertionError("expected AuthenticationError for a timed-out exchange")
    print("✓ Dropped connections and timeouts surface as repository errors")


def test_log_out_is_best_effort():
    client = make_client()
    client.set_access_token("tok-1")
    graph = FakeGraph({})
    with mock.patch("urllib.request.urlopen", graph):
        client.log_out()
    assert client.access_token is None
    assert len(graph.requests) == 1
    client.set_access_token("tok-1")
    with mock.patch("urllib.request.urlopen", side_effect=ConnectionResetError("reset")):
        client.log_out()
    assert client.access_token is None
    print("✓ log_out forgets the token even if remote sign-out fails")


def main():
    """Run all tests."""
    print("Testing OneNote client...\n")

    try:
        test_login_url()
        test_token_exchange()
        test_token_exchange_failures()
        test_set_access_token_null()
        test_listing_root_and_notebook()
        test_explicit_token_and_missing_token()
        test_remote_errors_propagate()
        test_download_section()
        test_connection_drops_are_wrapped()
        test_log_out_is_best_effort()
        print()
        print("✅ All client tests passed!")
        return 0
    except AssertionError as e:
        print(f"\n❌ Test failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
