"""Shared fixtures: an in-memory stand-in for aiohttp.ClientSession."""

import json

import pytest


class FakeResponse:
    def __init__(self, status=200, body=""):
        self.status = status
        self._body = body

    async def text(self, errors="strict"):
        if isinstance(self._body, bytes):
            return self._body.decode("utf-8", errors)
        if isinstance(self._body, str):
            return self._body
        return json.dumps(self._body)

    async def json(self, content_type="application/json"):
        if isinstance(self._body, (str, bytes)):
            return json.loads(self._body)
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Routes every GET through ``handler(url) -> FakeResponse`` and records calls.

    A handler may raise to simulate network failures.
    """

    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def get(self, url, headers=None):
        self.calls.append(url)
        return self.handler(url)


LANDING_HTML = "<html><script>vqd='4-1234567890';</script></html>"

LINKS_HTML = """
<html><body>
  <div class="result"><a class="result__a" href="https://example.com/a">Example A</a></div>
  <div class="result"><a class="result__a" href="https://example.com/b"></a></div>
  <div class="result"><a class="result__a">No href</a></div>
</body></html>
"""

VIDEOS_HTML = (
    '<script>var ytInitialData = {"videoId":"abc12345678","x":1,'
    '"videoId": "def12345678"};</script>'
)


def image_page(count, next_pointer=None, start=0):
    body = {
        "results": [
            {
                "image": f"https://img.example.com/{n}.jpg",
                "thumbnail": f"https://tse.example.com/{n}.jpg",
                "title": f"Image {n}",
                "url": f"https://site.example.com/{n}",
            }
            for n in range(start, start + count)
        ]
    }
    if next_pointer:
        body["next"] = next_pointer
    return body


def make_handler(images=None, links=LINKS_HTML, videos=VIDEOS_HTML, landing=LANDING_HTML):
    """Build a URL router covering the four upstream endpoints."""

    def handler(url):
        if "/i.js" in url:
            return images(url) if callable(images) else FakeResponse(200, images or {"results": []})
        if "/html/" in url:
            return FakeResponse(200, links)
        if "youtube.com" in url:
            return FakeResponse(200, videos)
        return FakeResponse(200, landing)

    return handler


@pytest.fixture
def fake_session():
    return FakeSession(make_handler(images=image_page(5)))
