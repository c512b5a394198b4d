"""
Pytest configuration and shared fixtures.
"""

import json
from typing import Any, Dict, List, Optional

import pytest
import requests

from profilehunter import logger as logger_module
from profilehunter.config import Settings
from profilehunter.logger import StructuredLogger


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, text: str = "", json_data: Any = None):
        self.status_code = status_code
        self.text = text
        self._json_data = json_data

    def json(self):
        if self._json_data is not None:
            return self._json_data
        raise json.JSONDecodeError("No JSON data", "", 0)

    def raise_for_status(self):
        if 400 <= self.status_code < 600:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """
    Records outgoing calls and answers from per-method handlers.

    A handler is either a FakeResponse, an exception instance (raised), or a
    callable taking the URL and returning one of those.
    """

    def __init__(self, head=None, get=None, post=None):
        self.handlers = {"head": head, "get": get, "post": post}
        self.calls: List[Dict[str, Any]] = []

    def _answer(self, method: str, url: str, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        handler = self.handlers[method]
        if callable(handler) and not isinstance(handler, FakeResponse):
            handler = handler(url)
        if isinstance(handler, Exception):
            raise handler
        if handler is None:
            return FakeResponse(404)
        return handler

    def head(self, url, **kwargs):
        return self._answer("head", url, **kwargs)

    def get(self, url, **kwargs):
        return self._answer("get", url, **kwargs)

    def post(self, url, **kwargs):
        return self._answer("post", url, **kwargs)

    def count(self, method: str) -> int:
        return sum(1 for c in self.calls if c["method"] == method)


@pytest.fixture
def quiet_logger() -> StructuredLogger:
    """Logger with no console or file output."""
    return StructuredLogger(name="profilehunter-test", enable_file=False, enable_console=False)


@pytest.fixture(autouse=True)
def _global_quiet_logger(monkeypatch, quiet_logger):
    """Keep get_logger() from writing log files during tests."""
    monkeypatch.setattr(logger_module, "_global_logger", quiet_logger)


@pytest.fixture
def settings() -> Settings:
    return Settings(delay_seconds=0, timeout=1.0)


@pytest.fixture
def sample_search_html() -> str:
    """Search results page with one wrapped and one plain profile link."""
    return """
    <html>
    <body>
        <div id="search">
            <a href="https://www.example.com/about">Example</a>
            <a href="/url?q=https://www.linkedin.com/in/janedoe&amp;sa=U&amp;ved=abc">Jane Doe - Acme | LinkedIn</a>
            <a href="https://www.linkedin.com/in/someoneelse">Someone Else</a>
            <a href="https://www.linkedin.com/company/acme">Acme</a>
        </div>
    </body>
    </html>
    """


@pytest.fixture
def empty_search_html() -> str:
    return """
    <html><body>
        <a href="https://www.linkedin.com/company/acme">Acme</a>
        <p>No results found.</p>
    </body></html>
    """


@pytest.fixture
def apollo_match() -> Dict[str, Any]:
    return {
        "people": [
            {
                "id": "5f2a",
                "name": "Bob Smith",
                "linkedin_url": "http://www.linkedin.com/in/bob-smith-42",
            }
        ],
        "pagination": {"page": 1, "per_page": 1, "total_entries": 1},
    }


@pytest.fixture
def apollo_no_match() -> Dict[str, Any]:
    return {"people": [], "pagination": {"page": 1, "per_page": 1, "total_entries": 0}}


def make_session(head=None, get=None, post=None) -> FakeSession:
    return FakeSession(head=head, get=get, post=post)


def profile_head_handler(existing: Optional[List[str]] = None):
    """HEAD handler returning 200 only for the given profile usernames."""
    existing = set(existing or [])

    def handler(url: str):
        username = url.rstrip("/").rsplit("/", 1)[-1]
        return FakeResponse(200 if username in existing else 404)

    return handler
