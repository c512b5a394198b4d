"""Shared utilities for all resolution strategies."""

from typing import Optional
from urllib.parse import parse_qs, urlparse

import requests
from bs4 import BeautifulSoup

from ..config import DEFAULT_USER_AGENT
from ..logger import StructuredLogger
from ..throttle import should_retry_http_status


class StrategyError(Exception):
    """Network or parse failure inside a layer. Never leaves the layer."""

    def __init__(self, message: str, error_type: str = "RequestException"):
        super().__init__(message)
        self.error_type = error_type


def default_headers(user_agent: Optional[str] = None) -> dict:
    return {
        "User-Agent": user_agent or DEFAULT_USER_AGENT,
        "Accept-Language": "en-US,en;q=0.9",
    }


def fetch_html(
    url: str,
    layer: str,
    logger: StructuredLogger,
    session: Optional[requests.Session] = None,
    timeout: float = 10.0,
    params: Optional[dict] = None,
    user_agent: Optional[str] = None,
) -> str:
    """Fetch a page with standardized error handling and logging.

    Args:
        url: The URL to fetch
        layer: Layer label for logging and metrics (e.g. 'Layer 2')
        logger: Logger that records the failure kind
        session: Optional requests session; module-level requests otherwise
        timeout: Seconds before the request is abandoned
        params: Query string parameters
        user_agent: Override for the User-Agent header

    Returns:
        Response body text

    Raises:
        StrategyError: On any HTTP error, timeout, or request failure
    """
    http = session or requests
    try:
        resp = http.get(url, params=params, headers=default_headers(user_agent), timeout=timeout)
        resp.raise_for_status()
        return resp.text
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else "HTTPError"
        logger.record_error(layer, f"HTTPError_{status}")
        if isinstance(status, int) and should_retry_http_status(status):
            logger.warning(f"{layer} search throttled", url=url, status=status)
        else:
            logger.error(f"{layer} search request failed", url=url, status=status)
        raise StrategyError(f"{layer} request failed ({status}): {url}", f"HTTPError_{status}")
    except requests.exceptions.Timeout:
        logger.record_error(layer, "Timeout")
        logger.warning(f"{layer} search timed out", url=url)
        raise StrategyError(f"{layer} request timed out: {url}", "Timeout")
    except requests.exceptions.RequestException as e:
        logger.record_error(layer, "RequestException")
        logger.error(f"{layer} search request error", url=url, error=str(e))
        raise StrategyError(f"{layer} request error: {e}", "RequestException")


def unwrap_redirect(href: str) -> str:
    """Return the target of a search-engine redirect link such as /url?q=<target>."""
    parsed = urlparse(href)
    if parsed.path == "/url":
        qs = parse_qs(parsed.query)
        target = qs.get("q") or qs.get("url")
        if target:
            return target[0]
    return href


def first_profile_link(html: str, marker: str) -> Optional[str]:
    """Return the first anchor target containing the profile path marker."""
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as e:
        raise StrategyError(f"Could not parse search results: {e}", "ParseError")

    for a in soup.find_all("a", href=True):
        href = a["href"]
        if marker in href:
            return unwrap_redirect(href)
    return None
