"""
Web search queries and the client that runs them.

Queries are scraped from the public results page, so the client keeps a
circuit breaker: once the engine starts refusing us, both search layers
back off together instead of hammering it for every email.
"""

from typing import Optional
from urllib.parse import quote_plus

import requests

from .config import Settings
from .logger import StructuredLogger, get_logger
from .strategies.common import StrategyError, fetch_html, first_profile_link
from .throttle import CircuitBreaker

SEARCH_BASE = "https://www.google.com/search"


def build_email_query(email: str, network_domain: str = "linkedin.com") -> str:
    """Exact-match the quoted email, scoped to the network's site."""
    return f'"{email}" site:{network_domain}'


def organization_from_domain(domain: str) -> str:
    """Strip a literal trailing '.com'; other suffixes are left alone."""
    if domain.endswith(".com"):
        return domain[: -len(".com")]
    return domain


def build_company_query(organization: str, network_name: str = "linkedin") -> str:
    return f"{organization} {network_name}"


def build_query_url(query: str, base: str = SEARCH_BASE) -> str:
    return f"{base}?q={quote_plus(query)}"


class SearchClient:
    """Runs search queries and extracts the first profile link from the results."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        logger: Optional[StructuredLogger] = None,
        session: Optional[requests.Session] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.settings = settings or Settings()
        self.logger = logger or get_logger()
        self.session = session
        self.breaker = breaker or CircuitBreaker(
            name="search engine",
            failure_threshold=3,
            recovery_timeout=300,
            expected_exception=StrategyError,
        )

    def first_profile(self, query: str, layer: str) -> Optional[str]:
        """
        Run one query and return the first profile URL in the results.

        Raises:
            StrategyError: request or parse failure
            CircuitOpenError: engine has failed too often recently
        """
        url = build_query_url(query, self.settings.search_url)
        self.logger.debug(f"{layer} search", query=query)
        html = self.breaker.call(
            fetch_html,
            url,
            layer,
            self.logger,
            session=self.session,
            timeout=self.settings.timeout,
            user_agent=self.settings.user_agent,
        )
        return first_profile_link(html, self.settings.profile_marker)
