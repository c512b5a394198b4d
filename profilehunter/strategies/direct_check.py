"""Layer 1: check profile URLs built from candidate usernames."""

from concurrent.futures import ThreadPoolExecutor
from typing import Optional
from urllib.parse import quote

import requests

from ..candidates import generate_usernames
from ..config import Settings
from ..logger import StructuredLogger, get_logger
from ..models import Hit, Layer, Miss, NETWORK_ERROR, NOT_FOUND
from .common import default_headers


class DirectCheckStrategy:
    layer = Layer.DIRECT_CHECK

    def __init__(
        self,
        settings: Optional[Settings] = None,
        logger: Optional[StructuredLogger] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or Settings()
        self.logger = logger or get_logger()
        self.session = session

    def profile_url(self, username: str) -> str:
        # usernames keep '#', '?', '/' etc. from the local part; they must stay in the path
        return f"{self.settings.profile_base_url}{quote(username, safe='')}"

    def check_url(self, url: str) -> Optional[bool]:
        """HEAD the URL. True on 200, False on any other status, None on error."""
        http = self.session or requests
        try:
            resp = http.head(
                url,
                headers=default_headers(self.settings.user_agent),
                timeout=self.settings.timeout,
                allow_redirects=False,
            )
        except requests.exceptions.RequestException as e:
            self.logger.record_error(self.layer.label, type(e).__name__)
            self.logger.debug("Profile check failed", url=url, error=str(e))
            return None
        return resp.status_code == 200

    def resolve(self, email: str, api_key: Optional[str] = None):
        """
        Check every candidate concurrently; the first candidate (in candidate
        order) whose HEAD request returned 200 wins.

        Raises:
            InvalidEmailError: malformed email, surfaced to the orchestrator
        """
        urls = [self.profile_url(u) for u in generate_usernames(email)]
        if not urls:
            return Miss(NOT_FOUND)

        with ThreadPoolExecutor(max_workers=len(urls)) as pool:
            outcomes = list(pool.map(self.check_url, urls))

        for url, ok in zip(urls, outcomes):
            if ok:
                return Hit(url)
        if all(ok is None for ok in outcomes):
            return Miss(NETWORK_ERROR)
        return Miss(NOT_FOUND)
