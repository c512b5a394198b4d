"""Layer 2: search the quoted email on the network's site."""

from typing import Optional

from ..logger import StructuredLogger, get_logger
from ..models import CIRCUIT_OPEN, Hit, Layer, Miss, NETWORK_ERROR, NOT_FOUND, PARSE_ERROR
from ..search import SearchClient, build_email_query
from ..throttle import CircuitOpenError
from .common import StrategyError


class SearchScrapeStrategy:
    layer = Layer.SEARCH_SCRAPE

    def __init__(self, client: SearchClient, logger: Optional[StructuredLogger] = None):
        self.client = client
        self.logger = logger or get_logger()

    def resolve(self, email: str, api_key: Optional[str] = None):
        query = build_email_query(email, self.client.settings.network_domain)
        try:
            url = self.client.first_profile(query, self.layer.label)
        except CircuitOpenError as e:
            self.logger.warning("Skipping email search", email=email, reason=str(e))
            return Miss(CIRCUIT_OPEN)
        except StrategyError as e:
            self.logger.debug("Email search failed", email=email, error=str(e))
            return Miss(PARSE_ERROR if e.error_type == "ParseError" else NETWORK_ERROR)
        return Hit(url) if url else Miss(NOT_FOUND)
