"""Layer 4: broad search on the organization behind the email domain.

Last resort. The first profile in a company-name search is often just
someone who works there, which is why this layer carries the lowest weight.
"""

from typing import Optional

from ..logger import StructuredLogger, get_logger
from ..models import CIRCUIT_OPEN, Hit, Layer, Miss, NETWORK_ERROR, NOT_FOUND, PARSE_ERROR
from ..schema import split_email
from ..search import SearchClient, build_company_query, organization_from_domain
from ..throttle import CircuitOpenError
from .common import StrategyError

NETWORK_NAME = "linkedin"


class DomainHeuristicStrategy:
    layer = Layer.DOMAIN_HEURISTIC

    def __init__(self, client: SearchClient, logger: Optional[StructuredLogger] = None):
        self.client = client
        self.logger = logger or get_logger()

    def resolve(self, email: str, api_key: Optional[str] = None):
        _, domain = split_email(email)
        query = build_company_query(organization_from_domain(domain), NETWORK_NAME)
        try:
            url = self.client.first_profile(query, self.layer.label)
        except CircuitOpenError as e:
            self.logger.warning("Skipping company search", email=email, reason=str(e))
            return Miss(CIRCUIT_OPEN)
        except StrategyError as e:
            self.logger.debug("Company search failed", email=email, error=str(e))
            return Miss(PARSE_ERROR if e.error_type == "ParseError" else NETWORK_ERROR)
        return Hit(url) if url else Miss(NOT_FOUND)
