"""Layer 3: Apollo people search by email.

Each attempted request costs one credit from the shared ledger, whether or
not it finds anyone.
"""

from typing import Optional

import requests

from ..config import Settings
from ..ledger import CreditLedger
from ..logger import StructuredLogger, get_logger
from ..models import Hit, Layer, Miss, NETWORK_ERROR, NOT_FOUND, PARSE_ERROR, SKIPPED


class PaidApiStrategy:
    layer = Layer.PAID_API

    def __init__(
        self,
        ledger: CreditLedger,
        settings: Optional[Settings] = None,
        logger: Optional[StructuredLogger] = None,
        session: Optional[requests.Session] = None,
    ):
        self.ledger = ledger
        self.settings = settings or Settings()
        self.logger = logger or get_logger()
        self.session = session

    def resolve(self, email: str, api_key: Optional[str] = None):
        if not api_key:
            return Miss(SKIPPED)
        if not self.ledger.try_consume():
            self.logger.info("Apollo credits exhausted, skipping", email=email)
            return Miss(SKIPPED)
        self.logger.record_credit_used()

        http = self.session or requests
        try:
            resp = http.post(
                self.settings.apollo_search_url,
                json={"q_emails": [email], "per_page": 1},
                headers={"Content-Type": "application/json", "Cache-Control": "no-cache"},
                auth=(api_key, ""),
                timeout=self.settings.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "HTTPError"
            self.logger.record_error(self.layer.label, f"HTTPError_{status}")
            self.logger.error("Apollo request failed", email=email, status=status,
                              credits_left=self.ledger.remaining)
            return Miss(NETWORK_ERROR)
        except ValueError as e:
            self.logger.record_error(self.layer.label, "ParseError")
            self.logger.error("Apollo returned invalid JSON", email=email, error=str(e))
            return Miss(PARSE_ERROR)
        except requests.exceptions.RequestException as e:
            self.logger.record_error(self.layer.label, type(e).__name__)
            self.logger.error("Apollo request error", email=email, error=str(e))
            return Miss(NETWORK_ERROR)

        url = extract_linkedin_url(data)
        return Hit(url) if url else Miss(NOT_FOUND)


def extract_linkedin_url(data) -> Optional[str]:
    """Pull people[0].linkedin_url out of a search response, tolerating odd shapes."""
    if not isinstance(data, dict):
        return None
    people = data.get("people")
    if not isinstance(people, list) or not people:
        return None
    person = people[0]
    if not isinstance(person, dict):
        return None
    url = person.get("linkedin_url")
    return url if isinstance(url, str) and url.strip() else None
