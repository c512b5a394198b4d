"""
Batch request handling.

Builds the ledger, search client, strategies and orchestrator once, so the
credit budget is shared by every batch this process handles.
"""

from typing import Any, Dict, List, Optional

import requests

from .config import Settings
from .ledger import CreditLedger
from .logger import StructuredLogger, get_logger
from .resolver import ResolutionOrchestrator
from .schema import validate_batch_request
from .search import SearchClient
from .storage import ReportStore
from .strategies.direct_check import DirectCheckStrategy
from .strategies.domain_heuristic import DomainHeuristicStrategy
from .strategies.paid_api import PaidApiStrategy
from .strategies.search_scrape import SearchScrapeStrategy
from .throttle import PacingPolicy


def build_orchestrator(
    settings: Settings,
    ledger: CreditLedger,
    logger: Optional[StructuredLogger] = None,
    session: Optional[requests.Session] = None,
    pacing: Optional[PacingPolicy] = None,
) -> ResolutionOrchestrator:
    logger = logger or get_logger()
    search = SearchClient(settings, logger=logger, session=session)
    strategies = [
        DirectCheckStrategy(settings, logger=logger, session=session),
        SearchScrapeStrategy(search, logger=logger),
        PaidApiStrategy(ledger, settings, logger=logger, session=session),
        DomainHeuristicStrategy(search, logger=logger),
    ]
    return ResolutionOrchestrator(
        strategies,
        ledger,
        pacing=pacing or PacingPolicy(settings.delay_seconds),
        logger=logger,
    )


class ResolutionService:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        orchestrator: Optional[ResolutionOrchestrator] = None,
        store: Optional[ReportStore] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.settings = settings or Settings()
        self.logger = logger or get_logger(level=self.settings.log_level)
        if orchestrator is None:
            ledger = CreditLedger(self.settings.initial_credits)
            orchestrator = build_orchestrator(self.settings, ledger, logger=self.logger)
        self.orchestrator = orchestrator
        self.store = store or ReportStore(logger=self.logger)

    @property
    def ledger(self) -> CreditLedger:
        return self.orchestrator.ledger

    def check_emails(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Resolve a batch request {"emails": [...], "apolloKey": "..."}.

        The request key wins over the configured APOLLO_API_KEY.

        Raises:
            ValueError: request body has the wrong shape
        """
        errors = validate_batch_request(payload)
        if errors:
            raise ValueError("; ".join(errors))

        api_key = payload.get("apolloKey") or self.settings.apollo_api_key
        report = self.orchestrator.resolve_batch(payload["emails"], api_key)
        self.store.save(report)
        self.logger.log_metrics_summary()
        return report.to_dict()

    def last_results(self) -> List[Dict[str, Any]]:
        return self.store.last_results()
