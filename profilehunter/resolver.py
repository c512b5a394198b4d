"""
Resolution orchestrator.

Responsibilities:
- Run the four layers for one email in fixed priority order.
- Stop at the first hit and record which layer produced it.
- Gate the paid layer on its key and the shared credit ledger.
- Process a batch strictly one email at a time, pacing between emails.

Non-Responsibilities:
- No HTTP, parsing or persistence of its own.

Invariant:
Every email in a batch yields exactly one record, in input order, no
matter how many layers fail.
"""

from typing import Iterable, List, Optional, Sequence

from .ledger import CreditLedger
from .logger import StructuredLogger, get_logger
from .models import BatchReport, Layer, LAYER_ORDER, Miss, ResolutionRecord, UNEXPECTED_ERROR
from .schema import InvalidEmailError, normalize_email, validate_email
from .throttle import PacingPolicy

# Per-email states, reported in debug logs
NOT_STARTED = "NotStarted"
RESOLVED = "Resolved"
EXHAUSTED = "Exhausted"


def tried_state(layer: Layer) -> str:
    return f"{layer.label.replace(' ', '')}Tried"


class ResolutionOrchestrator:
    """
    Args:
        strategies: One strategy per layer, in LAYER_ORDER
        ledger: Shared paid-API credit ledger
        pacing: Pause between emails; skipped after the last one
        logger: Structured logger for progress and metrics
    """

    def __init__(
        self,
        strategies: Sequence,
        ledger: CreditLedger,
        pacing: Optional[PacingPolicy] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        layers = tuple(s.layer for s in strategies)
        if layers != LAYER_ORDER:
            raise ValueError(f"Strategies must cover layers 1-4 in order, got {layers}")
        self.strategies = list(strategies)
        self.ledger = ledger
        self.pacing = pacing or PacingPolicy()
        self.logger = logger or get_logger()

    def _layer_allowed(self, strategy, api_key: Optional[str]) -> bool:
        if strategy.layer is not Layer.PAID_API:
            return True
        # the only gate for the paid layer; re-read per email since another
        # batch may have drained the ledger
        return bool(api_key) and self.ledger.available()

    def _run_layer(self, strategy, email: str, api_key: Optional[str]):
        label = strategy.layer.label
        self.logger.record_layer_attempt(label)
        try:
            return strategy.resolve(email, api_key)
        except InvalidEmailError:
            raise
        except Exception as e:
            self.logger.record_error(label, type(e).__name__)
            self.logger.error(f"{label} raised unexpectedly", email=email, error=str(e))
            return Miss(UNEXPECTED_ERROR)

    def resolve_email(self, email: str, api_key: Optional[str] = None) -> ResolutionRecord:
        """Resolve one email. Never raises; malformed input becomes an error record."""
        email = normalize_email(email) if isinstance(email, str) else email
        errors = validate_email(email)
        if errors:
            self.logger.warning("Invalid email, skipping all layers", email=str(email), errors=errors)
            self.logger.record_email(resolved=False)
            return ResolutionRecord.exhausted(str(email), error="; ".join(errors))

        state = NOT_STARTED
        try:
            for strategy in self.strategies:
                if not self._layer_allowed(strategy, api_key):
                    self.logger.debug(f"{strategy.layer.label} skipped", email=email,
                                      has_key=bool(api_key), credits=self.ledger.remaining)
                    state = tried_state(strategy.layer)
                    continue

                outcome = self._run_layer(strategy, email, api_key)
                state = tried_state(strategy.layer)
                if outcome.is_hit:
                    self.logger.record_layer_hit(strategy.layer.label)
                    self.logger.info("Resolved", email=email, layer=strategy.layer.label,
                                     url=outcome.url)
                    self.logger.record_email(resolved=True)
                    self.logger.debug("State", email=email, state=RESOLVED)
                    return ResolutionRecord.resolved(email, strategy.layer, outcome.url)
                self.logger.debug("State", email=email, state=state, reason=outcome.reason)
        except InvalidEmailError as e:
            self.logger.warning("Invalid email", email=email, error=str(e))
            self.logger.record_email(resolved=False)
            return ResolutionRecord.exhausted(email, error=str(e))

        self.logger.info("No profile found", email=email)
        self.logger.debug("State", email=email, state=EXHAUSTED)
        self.logger.record_email(resolved=False)
        return ResolutionRecord.exhausted(email)

    def resolve_batch(self, emails: Iterable[str], api_key: Optional[str] = None) -> BatchReport:
        """Resolve emails one after another, pausing between consecutive emails."""
        emails = list(emails)
        results: List[ResolutionRecord] = []
        for i, email in enumerate(emails):
            self.logger.info(f"Checking {i + 1}/{len(emails)}", email=str(email))
            results.append(self.resolve_email(email, api_key))
            if i < len(emails) - 1:
                self.pacing.wait()
        return BatchReport(results=results, apollo_credits=self.ledger.remaining)
