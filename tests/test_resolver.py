"""
Tests for the resolution orchestrator.
"""

from unittest.mock import MagicMock

import pytest
import requests

from conftest import FakeResponse, make_session, profile_head_handler
from profilehunter.ledger import CreditLedger
from profilehunter.models import ALL_LAYER_LABELS, LAYER_ORDER, Hit, Layer, Miss
from profilehunter.resolver import ResolutionOrchestrator
from profilehunter.service import build_orchestrator
from profilehunter.throttle import PacingPolicy


def fake_strategy(layer: Layer, outcome=None):
    strategy = MagicMock()
    strategy.layer = layer
    strategy.resolve.return_value = outcome if outcome is not None else Miss()
    return strategy


def fake_strategies(hits=None):
    """One mock per layer; `hits` maps Layer -> url for layers that should hit."""
    hits = hits or {}
    return [fake_strategy(layer, Hit(hits[layer]) if layer in hits else Miss()) for layer in LAYER_ORDER]


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def pacing(sleeps):
    return PacingPolicy(2.0, sleep=sleeps.append)


def assert_partition(record):
    combined = list(record.layers) + list(record.failed_layers)
    assert sorted(combined) == sorted(ALL_LAYER_LABELS)
    assert len(combined) == len(set(combined)) == 4
    assert len(record.layers) <= 1
    assert (record.confidence == 0) == (not record.layers) == (record.linkedin is None)


class TestShortCircuit:

    def test_layer1_hit_skips_rest(self, pacing, quiet_logger):
        strategies = fake_strategies({Layer.DIRECT_CHECK: "https://www.linkedin.com/in/a"})
        orch = ResolutionOrchestrator(strategies, CreditLedger(), pacing, quiet_logger)

        record = orch.resolve_email("a@acme.com", "key")

        assert record.linkedin == "https://www.linkedin.com/in/a"
        assert record.layers == ("Layer 1",)
        assert record.failed_layers == ("Layer 2", "Layer 3", "Layer 4")
        assert record.confidence == 30
        strategies[0].resolve.assert_called_once_with("a@acme.com", "key")
        for later in strategies[1:]:
            later.resolve.assert_not_called()

    @pytest.mark.parametrize("layer,weight", [
        (Layer.DIRECT_CHECK, 30),
        (Layer.SEARCH_SCRAPE, 25),
        (Layer.PAID_API, 40),
        (Layer.DOMAIN_HEURISTIC, 20),
    ])
    def test_confidence_is_weight_of_single_layer(self, pacing, quiet_logger, layer, weight):
        strategies = fake_strategies({layer: "https://www.linkedin.com/in/x"})
        orch = ResolutionOrchestrator(strategies, CreditLedger(), pacing, quiet_logger)

        record = orch.resolve_email("x@acme.com", "key")

        assert record.confidence == weight
        assert record.layers == (layer.label,)
        assert_partition(record)

    def test_later_hits_never_add_confidence(self, pacing, quiet_logger):
        hits = {layer: f"https://www.linkedin.com/in/{layer.name}" for layer in LAYER_ORDER}
        orch = ResolutionOrchestrator(fake_strategies(hits), CreditLedger(), pacing, quiet_logger)

        record = orch.resolve_email("x@acme.com", "key")

        assert record.confidence == 30

    def test_all_miss(self, pacing, quiet_logger):
        strategies = fake_strategies()
        orch = ResolutionOrchestrator(strategies, CreditLedger(), pacing, quiet_logger)

        record = orch.resolve_email("x@acme.com", "key")

        assert record.linkedin is None
        assert record.confidence == 0
        assert record.layers == ()
        assert record.failed_layers == ALL_LAYER_LABELS
        assert all(s.resolve.call_count == 1 for s in strategies)

    def test_strategy_exception_is_miss(self, pacing, quiet_logger):
        strategies = fake_strategies({Layer.SEARCH_SCRAPE: "https://www.linkedin.com/in/b"})
        strategies[0].resolve.side_effect = RuntimeError("boom")
        orch = ResolutionOrchestrator(strategies, CreditLedger(), pacing, quiet_logger)

        record = orch.resolve_email("b@acme.com")

        assert record.layers == ("Layer 2",)
        assert quiet_logger.metrics["errors_by_type"]["Layer 1:RuntimeError"] == 1

    def test_wrong_layer_order_rejected(self, quiet_logger):
        strategies = list(reversed(fake_strategies()))
        with pytest.raises(ValueError):
            ResolutionOrchestrator(strategies, CreditLedger(), logger=quiet_logger)


class TestPaidLayerGating:

    def test_skipped_without_key(self, pacing, quiet_logger):
        strategies = fake_strategies()
        orch = ResolutionOrchestrator(strategies, CreditLedger(), pacing, quiet_logger)

        orch.resolve_email("x@acme.com", None)

        strategies[2].resolve.assert_not_called()
        strategies[3].resolve.assert_called_once()

    def test_empty_key_counts_as_missing(self, pacing, quiet_logger):
        ledger = CreditLedger(3)
        strategies = fake_strategies()
        orch = ResolutionOrchestrator(strategies, ledger, pacing, quiet_logger)

        record = orch.resolve_email("x@acme.com", "")

        strategies[2].resolve.assert_not_called()
        assert ledger.remaining == 3
        assert "Layer 3" in record.failed_layers

    def test_skipped_when_ledger_empty(self, pacing, quiet_logger):
        strategies = fake_strategies({Layer.PAID_API: "https://www.linkedin.com/in/x"})
        orch = ResolutionOrchestrator(strategies, CreditLedger(0), pacing, quiet_logger)

        record = orch.resolve_email("x@acme.com", "key")

        strategies[2].resolve.assert_not_called()
        assert record.linkedin is None
        assert "Layer 3" in record.failed_layers

    def test_gate_reevaluated_per_email(self, pacing, quiet_logger):
        ledger = CreditLedger(1)
        strategies = fake_strategies()
        strategies[2].resolve.side_effect = lambda email, key: (ledger.try_consume(), Miss())[1]
        orch = ResolutionOrchestrator(strategies, ledger, pacing, quiet_logger)

        orch.resolve_batch(["a@x.com", "b@x.com", "c@x.com"], "key")

        assert strategies[2].resolve.call_count == 1
        assert ledger.remaining == 0


class TestInvalidInput:

    @pytest.mark.parametrize("email", ["no-at-sign", "", "a@b@c", "@acme.com"])
    def test_malformed_email_yields_error_record(self, pacing, quiet_logger, email):
        strategies = fake_strategies()
        orch = ResolutionOrchestrator(strategies, CreditLedger(), pacing, quiet_logger)

        record = orch.resolve_email(email, "key")

        assert record.error
        assert record.confidence == 0
        assert record.failed_layers == ALL_LAYER_LABELS
        assert all(s.resolve.call_count == 0 for s in strategies)

    def test_bad_email_does_not_abort_batch(self, pacing, quiet_logger):
        strategies = fake_strategies({Layer.DIRECT_CHECK: "https://www.linkedin.com/in/ok"})
        orch = ResolutionOrchestrator(strategies, CreditLedger(), pacing, quiet_logger)

        report = orch.resolve_batch(["broken", "ok@acme.com"])

        assert [r.email for r in report.results] == ["broken", "ok@acme.com"]
        assert report.results[0].error
        assert report.results[1].confidence == 30


class TestBatch:

    def test_order_preserved_and_paced_between_items(self, pacing, sleeps, quiet_logger):
        orch = ResolutionOrchestrator(fake_strategies(), CreditLedger(), pacing, quiet_logger)
        emails = ["c@x.com", "a@x.com", "b@x.com"]

        report = orch.resolve_batch(emails)

        assert [r.email for r in report.results] == emails
        assert sleeps == [2.0, 2.0]

    def test_single_email_not_paced(self, pacing, sleeps, quiet_logger):
        orch = ResolutionOrchestrator(fake_strategies(), CreditLedger(), pacing, quiet_logger)
        orch.resolve_batch(["a@x.com"])
        assert sleeps == []

    def test_empty_batch(self, pacing, quiet_logger):
        orch = ResolutionOrchestrator(fake_strategies(), CreditLedger(7), pacing, quiet_logger)
        report = orch.resolve_batch([])
        assert report.results == []
        assert report.apollo_credits == 7

    def test_report_dict_shape(self, pacing, quiet_logger):
        strategies = fake_strategies({Layer.SEARCH_SCRAPE: "https://www.linkedin.com/in/z"})
        orch = ResolutionOrchestrator(strategies, CreditLedger(), pacing, quiet_logger)

        data = orch.resolve_batch(["z@acme.com"]).to_dict()

        assert data == {
            "results": [{
                "email": "z@acme.com",
                "linkedin": "https://www.linkedin.com/in/z",
                "layers": ["Layer 2"],
                "failedLayers": ["Layer 1", "Layer 3", "Layer 4"],
                "confidence": 25,
            }],
            "apolloCredits": 50,
        }


class TestEndToEnd:
    """Real strategies, faked HTTP."""

    def _orchestrator(self, settings, quiet_logger, ledger, session):
        return build_orchestrator(
            settings, ledger, logger=quiet_logger, session=session,
            pacing=PacingPolicy(0),
        )

    def test_layer1_then_layer3(self, settings, quiet_logger, empty_search_html, apollo_match):
        session = make_session(
            head=profile_head_handler(["janedoe"]),
            get=FakeResponse(200, text=empty_search_html),
            post=FakeResponse(200, json_data=apollo_match),
        )
        ledger = CreditLedger(50)
        orch = self._orchestrator(settings, quiet_logger, ledger, session)

        report = orch.resolve_batch(["jane.doe@acme.com", "bob@acme.com"], "key")

        first, second = report.results
        assert first.email == "jane.doe@acme.com"
        assert first.linkedin == "https://www.linkedin.com/in/janedoe"
        assert first.confidence == 30
        assert second.email == "bob@acme.com"
        assert second.linkedin == "http://www.linkedin.com/in/bob-smith-42"
        assert second.confidence == 40
        assert second.layers == ("Layer 3",)
        assert ledger.remaining == 49
        assert report.apollo_credits == 49
        assert session.count("post") == 1
        # only the second email reached the search layer
        assert session.count("get") == 1

    def test_everything_misses(self, settings, quiet_logger, empty_search_html, apollo_no_match):
        session = make_session(
            head=profile_head_handler([]),
            get=FakeResponse(200, text=empty_search_html),
            post=FakeResponse(200, json_data=apollo_no_match),
        )
        orch = self._orchestrator(settings, quiet_logger, CreditLedger(50), session)

        record = orch.resolve_batch(["nobody@acme.com"], "key").results[0]

        assert record.linkedin is None
        assert record.confidence == 0
        assert set(record.failed_layers) == set(ALL_LAYER_LABELS)

    def test_every_layer_erroring_still_reports(self, settings, quiet_logger):
        session = make_session(
            head=requests.exceptions.ConnectionError("down"),
            get=requests.exceptions.ConnectionError("down"),
            post=requests.exceptions.ConnectionError("down"),
        )
        ledger = CreditLedger(50)
        orch = self._orchestrator(settings, quiet_logger, ledger, session)

        report = orch.resolve_batch(["a.b@acme.com", "c.d@acme.com"], "key")

        assert len(report.results) == 2
        assert all(r.confidence == 0 for r in report.results)
        assert ledger.remaining == 48

    def test_credits_monotonic_across_batches(self, settings, quiet_logger, empty_search_html, apollo_no_match):
        session = make_session(
            head=profile_head_handler([]),
            get=FakeResponse(200, text=empty_search_html),
            post=FakeResponse(200, json_data=apollo_no_match),
        )
        ledger = CreditLedger(3)
        orch = self._orchestrator(settings, quiet_logger, ledger, session)

        seen = []
        for batch in (["a@x.com", "b@x.com"], ["c@x.com"], ["d@x.com", "e@x.com"]):
            seen.append(orch.resolve_batch(batch, "key").apollo_credits)

        assert seen == [1, 0, 0]
        assert session.count("post") == 3
        assert ledger.remaining == 0
