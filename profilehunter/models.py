"""
Result types shared by the strategies, the orchestrator and storage.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Layer(Enum):
    """Resolution layers in priority order. Value is (label, weight)."""

    DIRECT_CHECK = ("Layer 1", 30)
    SEARCH_SCRAPE = ("Layer 2", 25)
    PAID_API = ("Layer 3", 40)
    DOMAIN_HEURISTIC = ("Layer 4", 20)

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def weight(self) -> int:
        return self.value[1]


LAYER_ORDER: Tuple[Layer, ...] = (
    Layer.DIRECT_CHECK,
    Layer.SEARCH_SCRAPE,
    Layer.PAID_API,
    Layer.DOMAIN_HEURISTIC,
)
ALL_LAYER_LABELS: Tuple[str, ...] = tuple(layer.label for layer in LAYER_ORDER)

# Miss reasons; observability only, the orchestrator treats them alike
NOT_FOUND = "not_found"
NETWORK_ERROR = "network_error"
PARSE_ERROR = "parse_error"
SKIPPED = "skipped"
CIRCUIT_OPEN = "circuit_open"
UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class Hit:
    url: str

    @property
    def is_hit(self) -> bool:
        return True


@dataclass(frozen=True)
class Miss:
    reason: str = NOT_FOUND

    @property
    def is_hit(self) -> bool:
        return False


@dataclass(frozen=True)
class ResolutionRecord:
    """Outcome of resolving one email. Never mutated after creation."""

    email: str
    linkedin: Optional[str]
    layers: Tuple[str, ...]
    failed_layers: Tuple[str, ...]
    confidence: int
    error: Optional[str] = None

    @classmethod
    def resolved(cls, email: str, layer: Layer, url: str) -> "ResolutionRecord":
        return cls(
            email=email,
            linkedin=url,
            layers=(layer.label,),
            failed_layers=tuple(lbl for lbl in ALL_LAYER_LABELS if lbl != layer.label),
            confidence=layer.weight,
        )

    @classmethod
    def exhausted(cls, email: str, error: Optional[str] = None) -> "ResolutionRecord":
        return cls(
            email=email,
            linkedin=None,
            layers=(),
            failed_layers=ALL_LAYER_LABELS,
            confidence=0,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "email": self.email,
            "linkedin": self.linkedin,
            "layers": list(self.layers),
            "failedLayers": list(self.failed_layers),
            "confidence": self.confidence,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class BatchReport:
    results: List[ResolutionRecord]
    apollo_credits: int
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "apolloCredits": self.apollo_credits,
        }
