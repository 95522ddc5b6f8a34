# Filename: models.py

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Generic, Optional, TypeVar

T = TypeVar("T")


class ConnectionState(str, Enum):
    """Lifecycle of the single log subscription."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    PROCESSING_EVENT = "processing_event"
    CLOSING = "closing"


class PipelineStage(str, Enum):
    FETCH = "fetch"
    ELIGIBILITY = "eligibility"
    RISK_CHECK = "risk_check"
    EXECUTE = "execute"


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Tagged outcome of a decode or an adapter call.
    Exactly one of `value` / `error` is meaningful, selected by `ok`.
    """
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "Result[T]":
        return cls(error=error or "unknown error")


@dataclass(frozen=True)
class SubscriptionRequest:
    """logsSubscribe request sent once per connection attempt."""
    program_id: str
    commitment: str = "processed"
    request_id: int = 1
    jsonrpc: str = "2.0"
    method: str = "logsSubscribe"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "jsonrpc": self.jsonrpc,
            "id": self.request_id,
            "method": self.method,
            "params": [
                {"mentions": [self.program_id]},
                {"commitment": self.commitment},
            ],
        }


@dataclass(frozen=True)
class PoolCandidate:
    signature: str


@dataclass(frozen=True)
class TransactionDetails:
    base_mint: str                   # Native side of the pool (wrapped SOL)
    token_mint: str                  # Newly created token
    observed_at: datetime


@dataclass(frozen=True)
class RiskVerdict:
    passed: bool                     # Provider reported success
    rating: float
    warnings: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class SwapOutcome:
    """Terminal value of a pipeline run."""
    succeeded: bool
    reference: Optional[str] = None
    stage: Optional[PipelineStage] = None
    reason: str = ""

    @classmethod
    def stopped(cls, stage: PipelineStage, reason: str) -> "SwapOutcome":
        return cls(succeeded=False, reference=None, stage=stage, reason=reason)
