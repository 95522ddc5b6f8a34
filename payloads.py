"""
Wire schemas for the stream channel and the three HTTP providers.

Every inbound payload goes through decode(), which returns a tagged Result:
either a fully validated model or a short description of why it was rejected.
Unknown fields are ignored everywhere.
"""

import json
from typing import Any, List, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, Field, StrictBool, StrictStr, ValidationError

from models import Result

M = TypeVar("M", bound=BaseModel)


# =============================================================================
# Stream (logsSubscribe notifications)
# =============================================================================


class LogValue(BaseModel):
    signature: StrictStr
    logs: List[StrictStr]


class LogResult(BaseModel):
    value: LogValue


class LogParams(BaseModel):
    result: LogResult


class LogsNotification(BaseModel):
    """params.result.value.{logs,signature}; everything else is ignored."""
    params: LogParams

    @property
    def signature(self) -> str:
        return self.params.result.value.signature

    @property
    def logs(self) -> List[str]:
        return self.params.result.value.logs


# =============================================================================
# Helius enhanced transactions
# =============================================================================


class TokenTransfer(BaseModel):
    mint: Optional[str] = None
    fromUserAccount: Optional[str] = None
    toUserAccount: Optional[str] = None


class EnhancedTransaction(BaseModel):
    signature: Optional[str] = None
    tokenTransfers: Optional[List[TokenTransfer]] = None

    def mints(self) -> List[str]:
        return [t.mint for t in (self.tokenTransfers or []) if t.mint]


# =============================================================================
# rugcheck.xyz
# =============================================================================


class RugCheckData(BaseModel):
    rating: float
    warnings: List[StrictStr] = Field(default_factory=list)


class RugCheckSummary(BaseModel):
    success: StrictBool
    data: Optional[RugCheckData] = None


# =============================================================================
# Jupiter
# =============================================================================


class JupiterSwapResponse(BaseModel):
    transaction: StrictStr = Field(validation_alias=AliasChoices("swapTransaction", "transaction"))
    lastValidBlockHeight: Optional[int] = None


def decode_frame(raw: Any) -> Result[Any]:
    """Parse a raw websocket frame (str or bytes) as JSON."""
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        return Result.success(json.loads(raw))
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as e:
        return Result.failure(f"undecodable frame: {e}")


def decode(model: Type[M], data: Any) -> Result[M]:
    try:
        return Result.success(model.model_validate(data))
    except ValidationError as e:
        problems = ", ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()[:3]
        )
        return Result.failure(f"{model.__name__} rejected ({problems})")


def summarize(data: Any, limit: int = 200) -> str:
    """Short printable form of a payload for log lines."""
    try:
        text = json.dumps(data) if isinstance(data, (dict, list)) else str(data)
    except (TypeError, ValueError):
        text = repr(data)
    return text if len(text) <= limit else text[:limit] + "..."

