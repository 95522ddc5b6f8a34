# Filename: event_filter.py

from typing import Any, Optional

from models import PoolCandidate
from payloads import LogsNotification, decode

# Emitted by the Raydium AMM program when a new pool is initialized
POOL_INIT_MARKER = "Program log: initialize2: InitializeInstruction2"


def classify(message: Any) -> Optional[PoolCandidate]:
    """
    Decide whether a decoded stream message announces a new liquidity pool.

    Returns a PoolCandidate carrying the transaction signature, or None when the
    message is malformed or none of its log lines contains the init marker.
    Pure; safe to call on every inbound message.
    """
    decoded = decode(LogsNotification, message)
    if not decoded.ok:
        return None

    notification = decoded.value
    if any(POOL_INIT_MARKER in line for line in notification.logs):
        return PoolCandidate(signature=notification.signature)
    return None
