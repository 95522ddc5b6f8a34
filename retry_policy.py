# Filename: retry_policy.py

from dataclasses import dataclass

import aiohttp

from config import BotConfig


@dataclass(frozen=True)
class RetryPolicy:
    """
    Fixed timing knobs shared by the adapters and the listener.
    Each knob is independent: no shared backoff curve, no jitter.
    """
    http_timeout: float = 5.0          # Per outbound HTTP call
    submit_max_retries: int = 3        # Raw transaction submission, handled by the RPC node
    reconnect_delay: float = 5.0       # Before re-opening the subscription
    confirm_interval: float = 0.75     # Signature status polling interval
    confirm_timeout: float = 20.0      # Upper bound on waiting for confirmation

    @classmethod
    def from_config(cls, config: BotConfig) -> "RetryPolicy":
        return cls(
            http_timeout=config.http_timeout,
            submit_max_retries=config.tx_max_retries,
            reconnect_delay=config.reconnect_delay,
            confirm_interval=config.confirm_interval,
            confirm_timeout=config.confirm_timeout,
        )

    def client_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.http_timeout)
