# Filename: rugcheck.py

import asyncio
import logging
from typing import Optional

import aiohttp

from config import BotConfig
from data_sources import open_session, read_json
from errors import AdapterError
from models import Result, RiskVerdict
from payloads import RugCheckSummary, decode
from retry_policy import RetryPolicy

logger = logging.getLogger("rugcheck")


class RiskChecker:
    """Third-party risk report for a token mint (rugcheck.xyz summary)."""

    SERVICE = "rugcheck"

    def __init__(self, config: BotConfig, policy: RetryPolicy,
                 session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.policy = policy
        self.session = session

    async def check(self, token_mint: str) -> Result[RiskVerdict]:
        url = f"{self.config.rug_check_url}/{token_mint}/report/summary"
        try:
            async with open_session(self.session, self.policy) as session:
                async with session.get(url, timeout=self.policy.client_timeout()) as response:
                    data = await read_json(response, self.SERVICE)
            return Result.success(self._to_verdict(data))
        except asyncio.TimeoutError:
            error = AdapterError(self.SERVICE, f"timed out after {self.policy.http_timeout}s")
        except aiohttp.ClientError as e:
            error = AdapterError(self.SERVICE, f"request failed ({e})")
        except AdapterError as e:
            error = e

        logger.error(f"[RUGCHECK] Error performing rug check for {token_mint}: {error}")
        return Result.failure(str(error))

    def _to_verdict(self, data) -> RiskVerdict:
        decoded = decode(RugCheckSummary, data)
        if not decoded.ok:
            raise AdapterError(self.SERVICE, f"invalid rug check response: {decoded.error}")

        summary = decoded.value
        if not summary.success or summary.data is None:
            return RiskVerdict(passed=False, rating=0.0)

        return RiskVerdict(
            passed=True,
            rating=summary.data.rating,
            warnings=frozenset(summary.data.warnings),
        )
