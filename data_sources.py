"""
Transaction details lookup for freshly detected pools.

Uses the Helius enhanced-transactions API to turn a pool-creation signature
into the pair of mints the pool trades: the configured native mint (wrapped
SOL) and the newly created token.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from config import BotConfig
from errors import AdapterError
from models import Result, TransactionDetails
from payloads import EnhancedTransaction, decode, summarize
from retry_policy import RetryPolicy

logger = logging.getLogger("data_sources")


def first_element(data: Any) -> Optional[Dict[str, Any]]:
    if isinstance(data, list) and data and isinstance(data[0], dict):
        return data[0]
    return None


@asynccontextmanager
async def open_session(session: Optional[aiohttp.ClientSession],
                       policy: RetryPolicy) -> AsyncIterator[aiohttp.ClientSession]:
    """Reuse an injected session, or open one for the duration of a single call."""
    if session is not None:
        yield session
        return
    async with aiohttp.ClientSession(timeout=policy.client_timeout()) as own_session:
        yield own_session


async def read_json(response: Any, service: str) -> Any:
    if response.status != 200:
        # Error pages are not always UTF-8
        body = (await response.read()).decode("utf-8", errors="replace")
        raise AdapterError(service, f"HTTP {response.status}: {body[:200]}", status=response.status)
    try:
        return await response.json(content_type=None)
    except ValueError as e:
        raise AdapterError(service, f"invalid JSON body ({e})")


class DetailsFetcher:
    """
    Fetches the mints involved in a pool-creation transaction.

    The token mint is the first tokenTransfers[].mint that differs from the
    native mint; the base mint is always the configured native mint.
    """

    SERVICE = "helius"

    def __init__(self, config: BotConfig, policy: RetryPolicy,
                 session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.policy = policy
        self.session = session

    async def fetch(self, signature: str) -> Result[TransactionDetails]:
        logger.info(f"Fetching transaction details for signature: {signature}")
        try:
            data = await self._post_transactions(signature)
            return Result.success(self._extract(signature, data))
        except AdapterError as e:
            if e.status == 401:
                logger.error(
                    "Helius API authentication failed. Check HELIUS_API_KEY and "
                    "that the key has remaining credits."
                )
            else:
                logger.warning(f"[DETAILS] {e}")
            return Result.failure(str(e))

    async def _post_transactions(self, signature: str) -> Any:
        url = f"{self.config.helius_api_endpoint}/v0/transactions/"
        params = {"api-key": self.config.helius_api_key}
        payload = {"transactions": [signature]}

        try:
            async with open_session(self.session, self.policy) as session:
                async with session.post(
                    url,
                    params=params,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                    timeout=self.policy.client_timeout(),
                ) as response:
                    return await read_json(response, self.SERVICE)
        except asyncio.TimeoutError:
            raise AdapterError(self.SERVICE, f"timed out after {self.policy.http_timeout}s")
        except aiohttp.ClientError as e:
            raise AdapterError(self.SERVICE, f"request failed ({e})")

    def _extract(self, signature: str, data: Any) -> TransactionDetails:
        if isinstance(data, list) and not data:
            raise AdapterError(self.SERVICE, f"no transaction data found for {signature}")

        element = first_element(data)
        if element is None:
            raise AdapterError(self.SERVICE, f"invalid response format: {summarize(data)}")

        decoded = decode(EnhancedTransaction, element)
        if not decoded.ok:
            raise AdapterError(self.SERVICE, decoded.error)

        native_mint = self.config.native_mint
        token_mint = next((m for m in decoded.value.mints() if m != native_mint), None)
        if not token_mint:
            raise AdapterError(self.SERVICE, "could not find token mint in transaction")

        logger.debug(f"Transaction {signature}: {native_mint} / {token_mint}")
        return TransactionDetails(
            base_mint=native_mint,
            token_mint=token_mint,
            observed_at=datetime.now(timezone.utc),
        )
