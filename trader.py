# Filename: trader.py

import asyncio
import base64
import binascii
import logging
from typing import Any, Dict, Optional

import base58
import requests
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException, TransactionExpiredBlockheightExceededError, UnconfirmedTxError
from solana.rpc.models import TxOpts
from solders.errors import SignerError
from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from config import BotConfig
from errors import AdapterError, ConfigurationError
from models import Result
from payloads import JupiterSwapResponse, decode, summarize
from retry_policy import RetryPolicy

logger = logging.getLogger("trader")

EXPLORER_TX_URL = "https://solscan.io/tx/{}"

RPC_ERRORS = (
    SolanaRpcException,
    RPCException,
    UnconfirmedTxError,
    TransactionExpiredBlockheightExceededError,
)


def quote_is_usable(quote: Any) -> bool:
    return isinstance(quote, dict) and bool(quote)


def load_wallet(private_key: str) -> Keypair:
    """Decode the base58 secret key once at startup."""
    try:
        secret = base58.b58decode(private_key.strip())
    except ValueError as e:
        raise ConfigurationError(f"PRIV_KEY_WALLET is not valid base58 ({e})") from e
    if len(secret) != 64:
        raise ConfigurationError(f"PRIV_KEY_WALLET must decode to 64 bytes (got {len(secret)})")
    try:
        return Keypair.from_bytes(secret)
    except ValueError as e:
        raise ConfigurationError(f"PRIV_KEY_WALLET is not a valid keypair ({e})") from e


class SwapExecutor:
    """
    Buys a token with the native mint through Jupiter.

    quote -> serialized swap transaction -> local signature -> RPC submission
    -> confirmation against the latest blockhash.
    """

    SERVICE = "jupiter"

    def __init__(self, config: BotConfig, policy: RetryPolicy, wallet: Keypair,
                 rpc_client: Optional[AsyncClient] = None):
        self.config = config
        self.policy = policy
        self.wallet = wallet
        self.rpc_client = rpc_client or AsyncClient(config.helius_https_uri)

        logger.info(f"Swap executor ready for wallet {wallet.pubkey()}")

    async def swap(self, input_mint: str, output_mint: str) -> Result[str]:
        """
        Args:
            input_mint: Mint spent (native mint)
            output_mint: Mint bought (new token)

        Returns:
            Result holding the explorer URL of the confirmed transaction
        """
        try:
            quote = await self._get_quote(input_mint, output_mint)
            payload = await self._build_swap_transaction(quote)
            signature = await self._submit(payload)
        except AdapterError as e:
            logger.error(f"[SWAP] Error in swap transaction: {e}")
            return Result.failure(str(e))

        return Result.success(EXPLORER_TX_URL.format(signature))

    async def close(self):
        await self.rpc_client.close()

    async def _get_quote(self, input_mint: str, output_mint: str) -> Dict[str, Any]:
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(self.config.swap_amount),
            "slippageBps": str(self.config.slippage_bps),
        }
        quote = await self._call(requests.get, self.config.jup_quote_uri, params=params)
        if not quote_is_usable(quote):
            raise AdapterError(self.SERVICE, f"no quote data received: {summarize(quote)}")
        return quote

    async def _build_swap_transaction(self, quote: Dict[str, Any]) -> str:
        body = {
            "quoteResponse": quote,
            "userPublicKey": str(self.wallet.pubkey()),
            "wrapAndUnwrapSol": True,
            "dynamicSlippage": {"maxBps": self.config.dynamic_slippage_max_bps},
            "prioritizationFeeLamports": {
                "priorityLevelWithMaxLamports": {
                    "maxLamports": self.config.priority_max_lamports,
                    "priorityLevel": self.config.priority_level,
                },
            },
        }
        data = await self._call(
            requests.post,
            self.config.jup_swap_uri,
            json=body,
            headers={"Content-Type": "application/json"},
        )
        decoded = decode(JupiterSwapResponse, data)
        if not decoded.ok:
            raise AdapterError(self.SERVICE, f"invalid swap transaction response: {decoded.error}")
        return decoded.value.transaction

    async def _call(self, method, url: str, **kwargs) -> Any:
        """Run a blocking requests call in the default executor."""
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(
                None,
                lambda: method(url, timeout=self.policy.http_timeout, **kwargs)
            )
        except requests.Timeout:
            raise AdapterError(self.SERVICE, f"timed out after {self.policy.http_timeout}s")
        except requests.RequestException as e:
            raise AdapterError(self.SERVICE, f"request failed ({e})")

        if response.status_code != 200:
            raise AdapterError(
                self.SERVICE,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise AdapterError(self.SERVICE, f"invalid JSON body ({e})")

    def _sign(self, payload: str) -> VersionedTransaction:
        try:
            unsigned = VersionedTransaction.from_bytes(base64.b64decode(payload))
            return VersionedTransaction(unsigned.message, [self.wallet])
        except (binascii.Error, ValueError, SignerError) as e:
            raise AdapterError(self.SERVICE, f"cannot sign swap transaction ({e})")

    async def _submit(self, payload: str) -> Signature:
        transaction = self._sign(payload)

        try:
            latest = (await self.rpc_client.get_latest_blockhash()).value
            sent = await self.rpc_client.send_raw_transaction(
                bytes(transaction),
                opts=TxOpts(skip_preflight=True, max_retries=self.policy.submit_max_retries),
            )
            signature = sent.value
            logger.info(f"[SWAP] Submitted {signature}, waiting for confirmation")

            confirmation = await asyncio.wait_for(
                self.rpc_client.confirm_transaction(
                    signature,
                    commitment=Confirmed,
                    sleep_seconds=self.policy.confirm_interval,
                    last_valid_block_height=latest.last_valid_block_height,
                ),
                timeout=self.policy.confirm_timeout,
            )
        except asyncio.TimeoutError:
            raise AdapterError("rpc", f"confirmation timed out after {self.policy.confirm_timeout}s")
        except RPC_ERRORS as e:
            raise AdapterError("rpc", f"transaction submission failed ({e})")

        statuses = confirmation.value or []
        status = statuses[0] if statuses else None
        if status is None:
            raise AdapterError("rpc", f"no status for {signature}")
        if status.err:
            raise AdapterError("rpc", f"transaction failed: {status.err}")

        return signature
