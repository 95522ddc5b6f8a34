"""
Tests for the Jupiter swap executor and wallet loading.

requests and the Solana RPC client are mocked; signing uses a real
solders Keypair over a locally compiled transaction.
"""

import asyncio
import base64
import dataclasses
from unittest.mock import AsyncMock, MagicMock, patch

import base58
import pytest
import requests
from solana.rpc.core import RPCException
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0, to_bytes_versioned
from solders.null_signer import NullSigner
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from conftest import NATIVE_MINT
from errors import ConfigurationError
from simulated_trader import SimulatedSwapExecutor
from trader import SwapExecutor, load_wallet

QUOTE = {"inputMint": NATIVE_MINT, "outputMint": "ABCxyz", "outAmount": "123456", "slippageBps": 200}


def http_response(payload, status=200):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = payload
    response.text = str(payload)
    return response


@pytest.fixture
def unsigned_payload(wallet):
    """Base64 swap transaction as Jupiter returns it: message compiled, signature slot empty."""
    return unsigned_for(wallet.pubkey())


def unsigned_for(fee_payer):
    message = MessageV0.try_compile(fee_payer, [], [], Hash.default())
    transaction = VersionedTransaction(message, [NullSigner(fee_payer)])
    return base64.b64encode(bytes(transaction)).decode()


@pytest.fixture
def rpc_client():
    client = AsyncMock()
    client.get_latest_blockhash.return_value = MagicMock(
        value=MagicMock(blockhash=Hash.default(), last_valid_block_height=1000)
    )
    client.send_raw_transaction.return_value = MagicMock(value=Signature.default())
    client.confirm_transaction.return_value = MagicMock(value=[MagicMock(err=None)])
    return client


@pytest.fixture
def executor(bot_config, policy, wallet, rpc_client):
    return SwapExecutor(bot_config, policy, wallet=wallet, rpc_client=rpc_client)


class TestSwapExecutor:

    @pytest.mark.asyncio
    async def test_successful_swap_returns_explorer_url(self, executor, unsigned_payload, rpc_client):
        with patch("trader.requests.get", return_value=http_response(QUOTE)), \
             patch("trader.requests.post", return_value=http_response({"transaction": unsigned_payload})):
            result = await executor.swap(NATIVE_MINT, "ABCxyz")

        assert result.ok
        assert result.value == f"https://solscan.io/tx/{Signature.default()}"
        rpc_client.confirm_transaction.assert_awaited_once()
        assert rpc_client.confirm_transaction.await_args.kwargs["last_valid_block_height"] == 1000

    @pytest.mark.asyncio
    async def test_quote_request_uses_configured_amount_and_slippage(self, executor, unsigned_payload):
        with patch("trader.requests.get", return_value=http_response(QUOTE)) as get, \
             patch("trader.requests.post", return_value=http_response({"transaction": unsigned_payload})) as post:
            await executor.swap(NATIVE_MINT, "ABCxyz")

        assert get.call_args.kwargs["params"] == {
            "inputMint": NATIVE_MINT,
            "outputMint": "ABCxyz",
            "amount": "10000000",
            "slippageBps": "200",
        }
        assert get.call_args.kwargs["timeout"] == 5.0

        body = post.call_args.kwargs["json"]
        assert body["quoteResponse"] == QUOTE
        assert body["userPublicKey"] == str(executor.wallet.pubkey())
        assert body["wrapAndUnwrapSol"] is True
        assert body["dynamicSlippage"] == {"maxBps": 300}
        assert body["prioritizationFeeLamports"]["priorityLevelWithMaxLamports"] == {
            "maxLamports": 1_000_000,
            "priorityLevel": "veryHigh",
        }

    @pytest.mark.asyncio
    async def test_submits_signed_transaction_with_bounded_retries(self, executor, unsigned_payload,
                                                                   rpc_client, wallet):
        with patch("trader.requests.get", return_value=http_response(QUOTE)), \
             patch("trader.requests.post", return_value=http_response({"swapTransaction": unsigned_payload})):
            await executor.swap(NATIVE_MINT, "ABCxyz")

        raw, = rpc_client.send_raw_transaction.await_args.args
        opts = rpc_client.send_raw_transaction.await_args.kwargs["opts"]
        submitted = VersionedTransaction.from_bytes(raw)
        assert submitted.signatures[0] != Signature.default()
        assert submitted.signatures[0].verify(wallet.pubkey(), to_bytes_versioned(submitted.message))
        assert opts.skip_preflight is True
        assert opts.max_retries == 3

    @pytest.mark.asyncio
    async def test_quote_timeout_fails_without_submitting(self, executor, rpc_client):
        with patch("trader.requests.get", side_effect=requests.Timeout("read timed out")):
            result = await executor.swap(NATIVE_MINT, "ABCxyz")

        assert not result.ok
        assert "timed out" in result.error
        rpc_client.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_quote_fails(self, executor):
        with patch("trader.requests.get", return_value=http_response({})), \
             patch("trader.requests.post") as post:
            result = await executor.swap(NATIVE_MINT, "ABCxyz")

        assert not result.ok
        post.assert_not_called()

    @pytest.mark.asyncio
    async def test_http_error_status_fails(self, executor):
        with patch("trader.requests.get", return_value=http_response({"error": "no route"}, status=400)):
            result = await executor.swap(NATIVE_MINT, "ABCxyz")

        assert not result.ok
        assert "400" in result.error

    @pytest.mark.asyncio
    async def test_missing_transaction_in_swap_response_fails(self, executor, rpc_client):
        with patch("trader.requests.get", return_value=http_response(QUOTE)), \
             patch("trader.requests.post", return_value=http_response({"error": "bad quote"})):
            result = await executor.swap(NATIVE_MINT, "ABCxyz")

        assert not result.ok
        rpc_client.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_undecodable_transaction_fails(self, executor, rpc_client):
        with patch("trader.requests.get", return_value=http_response(QUOTE)), \
             patch("trader.requests.post", return_value=http_response({"transaction": "!!not base64!!"})):
            result = await executor.swap(NATIVE_MINT, "ABCxyz")

        assert not result.ok
        rpc_client.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rpc_rejection_fails(self, executor, unsigned_payload, rpc_client):
        rpc_client.send_raw_transaction.side_effect = RPCException("blockhash not found")

        with patch("trader.requests.get", return_value=http_response(QUOTE)), \
             patch("trader.requests.post", return_value=http_response({"transaction": unsigned_payload})):
            result = await executor.swap(NATIVE_MINT, "ABCxyz")

        assert not result.ok
        assert "submission failed" in result.error

    @pytest.mark.asyncio
    async def test_on_chain_error_fails(self, executor, unsigned_payload, rpc_client):
        rpc_client.confirm_transaction.return_value = MagicMock(value=[MagicMock(err="InstructionError")])

        with patch("trader.requests.get", return_value=http_response(QUOTE)), \
             patch("trader.requests.post", return_value=http_response({"transaction": unsigned_payload})):
            result = await executor.swap(NATIVE_MINT, "ABCxyz")

        assert not result.ok
        assert "transaction failed" in result.error

    @pytest.mark.asyncio
    async def test_confirmation_timeout_fails(self, bot_config, policy, wallet, unsigned_payload, rpc_client):
        async def never_confirms(*args, **kwargs):
            await asyncio.Event().wait()

        rpc_client.confirm_transaction.side_effect = never_confirms
        executor = SwapExecutor(bot_config, dataclasses.replace(policy, confirm_timeout=0.05),
                                wallet=wallet, rpc_client=rpc_client)

        with patch("trader.requests.get", return_value=http_response(QUOTE)), \
             patch("trader.requests.post", return_value=http_response({"transaction": unsigned_payload})):
            result = await executor.swap(NATIVE_MINT, "ABCxyz")

        assert not result.ok
        assert "confirmation timed out" in result.error

    @pytest.mark.asyncio
    async def test_transaction_for_another_fee_payer_fails(self, executor, rpc_client):
        foreign = unsigned_for(Keypair().pubkey())

        with patch("trader.requests.get", return_value=http_response(QUOTE)), \
             patch("trader.requests.post", return_value=http_response({"transaction": foreign})):
            result = await executor.swap(NATIVE_MINT, "ABCxyz")

        assert not result.ok
        assert "cannot sign" in result.error
        rpc_client.send_raw_transaction.assert_not_awaited()


class TestLoadWallet:

    def test_loads_base58_secret(self, wallet):
        secret = base58.b58encode(bytes(wallet)).decode()

        assert load_wallet(secret).pubkey() == wallet.pubkey()

    @pytest.mark.parametrize("secret", ["", "0OIl", base58.b58encode(b"short").decode()])
    def test_invalid_secret_is_a_configuration_error(self, secret):
        with pytest.raises(ConfigurationError):
            load_wallet(secret)


class TestSimulatedSwapExecutor:

    @pytest.mark.asyncio
    async def test_records_swap_and_returns_reference(self, bot_config):
        executor = SimulatedSwapExecutor(bot_config)

        result = await executor.swap(NATIVE_MINT, "ABCxyz")

        assert result.ok
        assert result.value.startswith("sim-")
        assert executor.swaps == [(NATIVE_MINT, "ABCxyz")]
