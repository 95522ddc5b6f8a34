"""
Shared fixtures.

IMPORTANT: every external service is faked here. Tests never open a socket,
hit Helius, rugcheck or Jupiter, or talk to a Solana RPC node.
"""

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from solders.keypair import Keypair
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK
from websockets.frames import Close

from config import load_config
from event_filter import POOL_INIT_MARKER
from models import Result, RiskVerdict, TransactionDetails
from retry_policy import RetryPolicy

NATIVE_MINT = "So11111111111111111111111111111111111111112"


# =============================================================================
# Configuration
# =============================================================================


BASE_ENV = {
    "HELIUS_WSS_URI": "wss://mainnet.helius-rpc.com/?api-key=test",
    "HELIUS_HTTPS_URI": "https://mainnet.helius-rpc.com/?api-key=test",
    "HELIUS_API_ENDPOINT": "https://api.helius.xyz",
    "HELIUS_API_KEY": "test-key",
    "JUP_HTTPS_QUOTE_URI": "https://quote-api.jup.ag/v6/quote",
    "JUP_HTTPS_SWAP_URI": "https://quote-api.jup.ag/v6/swap",
    "SIMULATION_MODE": "true",
}


@pytest.fixture
def base_env():
    return dict(BASE_ENV)


@pytest.fixture
def bot_config(tmp_path, base_env):
    """Validated config built through the real loader, without a config.json."""
    return load_config(config_file=str(tmp_path / "missing.json"), environ=base_env)


@pytest.fixture
def policy():
    return RetryPolicy()


@pytest.fixture
def wallet():
    return Keypair()


# =============================================================================
# Stream messages
# =============================================================================


def log_notification(logs, signature="SIG1"):
    return {
        "jsonrpc": "2.0",
        "method": "logsNotification",
        "params": {
            "result": {
                "context": {"slot": 1},
                "value": {"signature": signature, "err": None, "logs": logs},
            },
            "subscription": 42,
        },
    }


@pytest.fixture
def pool_message():
    return log_notification(
        ["Program 675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8 invoke [1]", POOL_INIT_MARKER],
        signature="SIG1",
    )


@pytest.fixture
def swap_message():
    return log_notification(["Program log: ray_log: AwDh9QUAAAAA", "Program log: Instruction: SwapBaseIn"])


# =============================================================================
# Adapter doubles
# =============================================================================


@pytest.fixture
def details():
    return TransactionDetails(
        base_mint=NATIVE_MINT,
        token_mint="ABCxyz",
        observed_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def details_fetcher(details):
    fetcher = AsyncMock()
    fetcher.fetch.return_value = Result.success(details)
    return fetcher


@pytest.fixture
def risk_checker():
    checker = AsyncMock()
    checker.check.return_value = Result.success(RiskVerdict(passed=True, rating=5, warnings=frozenset()))
    return checker


@pytest.fixture
def swap_executor():
    executor = AsyncMock()
    executor.swap.return_value = Result.success("https://solscan.io/tx/TX1")
    return executor


# =============================================================================
# aiohttp doubles
# =============================================================================


class FakeResponse:
    def __init__(self, status=200, payload=None, body=None, json_error=None, raw=None):
        self.status = status
        self.payload = payload
        self.body = body
        self.json_error = json_error
        self.raw = raw

    async def json(self, content_type=None):
        if self.json_error:
            raise self.json_error
        return self.payload

    async def read(self):
        if self.raw is not None:
            return self.raw
        return (await self.text()).encode()

    async def text(self):
        # Strict decode, as aiohttp does
        if self.raw is not None:
            return self.raw.decode("utf-8")
        return self.body if self.body is not None else json.dumps(self.payload)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; records every request."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls = []

    def _request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        return self._request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._request("POST", url, **kwargs)


# =============================================================================
# websockets doubles
# =============================================================================


def abnormal_closure():
    return ConnectionClosedError(Close(1006, "connection lost"), None)


def normal_closure():
    return ConnectionClosedOK(Close(1000, "bye"), None)


class FakeWebSocket:
    """
    Replays `frames` from recv(); exceptions in the list are raised.
    Once exhausted, behaves like a dropped connection, or with block=True
    waits in recv() until close() is called.
    """

    def __init__(self, frames=(), listener=None, block=False):
        self.frames = list(frames)
        self.sent = []
        self.closed_with = None
        self.listener = listener
        self.block = block
        self._closed = asyncio.Event()

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def recv(self):
        if not self.frames:
            if self.block:
                await self._closed.wait()
                raise ConnectionClosedOK(Close(*self.closed_with), Close(*self.closed_with), rcvd_then_sent=False)
            raise abnormal_closure()
        frame = self.frames.pop(0)
        if isinstance(frame, BaseException):
            raise frame
        if isinstance(frame, dict):
            return json.dumps(frame)
        return frame

    async def close(self, code=1000, reason=""):
        self.closed_with = (code, reason)
        self._closed.set()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeConnector:
    """websockets.connect replacement handing out sockets in order."""

    def __init__(self, sockets=()):
        self.sockets = list(sockets)
        self.calls = []

    def __call__(self, uri, **kwargs):
        self.calls.append((uri, kwargs))
        if not self.sockets:
            raise OSError("connection refused")
        item = self.sockets.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeSleep:
    """Records reconnect delays and stops the listener after `stop_after` calls."""

    def __init__(self, stop_after=1):
        self.stop_after = stop_after
        self.delays = []
        self.listener = None

    async def __call__(self, delay):
        self.delays.append(delay)
        if self.listener is not None and len(self.delays) >= self.stop_after:
            self.listener.stop()


@pytest.fixture
def fake_sleep():
    return FakeSleep()
