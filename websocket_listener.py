"""
Subscription lifecycle for Raydium pool-creation logs.

    DISCONNECTED -> CONNECTING -> SUBSCRIBED -> CLOSING -> PROCESSING_EVENT -> CONNECTING ...
                         ^             |
                         +-- delay ----+  (transport error or server-side close)

At most one candidate is ever in flight: the socket is closed before the
pipeline runs and a brand new subscription is opened once it resolves.
"""

import asyncio
import json
import logging
from typing import Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from config import BotConfig
from errors import ConfigurationError, TransportError
from event_filter import classify
from models import ConnectionState, PoolCandidate, SubscriptionRequest
from payloads import decode_frame
from retry_policy import RetryPolicy

logger = logging.getLogger("WebSocketListener")

NORMAL_CLOSURE = 1000

StateCallback = Callable[[ConnectionState], None]


class WebSocketListener:
    def __init__(self, config: BotConfig, pipeline, policy: RetryPolicy,
                 on_state_change: Optional[StateCallback] = None,
                 connect=None, sleep=None):
        self.uri = config.helius_wss_uri
        self.request = SubscriptionRequest(
            program_id=config.raydium_program_id,
            commitment=config.commitment,
        )
        self.pipeline = pipeline
        self.policy = policy
        self.on_state_change = on_state_change

        self._connect = connect or websockets.connect
        self._sleep = sleep or asyncio.sleep
        self._state = ConnectionState.DISCONNECTED
        self._stop_event = asyncio.Event()
        self._ws = None
        self._shutdown_task = None

        self.reconnect_count = 0
        self.candidates_seen = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    def _set_state(self, state: ConnectionState):
        if self._state == state:
            return
        logger.debug(f"[WS] {self._state.value} -> {state.value}")
        self._state = state
        if self.on_state_change:
            self.on_state_change(state)

    def stop(self):
        """Request shutdown. Ends the live subscription if there is one."""
        self._stop_event.set()
        if self._ws is not None and self._shutdown_task is None:
            self._shutdown_task = asyncio.ensure_future(self._close(self._ws, "Shutting down"))

    async def start(self):
        """Run the subscription loop. Only returns after stop()."""
        self._stop_event.clear()
        self._shutdown_task = None

        while not self._stop_event.is_set():
            try:
                candidate = await self._listen()
            except TransportError as e:
                self._set_state(ConnectionState.DISCONNECTED)
                if self._stop_event.is_set():
                    break
                if e.close_code == NORMAL_CLOSURE:
                    logger.info(f"[WS] Server ended the subscription: {e}")
                else:
                    logger.warning(f"[WS] {e}")
                await self._wait_before_reconnect()
                continue

            await self._process(candidate)

        if self._shutdown_task is not None:
            await self._shutdown_task
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("[WS] Listener stopped")

    async def _listen(self) -> PoolCandidate:
        """Open one subscription and return the first accepted candidate."""
        self._set_state(ConnectionState.CONNECTING)
        try:
            async with self._connect(
                self.uri,
                ping_interval=20,
                ping_timeout=10,
                close_timeout=5,
            ) as ws:
                self._ws = ws
                await ws.send(json.dumps(self.request.to_payload()))
                self._set_state(ConnectionState.SUBSCRIBED)
                logger.info("[WS] Connection established and listening")

                while True:
                    candidate = self._handle_frame(await ws.recv())
                    if candidate is None:
                        continue

                    self._set_state(ConnectionState.CLOSING)
                    await self._close(ws, "Handling transaction")
                    return candidate

        except ConnectionClosed as e:
            close = getattr(e, "rcvd", None)
            code = close.code if close is not None else None
            reason = close.reason if close is not None else ""
            raise TransportError(f"WebSocket closed with code {code} and reason: {reason}", close_code=code)
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            raise TransportError(f"WebSocket connection error: {e!r}")
        finally:
            self._ws = None

    def _handle_frame(self, raw) -> Optional[PoolCandidate]:
        frame = decode_frame(raw)
        if not frame.ok:
            logger.debug(f"[WS] Dropped frame: {frame.error}")
            return None
        return classify(frame.value)

    async def _close(self, ws, reason: str):
        try:
            await ws.close(code=NORMAL_CLOSURE, reason=reason)
        except WebSocketException as e:
            logger.debug(f"[WS] Error closing socket: {e}")

    async def _process(self, candidate: PoolCandidate):
        self._set_state(ConnectionState.PROCESSING_EVENT)
        self.candidates_seen += 1

        try:
            outcome = await self.pipeline.run(candidate)
        except ConfigurationError:
            raise
        except Exception:
            logger.exception(f"[WS] Error handling new pool {candidate.signature}")
            return

        if outcome.succeeded:
            logger.info(f"[WS] Swap done for {candidate.signature}: {outcome.reference}")
        else:
            stage = outcome.stage.value if outcome.stage else "unknown"
            logger.info(f"[WS] Candidate {candidate.signature} stopped at {stage}: {outcome.reason}")

    async def _wait_before_reconnect(self):
        if self._stop_event.is_set():
            return
        self.reconnect_count += 1
        logger.info(
            f"[WS] Reconnecting in {self.policy.reconnect_delay:.1f}s "
            f"(attempt #{self.reconnect_count})..."
        )
        await self._sleep(self.policy.reconnect_delay)
