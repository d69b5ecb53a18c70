"""Binance WebSocket client for the real-time trade stream using picows."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from picows import ws_connect, WSFrame, WSTransport, WSListener, WSMsgType, WSCloseCode

logger = logging.getLogger(__name__)

# Type alias for price callback: (price, trade time)
PriceCallback = Callable[[float, datetime], Awaitable[None]]


def parse_trade_message(message: str) -> tuple[float, datetime] | None:
    """
    Extract (price, trade time) from a trade stream message.

    Returns None for subscription replies and other non-trade messages.

    Raises:
        ValueError: If the message is not valid JSON or carries a bad price
    """
    data = json.loads(message)

    if not isinstance(data, dict) or "result" in data or "id" in data:
        return None
    if data.get("e") != "trade":
        return None

    price = float(data["p"])
    if not price > 0:
        raise ValueError(f"Non-positive trade price {data['p']!r}")

    trade_time = data.get("T") or data.get("E")
    if trade_time:
        timestamp = datetime.fromtimestamp(trade_time / 1000, tz=timezone.utc)
    else:
        timestamp = datetime.now(timezone.utc)
    return price, timestamp


class BinanceTradeListener(WSListener):
    """picows listener for a Binance trade stream."""

    def __init__(
        self,
        stream: str,
        callbacks: list[PriceCallback],
        on_connected: Callable[[], None],
        on_disconnected: Callable[[], None],
        loop: asyncio.AbstractEventLoop,
    ):
        self._stream = stream
        self._callbacks = callbacks
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected
        self._transport: WSTransport | None = None
        # picows callbacks may run from different threads
        self._loop = loop

    def on_ws_connected(self, transport: WSTransport):
        """Called when WebSocket connection is established."""
        self._transport = transport
        logger.info("picows: trade WebSocket connected")
        self._send_subscribe([self._stream])
        self._on_connected()

    def on_ws_disconnected(self, transport: WSTransport):
        """Called when WebSocket is disconnected."""
        logger.info("picows: trade WebSocket disconnected")
        self._transport = None
        self._on_disconnected()

    def on_ws_frame(self, transport: WSTransport, frame: WSFrame):
        """Called when a new frame is received."""
        if frame.msg_type == WSMsgType.TEXT:
            payload = frame.get_payload_as_utf8_text()
            self._handle_message(payload)
        elif frame.msg_type == WSMsgType.PING:
            transport.send_pong(frame.get_payload_as_bytes())

    def _send_subscribe(self, streams: list[str]) -> None:
        """Send subscription request."""
        if not self._transport:
            return

        msg = {
            "method": "SUBSCRIBE",
            "params": streams,
            "id": int(datetime.now().timestamp() * 1000),
        }
        self._transport.send(WSMsgType.TEXT, json.dumps(msg).encode())
        logger.info(f"Subscribed to trade streams: {streams}")

    def _handle_message(self, message: str) -> None:
        """Handle incoming WebSocket message."""
        try:
            parsed = parse_trade_message(message)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to parse trade message: {e}")
            return

        if parsed is None:
            return

        price, timestamp = parsed
        for callback in self._callbacks:
            asyncio.run_coroutine_threadsafe(
                self._safe_callback(callback, price, timestamp), self._loop
            )

    async def _safe_callback(
        self, callback: PriceCallback, price: float, timestamp: datetime
    ) -> None:
        """Safely execute async callback."""
        try:
            await callback(price, timestamp)
        except Exception as e:
            logger.error(f"Trade callback error: {e}")

    def disconnect(self) -> None:
        """Disconnect the WebSocket."""
        if self._transport:
            self._transport.send_close(WSCloseCode.OK)
            self._transport.disconnect()


class BinanceTradeWebSocket:
    """WebSocket client for one Binance spot trade stream using picows."""

    WS_URL = "wss://stream.binance.com:9443/ws"

    def __init__(self, symbol: str, ws_url: str | None = None):
        self.symbol = symbol
        self.ws_url = ws_url or self.WS_URL
        self._stream = f"{symbol.lower()}@trade"
        self._callbacks: list[PriceCallback] = []
        self._running = False
        self._reconnect_delay = 1.0
        self._max_reconnect_delay = 60.0
        self._task: asyncio.Task | None = None
        self._listener: BinanceTradeListener | None = None
        self._disconnected = asyncio.Event()

    def on_price(self, callback: PriceCallback) -> None:
        """Register callback for price updates.

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    async def start(self) -> None:
        """Start the WebSocket connection and message processing."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the WebSocket connection."""
        self._running = False
        if self._listener:
            self._listener.disconnect()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def _on_connected(self) -> None:
        """Called when connection is established."""
        self._disconnected.clear()
        self._reconnect_delay = 1.0

    def _on_disconnected(self) -> None:
        """Called when connection is lost."""
        self._disconnected.set()

    async def _run(self) -> None:
        """Main WebSocket loop with reconnection."""
        while self._running:
            try:
                await self._connect_and_process()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"picows trade stream error: {e}")

            if self._running:
                logger.info(
                    f"Reconnecting trade WS in {self._reconnect_delay} seconds..."
                )
                await asyncio.sleep(self._reconnect_delay)
                self._reconnect_delay = min(
                    self._reconnect_delay * 2, self._max_reconnect_delay
                )

    async def _connect_and_process(self) -> None:
        """Connect to WebSocket and wait for disconnection."""
        self._disconnected.clear()

        # Capture event loop here (in async context) to pass to listener
        loop = asyncio.get_running_loop()

        def listener_factory():
            self._listener = BinanceTradeListener(
                stream=self._stream,
                callbacks=self._callbacks,
                on_connected=self._on_connected,
                on_disconnected=self._on_disconnected,
                loop=loop,
            )
            return self._listener

        logger.info(f"Connecting trade WS to {self.ws_url}")
        await ws_connect(
            listener_factory,
            self.ws_url,
            enable_auto_ping=True,
            auto_ping_idle_timeout=30,
            auto_ping_reply_timeout=10,
        )

        # Wait until disconnected
        await self._disconnected.wait()
