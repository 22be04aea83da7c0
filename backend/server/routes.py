"""
Route registration for the adaptive quality API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire gateway to WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json
import time

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from observability.logger import log_event
from session.gateway import GatewayResult, QualityGateway


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        """
        One connection = one client session = one gateway.

        Inbound messages are handled in order; control messages produced
        by timer commits are pushed by a companion task.
        """
        await ws.accept()

        gateway = QualityGateway(config=app.state.config)
        pump: asyncio.Task[None] | None = None

        try:
            result = await gateway.on_ws_connect()
            await _flush_gateway_result(ws, result)

            pump = asyncio.create_task(_pump_control(ws, gateway))

            while True:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect()

                if msg.get("text") is not None:
                    result = await gateway.on_json_message(msg["text"])
                    await _flush_gateway_result(ws, result)

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            _log_fatal_error(gateway, exc)
            await gateway.on_ws_disconnect(reason="server_error")

        finally:
            if pump is not None:
                pump.cancel()
                await asyncio.gather(pump, return_exceptions=True)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

async def _pump_control(ws: WebSocket, gateway: QualityGateway) -> None:
    """Forward timer-driven control messages until cancelled."""
    while True:
        result = await gateway.next_control()
        await _flush_gateway_result(ws, result)


async def _flush_gateway_result(
    ws: WebSocket,
    result: GatewayResult,
) -> None:
    """Send all outbound messages produced by gateway, in order."""
    for msg in result.outbound_json:
        await ws.send_text(json.dumps(msg))


def _log_fatal_error(gateway: QualityGateway, exc: Exception) -> None:
    log_event({
        "ts_ms": time.time_ns() // 1_000_000,
        "level": "ERROR",
        "event_type": "WS_FATAL_ERROR",
        "session_id": gateway.session.session_id if gateway.session else None,
        "exception": type(exc).__name__,
        "message": str(exc),
    })
