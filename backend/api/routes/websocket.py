"""WebSocket endpoint for real-time plant state streaming."""

import asyncio
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from backend.core.config import settings
from backend.services.simulation_manager import SimulationManager

router = APIRouter()
manager = SimulationManager()


@router.websocket("/{simulation_id}")
async def simulation_stream(websocket: WebSocket, simulation_id: UUID):
    """Stream the simulation snapshot at ~1 Hz.

    Each frame carries the plant variables, alerts, loop modes, controller
    outputs, and the per-second trend history. A final {"event": "stopped"}
    frame is sent when the simulation stops.
    """
    await websocket.accept()

    try:
        while True:
            state = await manager.get_state(simulation_id)
            if state is None:
                await websocket.send_json({"error": "simulation not found"})
                break

            await websocket.send_json(state)
            if state["status"] in ("stopped", "failed"):
                await websocket.send_json({"event": state["status"]})
                break

            await asyncio.sleep(settings.WS_STREAM_INTERVAL_S)

    except WebSocketDisconnect:
        pass
    except Exception:
        await websocket.close()
