"""
/cycle — focus cycle controls, current countdown and a live WebSocket stream.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect

from ...actions.cycle import CycleEngine, Phase
from ...api.schemas import CycleStateOut, ResetRequest

router = APIRouter(prefix="/cycle", tags=["cycle"])


def _get_cycle(request: Request) -> CycleEngine:
    return request.app.state.cycle


@router.get("", response_model=CycleStateOut)
async def get_cycle(cycle: CycleEngine = Depends(_get_cycle)):
    """Return the current phase and countdown (runs a pending transition first)."""
    return CycleStateOut.from_snapshot(cycle.tick())


@router.post("/start", response_model=CycleStateOut)
async def start_cycle(cycle: CycleEngine = Depends(_get_cycle)):
    return CycleStateOut.from_snapshot(cycle.start())


@router.post("/pause", response_model=CycleStateOut)
async def pause_cycle(cycle: CycleEngine = Depends(_get_cycle)):
    return CycleStateOut.from_snapshot(cycle.pause())


@router.post("/reset", response_model=CycleStateOut)
async def reset_cycle(
    req: Optional[ResetRequest] = None,
    cycle: CycleEngine = Depends(_get_cycle),
):
    """Stop, clear the round count and return to *phase* (default: work)."""
    phase = req.phase if req else None
    return CycleStateOut.from_snapshot(cycle.reset(phase))


@router.post("/skip", response_model=CycleStateOut)
async def skip_phase(cycle: CycleEngine = Depends(_get_cycle)):
    """End the current phase immediately, as if its countdown had run out."""
    return CycleStateOut.from_snapshot(cycle.skip())


@router.post("/phase/{phase}", response_model=CycleStateOut)
async def switch_phase(phase: Phase, cycle: CycleEngine = Depends(_get_cycle)):
    return CycleStateOut.from_snapshot(cycle.switch_phase(phase))


@router.websocket("/ws")
async def cycle_websocket(websocket: WebSocket):
    """
    WebSocket stream — pushes the cycle snapshot on every change and at
    least once per second so the dashboard countdown keeps moving.
    """
    cycle: CycleEngine = websocket.app.state.cycle
    await websocket.accept()
    changes: asyncio.Queue = asyncio.Queue()
    unsubscribe = cycle.subscribe(changes.put_nowait)
    closed = asyncio.ensure_future(_wait_closed(websocket))
    try:
        snap = cycle.snapshot()
        while not closed.done():
            await websocket.send_json(CycleStateOut.from_snapshot(snap).model_dump(mode="json"))
            getter = asyncio.ensure_future(changes.get())
            done, _ = await asyncio.wait(
                {getter, closed}, timeout=1.0, return_when=asyncio.FIRST_COMPLETED
            )
            if getter in done:
                snap = getter.result()
            else:
                getter.cancel()
                snap = cycle.snapshot()
    except WebSocketDisconnect:
        pass
    finally:
        closed.cancel()
        unsubscribe()


async def _wait_closed(websocket: WebSocket) -> None:
    """Drain client messages until the socket closes."""
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
