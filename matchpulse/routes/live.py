"""
Live pipeline endpoints.

- /health: liveness + poller summary
- /state: application state, poller cadence, ambient effect
- /snapshot: last categorized snapshot
- /events/recent: event history ring buffer (newest first)
- /activity: user interaction signal (may trigger an immediate poll)
- /connectivity: online/offline signal
- /metrics: Prometheus exposition
"""

from typing import Literal

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from matchpulse.live.poller import ACTIVITY_SIGNALS
from matchpulse.runtime import LiveContext
from matchpulse.telemetry import get_metrics_text

router = APIRouter(tags=["live"])


class ActivityRequest(BaseModel):
    signal: str = "click"


class ConnectivityRequest(BaseModel):
    status: Literal["online", "offline"]


def _ctx(request: Request) -> LiveContext:
    return request.app.state.live


def _serialize_payload(payload: dict) -> dict:
    out = {}
    for key, value in payload.items():
        out[key] = value.to_dict() if hasattr(value, "to_dict") else value
    return out


@router.get("/health")
async def health(request: Request):
    ctx = _ctx(request)
    return {
        "status": "ok",
        "app_state": ctx.state.get_state(),
        "poller": ctx.poller.status(),
    }


@router.get("/state")
async def get_state(request: Request):
    ctx = _ctx(request)
    return {
        "app_state": ctx.state.get_state(),
        "poller": ctx.poller.status(),
        "ambient": {"effect": ctx.ambient.current_effect, "color": ctx.ambient.color},
        "tracked_match": ctx.detector.previous.to_dict() if ctx.detector.previous else None,
    }


@router.get("/snapshot")
async def get_snapshot(request: Request):
    ctx = _ctx(request)
    snapshot = ctx.poller.last_snapshot
    if snapshot is None:
        # No successful poll yet; a non-forced read may still be served from cache
        result = await ctx.source.fetch()
        if not result.success:
            raise HTTPException(status_code=503, detail=f"No snapshot yet: {result.error}")
        snapshot = result.data
    return {
        "fetched_at": snapshot.fetched_at.isoformat(),
        "live": [m.to_dict() for m in snapshot.live],
        "upcoming": [m.to_dict() for m in snapshot.upcoming],
        "finished": [m.to_dict() for m in snapshot.finished],
        "standings": list(snapshot.standings),
    }


@router.get("/events/recent")
async def recent_events(request: Request):
    return [
        {
            "type": event.event_type,
            "payload": _serialize_payload(event.payload),
            "timestamp": event.created_at.isoformat(),
        }
        for event in _ctx(request).bus.history
    ]


@router.post("/activity")
async def activity(body: ActivityRequest, request: Request):
    if body.signal not in ACTIVITY_SIGNALS:
        raise HTTPException(status_code=422, detail=f"Unknown activity signal: {body.signal}")
    task = _ctx(request).poller.record_activity(body.signal)
    return {"poll_triggered": task is not None}


@router.post("/connectivity")
async def connectivity(body: ConnectivityRequest, request: Request):
    ctx = _ctx(request)
    ctx.state.set_online(body.status == "online")
    return {"app_state": ctx.state.get_state()}


@router.get("/metrics")
async def metrics():
    content, content_type = get_metrics_text()
    return PlainTextResponse(content=content, media_type=content_type)
