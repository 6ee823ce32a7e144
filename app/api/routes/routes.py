# path: route-replay-api/app/api/routes/routes.py

from __future__ import annotations

import asyncio
import json
import logging
import math
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
import uuid

from app import config as C
from app.api.deps import PlayerRegistry, get_registry, get_road_router
from app.errors import DegenerateRouteError
from app.models.playback import FrameUpdate, StopChange
from app.models.route_models import (
    BBoxWGS84,
    CoordinateOut,
    FrameOut,
    LegSummary,
    PoseAtResponse,
    PoseOut,
    RouteLoadRequest,
    RouteSummary,
    SeekRequest,
    SpeedRequest,
    StopChangeOut,
)
from app.services.frame_scheduler import AsyncioFrameScheduler
from app.services.road_router import RoadRouter
from app.services.route_player import RoutePlayer, RouteSnapshot, build_snapshot
from app.utils.geo import bbox_wgs84, polyline_length_m

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


def _summary(route_id: str, snap: RouteSnapshot) -> RouteSummary:
    table = snap.table
    legs = [
        LegSummary(
            i=i,
            duration_s=snap.timeline.leg_durations[i],
            distance_m=polyline_length_m(coords),
            point_count=len(coords),
            snapped=table.snapped[i],
        )
        for i, coords in enumerate(table.legs)
    ]
    bbox = bbox_wgs84(table.flattened or [w.coordinate for w in snap.waypoints])
    return RouteSummary(
        route_id=route_id,
        route_version=snap.version,
        animatable=snap.animatable,
        total_duration_s=snap.timeline.total_duration,
        stop_count=len(snap.waypoints),
        point_count=table.point_count,
        legs=legs,
        bbox_wgs84=BBoxWGS84(**bbox),
        planned_path=[CoordinateOut.model_validate(c) for c in table.flattened],
    )


def _player_or_404(route_id: str, registry: PlayerRegistry) -> RoutePlayer:
    player = registry.get(route_id)
    if player is None:
        raise HTTPException(status_code=404, detail=f"route {route_id} not found")
    return player


def _frame_or_409(player: RoutePlayer) -> FrameOut:
    if player.latest is None:
        raise HTTPException(status_code=409, detail="route is not animatable")
    return FrameOut.model_validate(player.latest)


async def _snapshot_for(req: RouteLoadRequest, road_router: RoadRouter) -> RouteSnapshot:
    geometries = None
    if req.snap_to_roads and len(req.waypoints) >= 2:
        geometries = await road_router.fetch_legs(req.waypoints)
    try:
        return build_snapshot(req.waypoints, geometries)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("", response_model=RouteSummary)
async def create_route(
    req: RouteLoadRequest,
    registry: PlayerRegistry = Depends(get_registry),
    road_router: RoadRouter = Depends(get_road_router),
) -> RouteSummary:
    snap = await _snapshot_for(req, road_router)
    route_id = str(uuid.uuid4())
    registry.add(route_id, RoutePlayer(snap, scheduler=AsyncioFrameScheduler(C.FRAME_HZ)))
    return _summary(route_id, snap)


@router.put("/{route_id}", response_model=RouteSummary)
async def reload_route(
    route_id: str,
    req: RouteLoadRequest,
    registry: PlayerRegistry = Depends(get_registry),
    road_router: RoadRouter = Depends(get_road_router),
) -> RouteSummary:
    """Replace the waypoints of a loaded route. Playback restarts stopped at 0."""
    player = _player_or_404(route_id, registry)
    snap = await _snapshot_for(req, road_router)
    player.load(snap)
    return _summary(route_id, snap)


@router.get("/{route_id}", response_model=RouteSummary)
def get_route(route_id: str, registry: PlayerRegistry = Depends(get_registry)) -> RouteSummary:
    return _summary(route_id, _player_or_404(route_id, registry).snapshot)


@router.get("/{route_id}/state", response_model=FrameOut)
def get_state(route_id: str, registry: PlayerRegistry = Depends(get_registry)) -> FrameOut:
    return _frame_or_409(_player_or_404(route_id, registry))


@router.get("/{route_id}/pose", response_model=PoseAtResponse)
def get_pose_at(
    route_id: str,
    elapsed: float = Query(..., description="Seconds since route start"),
    registry: PlayerRegistry = Depends(get_registry),
) -> PoseAtResponse:
    player = _player_or_404(route_id, registry)
    if not math.isfinite(elapsed):
        raise HTTPException(status_code=400, detail="elapsed must be finite")
    try:
        pose, path, stop_number = player.pose_at(elapsed)
    except DegenerateRouteError as e:
        raise HTTPException(status_code=409, detail=str(e))
    total = player.snapshot.timeline.total_duration
    return PoseAtResponse(
        elapsed_s=min(max(0.0, elapsed), total),
        pose=PoseOut.model_validate(pose),
        traveled_path=[CoordinateOut.model_validate(c) for c in path],
        stop_number=stop_number,
    )


@router.post("/{route_id}/play", response_model=FrameOut)
async def play(route_id: str, registry: PlayerRegistry = Depends(get_registry)) -> FrameOut:
    player = _player_or_404(route_id, registry)
    try:
        player.play()
    except DegenerateRouteError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _frame_or_409(player)


@router.post("/{route_id}/pause", response_model=FrameOut)
async def pause(route_id: str, registry: PlayerRegistry = Depends(get_registry)) -> FrameOut:
    player = _player_or_404(route_id, registry)
    player.pause()
    return _frame_or_409(player)


@router.post("/{route_id}/reset", response_model=FrameOut)
async def reset(route_id: str, registry: PlayerRegistry = Depends(get_registry)) -> FrameOut:
    player = _player_or_404(route_id, registry)
    player.reset()
    return _frame_or_409(player)


@router.post("/{route_id}/speed", response_model=FrameOut)
async def set_speed(
    route_id: str, req: SpeedRequest, registry: PlayerRegistry = Depends(get_registry)
) -> FrameOut:
    player = _player_or_404(route_id, registry)
    try:
        frame = player.set_speed(req.multiplier)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if frame is None:
        raise HTTPException(status_code=409, detail="route is not animatable")
    return FrameOut.model_validate(frame)


@router.post("/{route_id}/seek", response_model=FrameOut)
async def seek(
    route_id: str, req: SeekRequest, registry: PlayerRegistry = Depends(get_registry)
) -> FrameOut:
    player = _player_or_404(route_id, registry)
    if req.index is not None:
        player.seek_to_index(req.index)
    else:
        player.seek(req.elapsed_s)
    return _frame_or_409(player)


async def _wait_for_disconnect(ws: WebSocket) -> None:
    while True:
        message = await ws.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/{route_id}/stream")
async def stream(ws: WebSocket, route_id: str):
    """Streams frame updates (pose, traveled path, stop changes) while connected."""
    registry = get_registry()
    player = registry.get(route_id)
    await ws.accept()
    if player is None:
        await ws.send_text(json.dumps({"type": "error", "error": f"route {route_id} not found"}))
        await ws.close()
        return

    stop_changes: List[StopChange] = []

    def collect(update: FrameUpdate) -> None:
        if update.stop_change is not None:
            stop_changes.append(update.stop_change)

    unsubscribe = player.subscribe(collect)
    # a paused route sends nothing, so the disconnect has to be received
    disconnected = asyncio.ensure_future(_wait_for_disconnect(ws))
    last_sent = None
    period = 1.0 / C.STREAM_HZ
    try:
        while not disconnected.done():
            for change in stop_changes:
                await ws.send_text(
                    json.dumps({"type": "stop_change", "stop": StopChangeOut.model_validate(change).model_dump(mode="json")})
                )
            stop_changes.clear()

            latest = player.latest
            if latest is not None and latest is not last_sent:
                await ws.send_text(
                    json.dumps({"type": "frame", "frame": FrameOut.model_validate(latest).model_dump(mode="json")})
                )
                last_sent = latest
            await asyncio.wait({disconnected}, timeout=period)
    except WebSocketDisconnect:
        return
    finally:
        disconnected.cancel()
        unsubscribe()
