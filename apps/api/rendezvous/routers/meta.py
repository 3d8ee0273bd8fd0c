"""Health, stats and client bootstrap endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Request, Response

from ..schemas.signal import HealthResponse, IceServer, IceServersResponse, StatsResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["meta"])
async def health() -> HealthResponse:
    """Simple liveness probe."""

    return HealthResponse(status="ok")


@router.head("/health", tags=["meta"])
async def health_head() -> Response:
    """Allow HEAD for uptime monitors that only need the status code."""

    return Response(status_code=200)


@router.get("/stats", response_model=StatsResponse, tags=["meta"])
async def stats(request: Request) -> StatsResponse:
    """Room and occupant counts at this instant."""

    rooms, occupants = await request.app.state.hub.stats()
    return StatsResponse(rooms=rooms, occupants=occupants)


@router.get("/ice-servers", response_model=IceServersResponse, tags=["signaling"])
async def ice_servers(request: Request) -> IceServersResponse:
    """STUN/TURN addresses the browser should hand to its peer connection."""

    urls = request.app.state.settings.ice_servers
    return IceServersResponse(ice_servers=[IceServer(urls=url) for url in urls])
