"""
SmartSafety - REST API

FastAPI application serving the live incident feed, the nearby-incidents
view, report submission, map rendering and a change-feed WebSocket.

Run with: uvicorn smartsafety.api.main:app --reload
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import (
    APIRouter, Depends, FastAPI, File, Form, HTTPException, Query, Request,
    UploadFile, WebSocket,
)
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from smartsafety.core.config import settings
from smartsafety.core.exceptions import RepositoryFailure, UploadFailure
from smartsafety.core.geo_utils import Coordinate
from smartsafety.core.logging import setup_logging
from smartsafety.crowdsource.report_handler import PhotoAttachment, ReportHandler
from smartsafety.database.connection import DatabaseConnection, get_db
from smartsafety.database.repository import IncidentRepository
from smartsafety.incidents.models import Incident
from smartsafety.incidents.store import IncidentStore
from smartsafety.proximity.filter import ProximityFilter, incident_distance
from smartsafety.realtime.change_feed import ChangeFeed
from smartsafety.realtime.sync import IncidentSync
from smartsafety.storage.object_store import ObjectStoreClient, get_object_store
from smartsafety.visualization.map_generator import create_incident_map

API_VERSION = "0.1.0"

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Models
# ============================================================================

class IncidentResponse(BaseModel):
    """Single incident."""
    id: str
    title: str
    description: str
    photo_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: str
    created_at: Optional[str] = None
    location_label: str
    distance_km: Optional[float] = Field(default=None, description="Distance from the query point")


class IncidentListResponse(BaseModel):
    """Incident feed, newest first."""
    count: int
    incidents: List[IncidentResponse]


class NearbyResponse(BaseModel):
    """Incidents within a radius of a point."""
    latitude: float
    longitude: float
    radius_km: float
    count: int
    incidents: List[IncidentResponse]


class HealthResponse(BaseModel):
    """API health check response."""
    status: str
    version: str
    timestamp: str
    incident_count: int
    modules: dict


# ============================================================================
# Services
# ============================================================================

@dataclass
class Services:
    """Stateful collaborators shared by all requests."""
    db: DatabaseConnection
    feed: ChangeFeed
    repository: IncidentRepository
    store: IncidentStore
    sync: IncidentSync
    report_handler: Optional[ReportHandler]


def get_services(request: Request) -> Services:
    return request.app.state.services


def _to_response(incident: Incident, distance_km: Optional[float] = None) -> IncidentResponse:
    return IncidentResponse(
        id=incident.id,
        title=incident.title,
        description=incident.description,
        photo_url=incident.photo_url,
        latitude=incident.latitude,
        longitude=incident.longitude,
        status=incident.status,
        created_at=incident.created_at.isoformat() if incident.created_at else None,
        location_label=incident.location_label,
        distance_km=round(distance_km, 4) if distance_km is not None else None,
    )


def _parse_exif(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        tags = json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="exif must be a JSON object")
    if not isinstance(tags, dict):
        raise HTTPException(status_code=400, detail="exif must be a JSON object")
    return tags


router = APIRouter()


# ============================================================================
# System Routes
# ============================================================================

@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(services: Services = Depends(get_services)):
    """Check API health status and module availability."""
    modules = {
        "database": services.db.check_connection(),
        "object_store": services.report_handler is not None,
        "live_sync": services.sync.running,
    }

    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        incident_count=len(services.store),
        modules=modules,
    )


# ============================================================================
# Incident Routes
# ============================================================================

@router.get("/api/v1/incidents", response_model=IncidentListResponse, tags=["Incidents"])
async def list_incidents(
    limit: int = Query(default=50, ge=1, le=500),
    services: Services = Depends(get_services),
):
    """List incidents, newest first."""
    incidents = services.store.ordered()[:limit]
    return IncidentListResponse(
        count=len(incidents),
        incidents=[_to_response(i) for i in incidents],
    )


@router.get("/api/v1/incidents/nearby", response_model=NearbyResponse, tags=["Incidents"])
async def nearby_incidents(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(default=settings.proximity_radius_km, gt=0, le=20000),
    services: Services = Depends(get_services),
):
    """Incidents within ``radius_km`` of the given point."""
    reference = Coordinate(latitude=latitude, longitude=longitude)
    nearby = ProximityFilter(radius_km).filter(reference, services.store.snapshot())

    return NearbyResponse(
        latitude=latitude,
        longitude=longitude,
        radius_km=radius_km,
        count=len(nearby),
        incidents=[_to_response(i, incident_distance(reference, i)) for i in nearby],
    )


@router.get("/api/v1/incidents/{incident_id}", response_model=IncidentResponse, tags=["Incidents"])
async def get_incident(incident_id: str, services: Services = Depends(get_services)):
    """Get a specific incident by ID."""
    incident = services.store.get(incident_id)
    if not incident:
        raise HTTPException(status_code=404, detail="Incident not found")
    return _to_response(incident)


@router.post("/api/v1/incidents", response_model=IncidentResponse, status_code=201, tags=["Incidents"])
async def submit_incident(
    title: str = Form(...),
    description: str = Form(""),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    exif: Optional[str] = Form(None, description="Photo EXIF tags as a JSON object"),
    photo: UploadFile = File(...),
    services: Services = Depends(get_services),
):
    """
    Submit an incident report with a photo.

    The location comes from the GPS tags in ``exif`` when present, otherwise
    from the submitted coordinates.
    """
    if services.report_handler is None:
        raise HTTPException(status_code=503, detail="Object storage not configured")

    attachment = PhotoAttachment(
        data=await photo.read(),
        filename=photo.filename,
        content_type=photo.content_type,
        exif=_parse_exif(exif),
    )

    try:
        incident = await run_in_threadpool(
            services.report_handler.submit_report,
            title,
            description,
            attachment,
            latitude,
            longitude,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UploadFailure as e:
        raise HTTPException(status_code=502, detail=e.user_message)
    except RepositoryFailure as e:
        raise HTTPException(status_code=503, detail=e.user_message)

    return _to_response(incident)


# ============================================================================
# Map Routes
# ============================================================================

@router.get("/api/v1/map/nearby", response_class=HTMLResponse, tags=["Map"])
async def nearby_map(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(default=settings.proximity_radius_km, gt=0, le=20000),
    services: Services = Depends(get_services),
):
    """Interactive map of the incidents around a point."""
    reference = Coordinate(latitude=latitude, longitude=longitude)
    nearby = ProximityFilter(radius_km).filter(reference, services.store.snapshot())

    incident_map = create_incident_map(
        center=reference,
        incidents=nearby,
        radius_km=radius_km,
        zoom=settings.map_zoom,
        title="SmartSafety - Nearby Incidents",
    )
    return incident_map._repr_html_()


# ============================================================================
# Live updates
# ============================================================================

@router.websocket("/ws/incidents")
async def websocket_incidents(websocket: WebSocket):
    """Push every incident change to the client as JSON."""
    services: Services = websocket.app.state.services
    await websocket.accept()
    subscription = services.feed.subscribe()

    async def forward() -> None:
        async for payload in subscription:
            await websocket.send_json(payload)

    async def receive() -> None:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_json({"type": "pong"})

    await websocket.send_json({"type": "connected", "incident_count": len(services.store)})

    tasks = [asyncio.create_task(forward()), asyncio.create_task(receive())]
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        subscription.unsubscribe()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug("WebSocket client disconnected")


# ============================================================================
# Application
# ============================================================================

def create_app(
    db: Optional[DatabaseConnection] = None,
    object_store: Optional[ObjectStoreClient] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        db: Database to serve (settings.database_url by default)
        object_store: Photo store (from settings by default; reporting is
            disabled when none is configured)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()

        database = db or get_db()
        database.create_tables()

        feed = ChangeFeed()
        repository = IncidentRepository(database, feed)
        store = IncidentStore(stale_guard=settings.stale_event_guard)
        sync = IncidentSync(repository, feed, store)

        photo_store = object_store or get_object_store()
        if photo_store is None:
            logger.warning("Object storage not configured, report submission disabled")
        report_handler = ReportHandler(repository, photo_store) if photo_store else None

        app.state.services = Services(
            db=database,
            feed=feed,
            repository=repository,
            store=store,
            sync=sync,
            report_handler=report_handler,
        )

        await sync.start()
        try:
            yield
        finally:
            await sync.close()
            if photo_store is not None and object_store is None:
                photo_store.close()

    app = FastAPI(
        title="SmartSafety",
        description="Location-tagged safety incident reporting with a live nearby-incidents view",
        version=API_VERSION,
        debug=settings.debug,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "smartsafety.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
