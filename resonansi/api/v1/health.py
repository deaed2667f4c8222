"""Health check endpoint: database reachability and active storage backend."""

from fastapi import APIRouter, Request

from resonansi.api.deps import DbDep, SettingsDep, StorageDep
from resonansi.core.database import check_db_connected
from resonansi.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    request: Request,
    db: DbDep,
    settings: SettingsDep,
    storage: StorageDep,
) -> HealthResponse:
    """
    Used by load balancers and monitoring. Always 200; a database outage shows
    up as status 'degraded' rather than an error response.
    """
    connected = check_db_connected(db)
    return HealthResponse(
        status="ok" if connected else "degraded",
        environment=settings.APP_ENV,
        version=request.app.version,
        database="connected" if connected else "disconnected",
        storage_backend=storage.name,
    )
