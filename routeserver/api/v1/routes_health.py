# routeserver/api/v1/routes_health.py
from fastapi import APIRouter, Request

from routeserver.core.config import Settings

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get("/", summary="Health check")
async def health_check(request: Request):
    """
    Report that the API is running and which routing data it serves.
    """
    settings: Settings = request.app.state.settings
    payload = {
        "status": "ok",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }

    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        payload["status"] = "starting"
        return payload

    state = orchestrator.state
    payload.update(
        vertices=state.graph.num_vertices,
        edges=state.graph.num_edges,
        backends=sorted(state.backends),
        default_backend=state.default_backend,
    )
    return payload
