# routeserver/api/v1/routes_routing.py
import anyio
import anyio.to_thread
from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

from routeserver.core.errors import RouteTimeout
from routeserver.models.routing import ErrorResponse, RouteRequest, RouteResponse
from routeserver.services.routing_service import RouteOrchestrator

router = APIRouter(tags=["routing"])


@router.post(
    "/route",
    response_model=RouteResponse,
    summary="Compute the shortest route between two coordinates",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def compute_route(body: RouteRequest, request: Request) -> RouteResponse:
    """
    Compute a route between two [lon, lat] coordinates.

    - Snaps both coordinates to the nearest road network vertex.
    - Runs the configured path finding backend in the worker pool.
    - Returns the path as a GeoJSON LineString feature.
    """
    orchestrator: RouteOrchestrator = request.app.state.orchestrator
    timeout = request.app.state.settings.ROUTE_TIMEOUT_S

    if timeout is None:
        return await run_in_threadpool(orchestrator.compute_route, body)

    try:
        with anyio.fail_after(timeout):
            # a timed-out worker only reads shared state and finishes in the background
            return await anyio.to_thread.run_sync(
                orchestrator.compute_route, body, abandon_on_cancel=True
            )
    except TimeoutError as exc:
        raise RouteTimeout(f"Route computation exceeded {timeout:.1f} s") from exc
