# routeserver/main.py

from contextlib import asynccontextmanager
from typing import Optional

import anyio.to_thread
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from routeserver.api.v1 import routes_health, routes_routing
from routeserver.core.config import Settings, settings as default_settings
from routeserver.core.errors import (
    IntegrityError,
    NoPathFound,
    RequestError,
    RoutingError,
)
from routeserver.core.logger import logger, setup_logging
from routeserver.services.graph_manager import GraphManager, RoutingState
from routeserver.services.routing_service import RouteOrchestrator


async def routing_error_handler(request: Request, exc: RoutingError) -> JSONResponse:
    if isinstance(exc, NoPathFound):
        logger.info(f"No path: {exc}")
    elif isinstance(exc, RequestError):
        logger.warning(f"Rejected route request ({exc.error_code}): {exc}")
    elif isinstance(exc, IntegrityError):
        logger.error(f"Integrity failure at stage {exc.stage!r}: {exc}")
    else:
        logger.error(f"Route request failed ({exc.error_code}) at stage {exc.stage!r}: {exc}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "error": exc.error_code, "stage": exc.stage},
    )


def create_app(
    settings: Optional[Settings] = None,
    state: Optional[RoutingState] = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    The routing data is loaded in the lifespan startup phase, before the
    server accepts connections; a ``ConfigurationError`` there aborts startup.
    Passing ``state`` skips loading and serves the given data.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.WORKER_THREADS:
            anyio.to_thread.current_default_thread_limiter().total_tokens = settings.WORKER_THREADS

        routing_state = state or GraphManager(settings).load()
        app.state.orchestrator = RouteOrchestrator(
            routing_state,
            validate_paths=settings.VALIDATE_PATHS,
            max_snap_distance_m=settings.MAX_SNAP_DISTANCE_M,
            abs_tol=settings.WEIGHT_ABS_TOLERANCE,
        )
        logger.info("ready")
        yield
        logger.info("Shutting down")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Shortest-path routing between two coordinates on a preloaded road network.",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Browser-based map clients call us cross-origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.add_exception_handler(RoutingError, routing_error_handler)

    # Routers
    app.include_router(routes_health.router)
    app.include_router(routes_routing.router)

    return app


app = create_app()


def run() -> None:
    """
    Console entry point: settings from env, .env and command line flags.
    """
    cli_settings = Settings(_cli_parse_args=True)
    setup_logging(cli_settings.LOG_LEVEL)
    logger.info(f"Starting {cli_settings.APP_NAME} on {cli_settings.HOST}:{cli_settings.PORT}")
    uvicorn.run(create_app(cli_settings), host=cli_settings.HOST, port=cli_settings.PORT)


if __name__ == "__main__":
    run()
