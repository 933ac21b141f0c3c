# routeserver/core/config.py
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (.env file).

    When started through the ``routeserver`` console script the same fields
    can also be given as command line flags (``--GRAPH_PATH ...``).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    APP_NAME: str = "Route Server"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    HOST: str = "127.0.0.1"
    PORT: int = 3030

    # Startup artifacts. GRAPH_PATH and COORDINATES_PATH are DIMACS .gr / .co
    # files; CH_PATH and HUB_LABEL_PATH are JSON artifacts and optional.
    GRAPH_PATH: Optional[Path] = None
    COORDINATES_PATH: Optional[Path] = None
    CH_PATH: Optional[Path] = None
    HUB_LABEL_PATH: Optional[Path] = None

    # DIMACS coordinates are stored as integer micro-degrees.
    COORDINATE_SCALE: float = 1_000_000.0

    BACKEND: Literal["dijkstra", "ch", "hub_labels"] = "dijkstra"
    SHORTCUT_EXPANDER: Literal["recursive", "table"] = "recursive"

    VALIDATE_PATHS: bool = True
    WEIGHT_ABS_TOLERANCE: float = 1e-6

    # No cutoff by default: far-away coordinates still snap to the nearest vertex.
    MAX_SNAP_DISTANCE_M: Optional[float] = None
    ROUTE_TIMEOUT_S: Optional[float] = None
    WORKER_THREADS: Optional[int] = None


settings = Settings()
