# routeserver/models/routing.py

from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# [lon, lat] in degrees
LonLat = Tuple[float, float]


class RouteRequest(BaseModel):
    """
    Request body for the /route endpoint.

    {"from": [lon, lat], "to": [lon, lat]}
    """
    model_config = ConfigDict(populate_by_name=True)

    from_: LonLat = Field(alias="from")
    to: LonLat
    # Overrides the configured default backend, e.g. "ch" or "hub_labels".
    backend: Optional[str] = None

    @field_validator("from_", "to")
    @classmethod
    def check_range(cls, value: LonLat) -> LonLat:
        lon, lat = value
        if not -180.0 <= lon <= 180.0:
            raise ValueError(f"longitude {lon} outside [-180, 180]")
        if not -90.0 <= lat <= 90.0:
            raise ValueError(f"latitude {lat} outside [-90, 90]")
        return value


class LineStringGeometry(BaseModel):
    """
    GeoJSON LineString; coordinates are [lon, lat] pairs.

    A route whose endpoints snap to the same vertex has a single coordinate.
    """
    type: Literal["LineString"] = "LineString"
    coordinates: List[List[float]]


class RouteProperties(BaseModel):
    source: int
    target: int
    weight: Union[int, float]
    backend: str
    vertices: int
    snap_distance_m: Dict[str, float]
    took_ms: float


class RouteResponse(BaseModel):
    """
    Response for the /route endpoint: a GeoJSON Feature.
    """
    type: Literal["Feature"] = "Feature"
    geometry: LineStringGeometry
    properties: RouteProperties


class ErrorResponse(BaseModel):
    detail: str
    error: str
    stage: Optional[str] = None
