"""Geographic point model."""

from __future__ import annotations

import math
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

#: Coordinates compare on a grid of this many steps per degree (1e-9 degrees).
COORDINATE_GRID = 1_000_000_000


class GeoPoint(BaseModel):
    """An immutable latitude/longitude pair in degrees.

    Equality and hashing both use the coordinates rounded to
    :data:`COORDINATE_GRID`, so points decoded from a polyline compare equal
    to their literal values and equal points always hash alike.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lng", "lon"))

    @field_validator("latitude")
    @classmethod
    def _check_latitude(cls, value: float) -> float:
        if not math.isfinite(value) or not -90.0 <= value <= 90.0:
            raise ValueError(f"latitude out of range: {value}")
        return value

    @field_validator("longitude")
    @classmethod
    def _check_longitude(cls, value: float) -> float:
        if not math.isfinite(value) or not -180.0 <= value <= 180.0:
            raise ValueError(f"longitude out of range: {value}")
        return value

    def _grid_key(self) -> tuple[int, int]:
        return round(self.latitude * COORDINATE_GRID), round(self.longitude * COORDINATE_GRID)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GeoPoint):
            return NotImplemented
        return self._grid_key() == other._grid_key()

    def __hash__(self) -> int:
        return hash(self._grid_key())

    @classmethod
    def of(cls, latitude: float, longitude: float) -> GeoPoint:
        return cls(latitude=latitude, longitude=longitude)

    def as_query(self) -> str:
        """Render as the ``"lat,lng"`` form used in query strings."""
        return f"{self.latitude},{self.longitude}"

    def to_wire(self) -> dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude}
