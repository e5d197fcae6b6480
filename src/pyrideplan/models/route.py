"""Route, fare and travel-time models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pyrideplan.models.geo import GeoPoint

RouteGeometry = tuple[GeoPoint, ...]
"""Ordered points decoded from one polyline; replaced wholesale."""


class FareEstimate(BaseModel):
    """Fare for a single driver over the straight-line trip distance.

    ``fare`` is always ``round(distance_km * rate, 2)``.
    """

    model_config = ConfigDict(frozen=True)

    driver_id: str
    distance_km: float
    fare: float

    @classmethod
    def for_rate(cls, driver_id: str, distance_km: float, rate: float) -> FareEstimate:
        return cls(driver_id=driver_id, distance_km=distance_km, fare=round(distance_km * rate, 2))


class TravelTimes(BaseModel):
    """Human-readable duration text per travel mode (``None`` if unavailable)."""

    model_config = ConfigDict(frozen=True)

    driving: str | None = None
    walking: str | None = None
    bicycling: str | None = None
    transit: str | None = None

    def for_mode(self, mode: str) -> str | None:
        value = getattr(self, mode, None)
        return value if isinstance(value, str) else None


class RouteEstimate(BaseModel):
    """Everything the booking view needs for one origin/destination pair."""

    model_config = ConfigDict(frozen=True)

    origin: GeoPoint
    destination: GeoPoint
    geometry: RouteGeometry = ()
    distance_km: float
    fares: tuple[FareEstimate, ...] = ()
    travel_times: TravelTimes = Field(default_factory=TravelTimes)
    eta: str | None = None
    """Estimated arrival clock time (``"hh:mm AM"``) for the driving duration."""

    @property
    def has_route(self) -> bool:
        return bool(self.geometry)

    def fare_for(self, driver_id: str) -> FareEstimate | None:
        for fare in self.fares:
            if fare.driver_id == driver_id:
                return fare
        return None
