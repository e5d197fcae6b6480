"""Driver candidate and profile models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from pyrideplan._normalize import safe_float, safe_str
from pyrideplan.models._base import RideBaseModel
from pyrideplan.models.geo import GeoPoint


class DriverCandidateRef(RideBaseModel):
    """An unresolved driver identifier received from the dispatch channel."""

    id: str = Field(validation_alias=AliasChoices("id", "_id", "driverId", "driver_id"))

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_id(cls, values: Any) -> Any:
        # Some dispatch servers send ``drivers: ["id-1", "id-2"]``.
        if isinstance(values, (str, int)) and not isinstance(values, bool):
            return {"id": values}
        return values

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = safe_str(value)
        if text is None:
            raise ValueError("driver id must be non-empty")
        return text


class DriverProfile(RideBaseModel):
    """A resolved driver record from the driver profile collaborator.

    ``rate`` is the per-kilometre fare used by the estimator.
    """

    id: str = Field(validation_alias=AliasChoices("id", "_id", "driverId", "driver_id"))
    name: str = Field(default="", validation_alias=AliasChoices("name"))
    phone_number: str = Field(default="", validation_alias=AliasChoices("phone_number", "phoneNumber"))
    vehicle_type: str = Field(default="", validation_alias=AliasChoices("vehicle_type", "vehicleType"))
    vehicle_color: str = Field(default="", validation_alias=AliasChoices("vehicle_color", "vehicleColor"))
    rate: float = Field(default=0.0, validation_alias=AliasChoices("rate"))
    current_location: GeoPoint | None = Field(
        default=None,
        validation_alias=AliasChoices("currentLocation", "current_location", "location"),
        serialization_alias="currentLocation",
    )

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = safe_str(value)
        if text is None:
            raise ValueError("driver id must be non-empty")
        return text

    @field_validator("name", "phone_number", "vehicle_type", "vehicle_color", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return safe_str(value) or ""

    @field_validator("rate", mode="before")
    @classmethod
    def _coerce_rate(cls, value: Any) -> float:
        rate = safe_float(value)
        if rate is None or rate < 0:
            return 0.0
        return rate

    @field_validator("current_location", mode="before")
    @classmethod
    def _coerce_location(cls, value: Any) -> Any:
        # Anything we cannot read as a point is treated as unknown.
        if isinstance(value, GeoPoint) or value is None:
            return value
        if not isinstance(value, dict):
            return None
        lat = safe_float(value.get("latitude", value.get("lat")))
        lng = safe_float(value.get("longitude", value.get("lng", value.get("lon"))))
        if lat is None or lng is None or abs(lat) > 90 or abs(lng) > 180:
            return None
        return {"latitude": lat, "longitude": lng}
