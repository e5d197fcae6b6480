"""Order payload handed to the ride-detail boundary."""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from pyrideplan._constants import DRIVER_PARSE_ERROR_MESSAGE
from pyrideplan._normalize import safe_str
from pyrideplan.models._base import RideBaseModel
from pyrideplan.models.driver import DriverProfile
from pyrideplan.models.geo import GeoPoint


def driver_parse_error() -> dict[str, Any]:
    """The sentinel driver value used when driver data cannot be decoded."""
    return {"error": DRIVER_PARSE_ERROR_MESSAGE}


class OrderSource(StrEnum):
    LOCAL = "local"
    NOTIFICATION = "notification"


class UserSummary(RideBaseModel):
    """The rider fields embedded in an order."""

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    name: str | None = Field(default=None, validation_alias=AliasChoices("name"))
    phone_number: str | None = Field(default=None, validation_alias=AliasChoices("phone_number", "phoneNumber"))

    @field_validator("id", "name", "phone_number", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        return safe_str(value)


class OrderPayload(BaseModel):
    """Normalized order, identical in shape for local and notification origins.

    ``driver`` is a plain mapping: a driver profile dump for a healthy
    order, or :func:`driver_parse_error` when the driver data was
    unreadable.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user: UserSummary | None = None
    current_location: GeoPoint | None = Field(default=None, serialization_alias="currentLocation")
    destination: GeoPoint | None = Field(default=None, serialization_alias="marker")
    distance_km: float = Field(default=0.0, serialization_alias="distance")
    driver: dict[str, Any] = Field(default_factory=driver_parse_error)
    current_location_name: str | None = Field(default=None, serialization_alias="currentLocationName")
    destination_location_name: str | None = Field(default=None, serialization_alias="destinationLocation")
    source: OrderSource = OrderSource.LOCAL

    @property
    def driver_error(self) -> str | None:
        """Error text of a sentinel driver value, else ``None``."""
        error = self.driver.get("error")
        return error if isinstance(error, str) and len(self.driver) == 1 else None

    @property
    def is_degraded(self) -> bool:
        return self.driver_error is not None

    def driver_profile(self) -> DriverProfile | None:
        """Validate ``driver`` as a :class:`DriverProfile` when possible."""
        if self.is_degraded:
            return None
        try:
            return DriverProfile.model_validate(self.driver)
        except ValidationError:
            return None

    def to_wire(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True, exclude={"source"})
        data["distance"] = f"{self.distance_km:.2f}"
        return data

    def to_route_params(self) -> dict[str, str]:
        """Params for the ride-detail route: ``{"orderData": <json>}``."""
        return {"orderData": json.dumps(self.to_wire(), separators=(",", ":"))}
