"""Base model for backend and dispatch payloads.

Every payload model inherits from :class:`RideBaseModel` which provides:

* ``populate_by_name`` so both wire aliases and field names are accepted.
* A ``model_validator(mode="before")`` that drops placeholder values
  (``""``, ``"--"``, ``"null"``, NaN) so the field default is used.
* A ``raw`` dict that captures the original payload.
* :meth:`to_wire` which dumps with wire aliases and without ``raw``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pyrideplan._normalize import prune_placeholders


class RideBaseModel(BaseModel):
    """Base for pyrideplan payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Original payload dict."""

    @model_validator(mode="before")
    @classmethod
    def _clean_placeholders(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned = prune_placeholders(values)
        # Only auto-stash raw when not explicitly provided (i.e. model_validate
        # from a payload dict).
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned

    def to_wire(self) -> dict[str, Any]:
        """Dump using wire aliases, omitting ``raw``."""
        return self.model_dump(mode="json", by_alias=True, exclude={"raw"})
