"""Station profile models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mashumaro.mixins.orjson import DataClassORJSONMixin

from .types import UndefinedField, undefined_field

DEFAULT_STATION_NAME = "My Radio Station"
DEFAULT_STATION_DESCRIPTION = "Your favorite music, 24/7"


@dataclass
class StationProfile(DataClassORJSONMixin):
    """Descriptive information about the station, independent of playback."""

    name: str = DEFAULT_STATION_NAME
    description: str = DEFAULT_STATION_DESCRIPTION
    logo: str | None = None
    website: str = ""
    email: str = ""
    social: dict[str, str] = field(default_factory=dict)
    """Social network handles keyed by network name."""

    def apply_update(self, update: StationProfileUpdate) -> None:
        """Apply the fields present in a partial profile update."""
        if not isinstance(update.name, UndefinedField):
            self.name = update.name
        if not isinstance(update.description, UndefinedField):
            self.description = update.description
        if not isinstance(update.logo, UndefinedField):
            self.logo = update.logo
        if not isinstance(update.website, UndefinedField):
            self.website = update.website
        if not isinstance(update.email, UndefinedField):
            self.email = update.email
        if not isinstance(update.social, UndefinedField):
            # Social links are merged, not replaced
            self.social = {**self.social, **update.social}


@dataclass
class StationProfileUpdate(DataClassORJSONMixin):
    """Partial update of the station profile."""

    name: str | UndefinedField = field(default_factory=undefined_field)
    description: str | UndefinedField = field(default_factory=undefined_field)
    logo: str | None | UndefinedField = field(default_factory=undefined_field)
    website: str | UndefinedField = field(default_factory=undefined_field)
    email: str | UndefinedField = field(default_factory=undefined_field)
    social: dict[str, str] | UndefinedField = field(default_factory=undefined_field)

    @classmethod
    def __pre_deserialize__(cls, d: dict[str, Any]) -> dict[str, Any]:
        """Drop null social maps so they read as absent."""
        if "social" in d and d["social"] is None:
            d = {k: v for k, v in d.items() if k != "social"}
        return d
