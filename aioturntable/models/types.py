"""Models for enum types used by aioturntable."""

from dataclasses import dataclass
from enum import Enum

from mashumaro.config import BaseConfig
from mashumaro.mixins.orjson import DataClassORJSONMixin
from mashumaro.types import Discriminator


# Base message classes
@dataclass
class ServerMessage(DataClassORJSONMixin):
    """Base class for messages pushed to observers."""

    class Config(BaseConfig):
        """Config for parsing json messages."""

        discriminator = Discriminator(field="type", include_subtypes=True)


# Helpers for discerning between null and undefined fields in request bodies
@dataclass
class UndefinedField(DataClassORJSONMixin):
    """Marker type to indicate undefined fields in partial updates."""


_UNDEFINED_SINGLETON = UndefinedField()


def undefined_field() -> UndefinedField:
    """Return the singleton UndefinedField instance."""
    return _UNDEFINED_SINGLETON


# Enums


class PlaybackStateType(Enum):
    """Enum for Playback States."""

    PLAYING = "playing"
    STOPPED = "stopped"

