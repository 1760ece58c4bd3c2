from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, model_validator

COORDINATE_FIELDS = ("lat", "long", "confidence")


def normalize_location(location: Optional[str]) -> str:
    """Cache key for a raw location string: lowercased and trimmed."""
    return (location or "").lower().strip()


class ResolutionMethod(str, Enum):
    GEOCODING = "geocoding"
    AI = "ai"
    FAILED = "failed"


class CoordinateResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    long: float
    confidence: float


class UserRecord(BaseModel):
    """A workspace member with at least one of the profile fields filled in."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: Optional[str] = None
    real_name: Optional[str] = None
    location_field: Optional[str] = None
    school_field: Optional[str] = None
    phone: Optional[str] = None
    locale: Optional[str] = None

    @property
    def cache_key(self) -> str:
        return normalize_location(self.location_field)


class GeocodedUserRecord(UserRecord):
    """
    A UserRecord annotated with how its location was resolved.

    Coordinates are present exactly when the method is not ``failed``.
    """

    lat: Optional[float] = None
    long: Optional[float] = None
    confidence: Optional[float] = None
    method: ResolutionMethod

    @model_validator(mode="after")
    def check_coordinates(self):
        values = [getattr(self, name) for name in COORDINATE_FIELDS]
        if self.method == ResolutionMethod.FAILED:
            if any(value is not None for value in values):
                raise ValueError("failed records must not carry coordinates")
        elif any(value is None for value in values):
            raise ValueError(f"{self.method.value} records require lat, long and confidence")
        return self

    @classmethod
    def resolved(cls, user: UserRecord, result: CoordinateResult, method: ResolutionMethod):
        return cls(**user.model_dump(), **result.model_dump(), method=method)

    @classmethod
    def failed(cls, user: UserRecord):
        return cls(**user.model_dump(), method=ResolutionMethod.FAILED)

    def to_json(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        if self.method == ResolutionMethod.FAILED:
            for name in COORDINATE_FIELDS:
                data.pop(name, None)
        return data
