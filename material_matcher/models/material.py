"""
Material domain models.
Validation for query-form and stored-form materials, score breakdowns,
weights and search constraints.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MaterialModel(BaseModel):
    """Base for every model that travels over the wire (camelCase aliases)."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )


class ScoreField(str, Enum):
    """Fields that receive a score in the breakdown."""

    NAME = "name"
    DESCRIPTION = "description"
    PRICE = "price"
    QUALITY = "quality"
    LOCATION = "location"
    AVAILABILITY = "availability"
    SIZE = "size"


class VectorField(str, Enum):
    """Fields that are embedded and kept in their own vector index."""

    NAME = "name"
    DESCRIPTION = "description"
    CLASSIFICATION = "classification"


class ConstraintType(str, Enum):
    """Hard constraints exclude candidates, soft ones only weigh in."""

    HARD = "hard"
    SOFT = "soft"


# === BASE TYPES ===


class Size(MaterialModel):
    """Physical dimensions, all in the same unit (cm)."""

    width: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)
    depth: Optional[float] = Field(None, gt=0)

    def has_any_dimension(self) -> bool:
        return any(v is not None for v in (self.width, self.height, self.depth))


class Location(MaterialModel):
    """Geographic coordinate in decimal degrees."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class AvailableTime(MaterialModel):
    """Time window in which a material can be picked up."""

    from_: Optional[datetime] = Field(None, alias="from")
    to: Optional[datetime] = None

    def has_any_bound(self) -> bool:
        return self.from_ is not None or self.to is not None


class ClassificationCode(MaterialModel):
    """Construction cost classification (eBKP style type/category/subcategory)."""

    type: Optional[str] = None
    category: Optional[str] = Field(None, alias="categoryCode")
    subcategory: Optional[str] = Field(None, alias="subCategoryCode")

    def is_empty(self) -> bool:
        return not any((self.type, self.category, self.subcategory))


# === MATERIAL ===


class MaterialBase(MaterialModel):
    """
    Material in query form (no identifier).

    Used both as the payload for ingestion and as the query of a retrieval.
    """

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    quality: Optional[float] = Field(None, ge=0.5, le=1.0)
    quantity: Optional[float] = Field(None, gt=0)
    image: Optional[str] = None
    size: Optional[Size] = None
    location: Optional[Location] = None
    available_time: Optional[AvailableTime] = Field(None, alias="availableTime")
    classification: Optional[ClassificationCode] = Field(None, alias="ebkp")

    @field_validator("description", "image", mode="before")
    @classmethod
    def empty_string_to_none(cls, v):
        """Treat blank optional strings as missing."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def metadata(self) -> "MetaData":
        """Reduced projection attached to the designated index entry."""
        return MetaData(
            quality=self.quality,
            price=self.price,
            location=self.location,
            size=self.size,
            available_time=self.available_time,
        )


class Material(MaterialBase):
    """Stored material. The identifier is assigned at ingestion."""

    id: str = Field(..., min_length=1)


class MetaData(MaterialModel):
    """Structured fields stored next to the name vector of a material."""

    quality: Optional[float] = None
    price: Optional[float] = None
    location: Optional[Location] = None
    size: Optional[Size] = None
    available_time: Optional[AvailableTime] = Field(None, alias="availableTime")


# === SCORES AND WEIGHTS ===


class ScoreBreakdown(MaterialModel):
    """Per-field scores of one candidate; absent inputs score 0."""

    name: float = Field(0.0, ge=0, le=1)
    description: float = Field(0.0, ge=0, le=1)
    price: float = Field(0.0, ge=0, le=1)
    quality: float = Field(0.0, ge=0, le=1)
    location: float = Field(0.0, ge=0, le=1)
    availability: float = Field(0.0, ge=0, le=1)
    size: float = Field(0.0, ge=0, le=1)


class Weights(MaterialModel):
    """Effective weights on the internal [0, 1] scale."""

    name: float = Field(0.0, ge=0, le=1)
    description: float = Field(0.0, ge=0, le=1)
    price: float = Field(0.0, ge=0, le=1)
    quality: float = Field(0.0, ge=0, le=1)
    location: float = Field(0.0, ge=0, le=1)
    availability: float = Field(0.0, ge=0, le=1)
    size: float = Field(0.0, ge=0, le=1)


class WeightsInput(MaterialModel):
    """Caller supplied weights on a 0-100 integer scale."""

    name: int = Field(0, ge=0, le=100)
    description: int = Field(0, ge=0, le=100)
    price: int = Field(0, ge=0, le=100)
    quality: int = Field(0, ge=0, le=100)
    location: int = Field(0, ge=0, le=100)
    availability: int = Field(0, ge=0, le=100)
    size: int = Field(0, ge=0, le=100)


class MaterialWithScore(Material):
    """Stored material annotated with its ranking result."""

    score: float = Field(..., ge=0, le=1)
    score_breakdown: ScoreBreakdown = Field(..., alias="scoreBreakdown")


# === CONSTRAINTS ===


class SearchConstraints(MaterialModel):
    """Hard/soft flag per constrainable field."""

    name: ConstraintType = ConstraintType.SOFT
    description: ConstraintType = ConstraintType.SOFT
    price: ConstraintType = ConstraintType.SOFT
    quality: ConstraintType = Field(ConstraintType.SOFT, alias="condition")
    location: ConstraintType = ConstraintType.SOFT
    size: ConstraintType = Field(ConstraintType.SOFT, alias="dimensions")
    availability: ConstraintType = ConstraintType.SOFT

    def is_hard(self, field: ScoreField) -> bool:
        return getattr(self, field.value) == ConstraintType.HARD


class LocationSearch(MaterialModel):
    """Radius filter around a center point."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius_km: float = Field(..., gt=0, alias="radiusKm")

    @property
    def center(self) -> Location:
        return Location(latitude=self.latitude, longitude=self.longitude)


class AvailableTimeRange(AvailableTime):
    """Time range used as an overlap filter."""


# === RETRIEVAL QUERY ===


class RetrievalQuery(MaterialModel):
    """
    Everything a single retrieval call needs.

    Built once per request and never mutated afterwards.
    """

    material: MaterialBase
    top_k: int = Field(5, ge=1, le=10, alias="topK")
    constraints: SearchConstraints = Field(default_factory=SearchConstraints)
    location: Optional[LocationSearch] = None
    available_time: Optional[AvailableTimeRange] = Field(None, alias="availableTime")
    weights: Optional[WeightsInput] = None

    @model_validator(mode="after")
    def check_time_ranges(self):
        """Reject ranges whose start lies after their end."""
        ranges = [("availableTime", self.available_time)]
        if self.material.available_time is not None:
            ranges.append(("material.availableTime", self.material.available_time))

        for label, time_range in ranges:
            if time_range is None or time_range.from_ is None or time_range.to is None:
                continue
            if to_timestamp(time_range.from_) > to_timestamp(time_range.to):
                raise ValueError(f"{label}: 'from' must not be after 'to'")
        return self


class AddMaterialsRequest(MaterialModel):
    """Batch of materials to ingest."""

    materials: List[MaterialBase] = Field(..., min_length=1)


def to_timestamp(value: datetime) -> float:
    """POSIX timestamp; naive datetimes are interpreted as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()
