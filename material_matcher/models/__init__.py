"""
Data Models Package
Domain entities for materials, scores and search constraints.
"""

from .material import (
    AddMaterialsRequest,
    AvailableTime,
    AvailableTimeRange,
    ClassificationCode,
    ConstraintType,
    Location,
    LocationSearch,
    Material,
    MaterialBase,
    MaterialWithScore,
    MetaData,
    RetrievalQuery,
    ScoreBreakdown,
    ScoreField,
    SearchConstraints,
    Size,
    VectorField,
    Weights,
    WeightsInput,
    to_timestamp,
)

__all__ = [
    "AddMaterialsRequest",
    "AvailableTime",
    "AvailableTimeRange",
    "ClassificationCode",
    "ConstraintType",
    "Location",
    "LocationSearch",
    "Material",
    "MaterialBase",
    "MaterialWithScore",
    "MetaData",
    "RetrievalQuery",
    "ScoreBreakdown",
    "ScoreField",
    "SearchConstraints",
    "Size",
    "VectorField",
    "Weights",
    "WeightsInput",
    "to_timestamp",
]
