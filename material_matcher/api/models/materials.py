"""
Material Models
Request/response envelopes for the material endpoints.

Responses share one envelope: {"error": false, "message": str, "data": ...}.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from ...models.material import (
    AddMaterialsRequest as _AddMaterialsRequest,
    Material,
    MaterialWithScore,
    RetrievalQuery,
    Weights,
)


class RetrieveRequest(RetrievalQuery):
    """Retrieve request body."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "material": {
                    "name": "Oak wood beam",
                    "description": "Solid oak beam from a demolished barn",
                    "price": 120.0,
                    "quality": 0.8,
                    "size": {"width": 20, "height": 20, "depth": 400},
                    "location": {"latitude": 47.3769, "longitude": 8.5417},
                },
                "topK": 5,
                "constraints": {"price": "hard", "location": "hard"},
                "location": {"latitude": 47.3769, "longitude": 8.5417, "radiusKm": 25},
            }
        }
    )


class AddMaterialsRequest(_AddMaterialsRequest):
    """Add materials request body."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "materials": [
                    {
                        "name": "Steel door",
                        "description": "Fire-rated steel door with frame",
                        "price": 80.0,
                        "quality": 0.7,
                        "quantity": 2,
                        "ebkp": {"type": "G", "categoryCode": "G3", "subCategoryCode": "G3.1"},
                    }
                ]
            }
        }
    )


class ResponseEnvelope(BaseModel):
    """Common response fields."""

    model_config = ConfigDict(populate_by_name=True)

    error: bool = Field(default=False, description="True if the request failed")
    message: str = Field(..., description="Human readable outcome")


class RetrievalData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    materials: List[MaterialWithScore] = Field(..., description="Ranked materials, best first")
    weights: Weights = Field(..., description="Weights that influenced the ranking")


class RetrieveResponse(ResponseEnvelope):
    data: RetrievalData


class AddedMaterialsData(BaseModel):
    ids: List[str] = Field(..., description="Identifiers assigned to the materials, in input order")
    count: int


class AddMaterialsResponse(ResponseEnvelope):
    data: AddedMaterialsData


class MaterialResponse(ResponseEnvelope):
    data: Material


class DeletedMaterialData(BaseModel):
    id: str


class DeleteMaterialResponse(ResponseEnvelope):
    data: DeletedMaterialData
