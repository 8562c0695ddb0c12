"""
Pydantic Models
Request/response models for API endpoints.
"""

from .materials import (
    AddedMaterialsData,
    AddMaterialsRequest,
    AddMaterialsResponse,
    DeletedMaterialData,
    DeleteMaterialResponse,
    MaterialResponse,
    ResponseEnvelope,
    RetrievalData,
    RetrieveRequest,
    RetrieveResponse,
)

__all__ = [
    "AddedMaterialsData",
    "AddMaterialsRequest",
    "AddMaterialsResponse",
    "DeletedMaterialData",
    "DeleteMaterialResponse",
    "MaterialResponse",
    "ResponseEnvelope",
    "RetrievalData",
    "RetrieveRequest",
    "RetrieveResponse",
]
