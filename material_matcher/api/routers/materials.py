"""
Material Endpoints
Retrieve similar materials, add materials, fetch and delete by id.
"""

import logging

from fastapi import APIRouter, Depends, status

from ..dependencies import (
    get_ingestion_service,
    get_material_repository,
    get_request_id,
    get_search_service,
    verify_api_key,
)
from ..errors import ResourceNotFoundError
from ..models.materials import (
    AddedMaterialsData,
    AddMaterialsRequest,
    AddMaterialsResponse,
    DeletedMaterialData,
    DeleteMaterialResponse,
    MaterialResponse,
    RetrievalData,
    RetrieveRequest,
    RetrieveResponse,
)
from ...db.repository import MaterialRepository
from ...ingestion import MaterialIngestionService
from ...ml.errors import MissingReferenceError
from ...ml.search import MaterialSearchService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/materials",
    tags=["materials"],
    dependencies=[Depends(verify_api_key)],
)


@router.post("/retrieve", response_model=RetrieveResponse, status_code=status.HTTP_200_OK)
async def retrieve_materials(
    request: RetrieveRequest,
    repository: MaterialRepository = Depends(get_material_repository),
    search_service: MaterialSearchService = Depends(get_search_service),
    request_id: str = Depends(get_request_id),
) -> RetrieveResponse:
    """
    Retrieve the stored materials most similar to a query material.

    Workflow:
    1. Detect provided fields and resolve weights
    2. Embed the query fields
    3. Query every field index concurrently
    4. Score, filter by hard constraints, rank
    5. Resolve stored records and truncate to topK

    Returns:
        Ranked materials with score breakdowns and the effective weights
    """
    logger.info(
        f"[{request_id}] Retrieve: name='{request.material.name}', topK={request.top_k}, "
        f"explicit_weights={request.weights is not None}"
    )

    result = await search_service.retrieve(request, repository)

    return RetrieveResponse(
        message="Retrieval Successful",
        data=RetrievalData(materials=result.materials, weights=result.weights),
    )


@router.post("/add", response_model=AddMaterialsResponse, status_code=status.HTTP_200_OK)
def add_materials(
    request: AddMaterialsRequest,
    repository: MaterialRepository = Depends(get_material_repository),
    ingestion_service: MaterialIngestionService = Depends(get_ingestion_service),
) -> AddMaterialsResponse:
    """Assign ids, embed and store a batch of materials."""
    stats = ingestion_service.add_materials(request.materials, repository)

    return AddMaterialsResponse(
        message="Materials Added",
        data=AddedMaterialsData(ids=stats.ids, count=len(stats.ids)),
    )


@router.get("/{material_id}", response_model=MaterialResponse, status_code=status.HTTP_200_OK)
def get_material(
    material_id: str,
    repository: MaterialRepository = Depends(get_material_repository),
) -> MaterialResponse:
    """Fetch one stored material."""
    try:
        material = repository.get(material_id)
    except MissingReferenceError:
        raise ResourceNotFoundError("Material", material_id)

    return MaterialResponse(message="Material Found", data=material)


@router.delete(
    "/{material_id}", response_model=DeleteMaterialResponse, status_code=status.HTTP_200_OK
)
def delete_material(
    material_id: str,
    repository: MaterialRepository = Depends(get_material_repository),
    ingestion_service: MaterialIngestionService = Depends(get_ingestion_service),
) -> DeleteMaterialResponse:
    """Remove a material from the store and every index."""
    try:
        ingestion_service.remove_material(material_id, repository)
    except MissingReferenceError:
        raise ResourceNotFoundError("Material", material_id)

    return DeleteMaterialResponse(
        message="Material Deleted", data=DeletedMaterialData(id=material_id)
    )
