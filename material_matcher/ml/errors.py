"""
Retrieval Errors
Exceptions raised by the retrieval pipeline and its collaborators.
"""

from typing import Any, Dict, List, Optional


class MaterialMatcherError(Exception):
    """Base exception for retrieval and ingestion errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class QueryValidationError(MaterialMatcherError):
    """
    Malformed or out-of-range input.

    Raised before any index is queried. ``errors`` lists every violated field
    as ``{"loc": [...], "msg": str, "type": str}``.
    """

    def __init__(self, errors: List[Dict[str, Any]], message: str = "Request validation failed"):
        self.errors = errors
        super().__init__(message, details={"errors": errors})

    @classmethod
    def from_pydantic(cls, exc) -> "QueryValidationError":
        """Convert a pydantic ValidationError into the flat error list."""
        return cls(
            [
                {
                    "loc": list(error.get("loc", [])),
                    "msg": str(error.get("msg", "")),
                    "type": error.get("type", ""),
                }
                for error in exc.errors()
            ]
        )


class DependencyError(MaterialMatcherError):
    """Embedding generation or a vector index query failed."""

    def __init__(self, dependency: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.dependency = dependency
        super().__init__(message, details={"dependency": dependency, **(details or {})})


class MissingReferenceError(MaterialMatcherError):
    """An identifier no longer resolves to a stored material."""

    def __init__(self, material_id: str):
        self.material_id = material_id
        super().__init__(f"Material not found: {material_id}", details={"id": material_id})
