"""
Text Encoder Service
Turns the text fields of a material into one embedding per vector index
using the CLIP text encoder.
"""

import logging
import re
from typing import Dict, List, Optional

import numpy as np

from ...ml.config import get_ml_config, MLConfig
from ...ml.errors import DependencyError
from ...ml.model_loader import get_model_registry, ModelRegistry
from ...models.material import ClassificationCode, MaterialBase, VectorField

logger = logging.getLogger(__name__)


def classification_text(code: Optional[ClassificationCode]) -> Optional[str]:
    """
    Render a classification code as labelled lines.

    Returns None when no part of the code is set.
    """
    if code is None or code.is_empty():
        return None

    lines = []
    for label, value in (
        ("Type", code.type),
        ("Category", code.category),
        ("Subcategory", code.subcategory),
    ):
        if value:
            lines.append(f"{label}: {value}")

    return "\n".join(lines)


class TextEncoderService:
    """
    Service for encoding material fields to embeddings.

    Every embedded field gets its own vector; fields without text get none,
    so the matching index is neither queried nor written for them.
    """

    def __init__(
        self,
        config: Optional[MLConfig] = None,
        model_registry: Optional[ModelRegistry] = None,
    ):
        """
        Initialize text encoder service.

        Args:
            config: ML configuration
            model_registry: Registry holding the text model
        """
        self.config = config or get_ml_config()
        self.model_registry = model_registry or get_model_registry()

        logger.info("Text encoder service initialized")

    def field_texts(self, material: MaterialBase) -> Dict[str, str]:
        """Cleaned text per embedded field, skipping empty fields."""
        raw = {
            VectorField.NAME.value: material.name,
            VectorField.DESCRIPTION.value: material.description,
        }
        if self.config.storage.enable_classification_index:
            raw[VectorField.CLASSIFICATION.value] = classification_text(material.classification)

        texts = {}
        for field, text in raw.items():
            if text is None:
                continue
            cleaned = self._preprocess_text(text)
            if cleaned:
                texts[field] = cleaned
        return texts

    def encode_fields(self, material: MaterialBase) -> Dict[str, np.ndarray]:
        """
        Encode one material.

        Args:
            material: Query or stored material

        Returns:
            Dict mapping field -> embedding vector

        Raises:
            DependencyError: If the encoder fails
        """
        return self.encode_materials([material])[0]

    def encode_materials(self, materials: List[MaterialBase]) -> List[Dict[str, np.ndarray]]:
        """
        Encode many materials with a single batched model call.

        Args:
            materials: Materials to encode

        Returns:
            One field -> embedding dict per material, in input order

        Raises:
            DependencyError: If the encoder fails
        """
        per_material = [self.field_texts(material) for material in materials]

        flat_texts = [text for texts in per_material for text in texts.values()]
        if not flat_texts:
            return [{} for _ in materials]

        try:
            embeddings = self.model_registry.encode_text_batch(flat_texts)
        except Exception as e:
            logger.error(f"Failed to encode {len(flat_texts)} texts: {e}")
            raise DependencyError("embedding", f"Failed to encode texts: {e}") from e

        if len(embeddings) != len(flat_texts):
            raise DependencyError(
                "embedding",
                f"Encoder returned {len(embeddings)} embeddings for {len(flat_texts)} texts",
            )

        results = []
        position = 0
        for texts in per_material:
            encoded = {}
            for field in texts:
                encoded[field] = np.asarray(embeddings[position], dtype=np.float32)
                position += 1
            results.append(encoded)

        logger.debug(f"Encoded {len(flat_texts)} field texts for {len(materials)} materials")

        return results

    def _preprocess_text(self, text: str) -> str:
        """
        Preprocess field text.

        Args:
            text: Raw field text

        Returns:
            Cleaned text
        """
        # Keep line breaks of the classification rendering, collapse the rest
        lines = [" ".join(line.split()) for line in text.splitlines()]
        text = "\n".join(line for line in lines if line)

        # Remove control characters
        text = re.sub(r"[\x00-\x08\x0b-\x1f\x7f]", "", text)

        # Truncate if too long (CLIP has max token limit)
        max_length = self.config.embedding.max_text_tokens
        words = text.split(" ")
        if len(words) > max_length:
            text = " ".join(words[:max_length])
            logger.debug(f"Field text truncated to {max_length} words")

        return text

    def get_embedding_dimension(self) -> int:
        return self.config.embedding.text_embedding_dim


# Singleton instance
_text_encoder_service: Optional[TextEncoderService] = None


def get_text_encoder_service() -> TextEncoderService:
    """Get global text encoder service instance."""
    global _text_encoder_service
    if _text_encoder_service is None:
        _text_encoder_service = TextEncoderService()
    return _text_encoder_service
