"""
Model Loader
Singleton registry for the CLIP text encoder used to embed material fields.
Handles lazy loading, device selection, and batch text encoding.
"""

import logging
import time
from typing import List, Optional, Tuple

import numpy as np

from .config import get_ml_config, MLConfig

try:
    import open_clip
    import torch

    TORCH_AVAILABLE = True
except ImportError:
    open_clip = None
    torch = None
    TORCH_AVAILABLE = False

logger = logging.getLogger(__name__)


class ModelNotAvailableError(Exception):
    """Raised when trying to use models without ML dependencies installed."""

    pass


def resolve_device(device: str) -> str:
    """Turn "auto" into cuda/mps/cpu depending on what is available."""
    if device != "auto":
        return device
    if not TORCH_AVAILABLE:
        return "cpu"
    if torch.cuda.is_available():
        return "cuda"
    if getattr(torch.backends, "mps", None) is not None and torch.backends.mps.is_available():
        return "mps"
    return "cpu"


class ModelRegistry:
    """
    Singleton registry for the text embedding model.

    Provides:
    - Lazy loading (the model is loaded on first encode)
    - In-memory caching (loaded once per process)
    - Batch text encoding returning normalized float32 vectors

    Usage:
        registry = ModelRegistry()
        embeddings = registry.encode_text_batch(["oak beam", "steel door"])
    """

    _instance: Optional["ModelRegistry"] = None

    def __new__(cls, config: Optional[MLConfig] = None):
        """Singleton pattern - only one instance per process."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config: Optional[MLConfig] = None):
        """Initialize registry (only runs once due to singleton)."""
        if self._initialized:
            return

        self._config = config or get_ml_config()
        self._device = resolve_device(self._config.model.device)
        self._models: dict = {}
        self._initialized = True

        logger.info(f"ModelRegistry initialized (device: {self._device})")

    def _check_ml_available(self):
        """Raise error if ML libraries not installed."""
        if not TORCH_AVAILABLE:
            raise ModelNotAvailableError(
                "ML dependencies not installed. Run: pip install torch open-clip-torch"
            )

    def get_text_model(self) -> Tuple:
        """
        Load the CLIP model and its tokenizer (cached).

        Returns:
            Tuple of (model, tokenizer)

        Raises:
            ModelNotAvailableError: If ML dependencies not installed
        """
        self._check_ml_available()

        if "clip" not in self._models:
            logger.info(
                f"Loading CLIP model: {self._config.model.clip_model} "
                f"({self._config.model.clip_pretrained})"
            )
            start_time = time.time()

            model, _, _ = open_clip.create_model_and_transforms(
                self._config.model.clip_model,
                pretrained=self._config.model.clip_pretrained,
                cache_dir=str(self._config.model.clip_cache_path),
            )
            tokenizer = open_clip.get_tokenizer(self._config.model.clip_model)

            model = model.to(self._device)
            model.eval()

            self._models["clip"] = model
            self._models["tokenizer"] = tokenizer

            load_time = time.time() - start_time
            logger.info(f"CLIP model loaded successfully in {load_time:.2f}s")

        return self._models["clip"], self._models["tokenizer"]

    def encode_text_batch(self, texts: List[str]) -> np.ndarray:
        """
        Batch encode multiple text strings.

        Args:
            texts: List of text strings

        Returns:
            Batch of embeddings (shape: [batch_size, embedding_dim]), L2
            normalized when configured
        """
        self._check_ml_available()

        if not texts:
            return np.zeros((0, self.get_embedding_dim()), dtype=np.float32)

        model, tokenizer = self.get_text_model()
        batch_size = self._config.embedding.embedding_batch_size

        batches = []
        for start in range(0, len(texts), batch_size):
            text_tokens = tokenizer(texts[start : start + batch_size]).to(self._device)

            with torch.no_grad():
                embeddings = model.encode_text(text_tokens)

                if self._config.embedding.normalize_embeddings:
                    embeddings = embeddings / embeddings.norm(dim=-1, keepdim=True)

            batches.append(embeddings.cpu().float().numpy())

        return np.vstack(batches)

    def get_embedding_dim(self) -> int:
        return self._config.embedding.text_embedding_dim

    def get_device(self) -> str:
        return self._device

    def is_loaded(self) -> bool:
        """Check if the model is currently loaded in memory."""
        return "clip" in self._models

    def unload_models(self):
        """
        Unload models from memory (useful for freeing GPU memory).
        Models will be reloaded on next use.
        """
        if self._models:
            logger.info("Unloading models from memory")
            self._models.clear()

            if TORCH_AVAILABLE and self._device == "cuda":
                torch.cuda.empty_cache()

    def get_model_info(self) -> dict:
        """
        Get information about the model.

        Returns:
            Dict with model configuration and status
        """
        return {
            "model_name": self._config.model.clip_model,
            "pretrained": self._config.model.clip_pretrained,
            "device": self._device,
            "embedding_dim": self.get_embedding_dim(),
            "is_loaded": self.is_loaded(),
            "torch_available": TORCH_AVAILABLE,
        }

    @classmethod
    def reset(cls) -> None:
        """Forget the singleton (useful for testing)."""
        cls._instance = None


def get_model_registry() -> ModelRegistry:
    """Get global model registry."""
    return ModelRegistry()
