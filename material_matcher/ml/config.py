"""
ML Configuration
Centralized configuration for embedding generation, vector storage and
multi-field retrieval scoring.
"""

import os
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Optional


class ModelType(Enum):
    """Supported text embedding models."""

    CLIP_VIT_B32 = "ViT-B-32"
    CLIP_VIT_L14 = "ViT-L-14"
    SIGLIP_BASE = "ViT-B-16-SigLIP"


class PretrainedSource(Enum):
    """Pretrained model sources."""

    OPENAI = "openai"
    LAION2B = "laion2b_s34b_b79k"
    WEBLI = "webli"  # SigLIP


class MissingDataPolicy(str, Enum):
    """What a hard constraint does when the data to evaluate it is missing."""

    PERMISSIVE = "permissive"  # candidate passes
    STRICT = "strict"  # candidate is excluded


@dataclass(frozen=True)
class WeightTable:
    """
    Immutable per-field weight vector.

    Used both for the default table in configuration and for the weights
    resolved for a single query.
    """

    name: float = 0.0
    description: float = 0.0
    price: float = 0.0
    quality: float = 0.0
    location: float = 0.0
    availability: float = 0.0
    size: float = 0.0

    def __post_init__(self):
        for f in fields(self):
            if getattr(self, f.name) < 0:
                raise ValueError(f"Weight '{f.name}' must be non-negative")

    @classmethod
    def field_names(cls) -> tuple:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_dict(cls, values: Dict[str, float]) -> "WeightTable":
        return cls(**{name: float(values.get(name, 0.0)) for name in cls.field_names()})

    def to_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in self.field_names()}

    @property
    def total(self) -> float:
        return sum(self.to_dict().values())

    def without(self, names: Iterable[str]) -> "WeightTable":
        """Copy with the given fields set to 0."""
        return replace(self, **{name: 0.0 for name in names})

    def scaled(self, factor: float) -> "WeightTable":
        return WeightTable(**{k: v * factor for k, v in self.to_dict().items()})

    def normalized(self) -> "WeightTable":
        """Copy whose weights sum to 1.0 (all zeros stay all zeros)."""
        total = self.total
        if total <= 0:
            return WeightTable()
        return self.scaled(1.0 / total)


DEFAULT_WEIGHTS = WeightTable(
    name=0.20,
    description=0.20,
    price=0.15,
    quality=0.15,
    location=0.10,
    availability=0.10,
    size=0.10,
)


@dataclass
class ModelConfig:
    """Model selection and loading configuration."""

    clip_model: str = ModelType.CLIP_VIT_B32.value
    clip_pretrained: str = PretrainedSource.OPENAI.value

    # Model cache directory (created on first load)
    clip_cache_path: Path = field(default_factory=lambda: Path("models/cache/clip"))

    # "auto" picks cuda when available
    device: str = "auto"

    def __post_init__(self):
        self.clip_cache_path = Path(self.clip_cache_path)


@dataclass
class EmbeddingConfig:
    """Embedding generation configuration."""

    text_embedding_dim: int = 512

    # L2 normalization (required for cosine similarity via inner product)
    normalize_embeddings: bool = True

    embedding_batch_size: int = 32

    # CLIP's context length, longer texts are cut by the tokenizer
    max_text_tokens: int = 77


@dataclass
class StorageConfig:
    """Vector index storage configuration."""

    index_dir: Path = field(default_factory=lambda: Path("models/cache/vector_index"))

    # Save indices to index_dir after each ingestion batch
    persist_indices: bool = False

    # Field whose index entries carry the MetaData projection
    metadata_field: str = "name"

    # Maintain a third index over the classification code
    enable_classification_index: bool = True

    def __post_init__(self):
        self.index_dir = Path(self.index_dir)


@dataclass
class RetrievalConfig:
    """Scoring, weighting and constraint configuration."""

    default_weights: WeightTable = DEFAULT_WEIGHTS

    # Hard constraint on a scored field: minimum score to keep a candidate
    hard_constraint_threshold: float = 0.8

    # Distance (meters) at which the location score is exactly 0.5
    distance_decay_meters: float = 10000.0

    # Coordinates at or below this magnitude count as "not set"
    location_epsilon: float = 1e-4

    # Weight sums this close to 1.0 are treated as already normalized
    normalization_tolerance: float = 1e-4

    # Lowest valid quality; stored defaults below it mean "not specified"
    min_quality: float = 0.5

    # Candidates requested per index = top_k * candidate_multiplier
    candidate_multiplier: int = 1

    missing_data_policy: MissingDataPolicy = MissingDataPolicy.PERMISSIVE

    # Scores reported by an index may overshoot [0, 1] by this much
    score_tolerance: float = 1e-3

    def __post_init__(self):
        total = self.default_weights.total
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Default weights must sum to 1.0, got {total}")
        if not 0.0 <= self.hard_constraint_threshold <= 1.0:
            raise ValueError("Hard constraint threshold must be in [0, 1]")
        if self.distance_decay_meters <= 0:
            raise ValueError("Distance decay must be positive")
        if self.candidate_multiplier < 1:
            raise ValueError("Candidate multiplier must be >= 1")
        self.missing_data_policy = MissingDataPolicy(self.missing_data_policy)


@dataclass
class MLConfig:
    """Top-level ML configuration combining all sub-configs."""

    model: ModelConfig = field(default_factory=ModelConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)

    # Model versioning (for tracking embedding re-generation)
    model_version: str = "v1.0-clip-vit-b32"

    @classmethod
    def from_env(cls) -> "MLConfig":
        """Load configuration from environment variables."""
        config = cls()

        if clip_model := os.getenv("CLIP_MODEL"):
            config.model.clip_model = clip_model

        if clip_pretrained := os.getenv("CLIP_PRETRAINED"):
            config.model.clip_pretrained = clip_pretrained

        if device := os.getenv("ML_DEVICE"):
            config.model.device = device

        if batch_size := os.getenv("EMBEDDING_BATCH_SIZE"):
            config.embedding.embedding_batch_size = int(batch_size)

        if index_dir := os.getenv("INDEX_DIR"):
            config.storage.index_dir = Path(index_dir)

        if persist := os.getenv("INDEX_PERSIST"):
            config.storage.persist_indices = persist.lower() in ("1", "true", "yes")

        if threshold := os.getenv("HARD_CONSTRAINT_THRESHOLD"):
            config.retrieval.hard_constraint_threshold = float(threshold)

        if policy := os.getenv("MISSING_DATA_POLICY"):
            config.retrieval.missing_data_policy = MissingDataPolicy(policy.lower())

        if multiplier := os.getenv("CANDIDATE_MULTIPLIER"):
            config.retrieval.candidate_multiplier = int(multiplier)

        return config

    def validate(self) -> None:
        """Validate configuration consistency."""
        assert self.embedding.text_embedding_dim > 0, "Embedding dimension must be positive"

        assert self.storage.metadata_field in (
            "name",
            "description",
            "classification",
        ), f"Unknown metadata field: {self.storage.metadata_field}"

        assert (
            0.0 <= self.retrieval.hard_constraint_threshold <= 1.0
        ), "Hard constraint threshold must be in [0, 1]"

        assert self.retrieval.candidate_multiplier >= 1, "Candidate multiplier must be >= 1"


# Global configuration instance
_global_config: Optional[MLConfig] = None


def get_ml_config() -> MLConfig:
    """Get global ML configuration (singleton pattern)."""
    global _global_config
    if _global_config is None:
        _global_config = MLConfig.from_env()
        _global_config.validate()
    return _global_config


def reset_config() -> None:
    """Reset global configuration (useful for testing)."""
    global _global_config
    _global_config = None
