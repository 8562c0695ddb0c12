"""
Field Presence & Weight Resolution
Decides which fields of a query carry meaningful data and derives the weight
vector used to rank candidates.

Two modes:
- adaptive: default table, absent fields zeroed, renormalized to 1
- explicit: caller weights on a 0-100 scale, name forced to 0, renormalized

Both are pure functions of immutable inputs.
"""

import logging
from dataclasses import dataclass, fields
from typing import Iterable, Optional

from ...models.material import MaterialBase, ScoreBreakdown, WeightsInput
from ..config import DEFAULT_WEIGHTS, WeightTable

logger = logging.getLogger(__name__)

LOCATION_EPSILON = 1e-4
MIN_QUALITY = 0.5


@dataclass(frozen=True)
class FieldPresence:
    """Whether the query supplied meaningful data for each scorable field."""

    name: bool = False
    description: bool = False
    price: bool = False
    quality: bool = False
    location: bool = False
    availability: bool = False
    size: bool = False

    def absent_fields(self) -> list:
        return [f.name for f in fields(self) if not getattr(self, f.name)]

    def any_provided(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))


def _has_text(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


def detect_field_presence(
    material: MaterialBase,
    location_epsilon: float = LOCATION_EPSILON,
    min_quality: float = MIN_QUALITY,
) -> FieldPresence:
    """
    Inspect a query material once and flag the fields it really provides.

    Structurally present defaults do not count: a price of 0, a quality below
    the valid floor and a (0, 0) coordinate all mean "not specified".

    Args:
        material: Query material
        location_epsilon: Minimum coordinate magnitude for a usable location
        min_quality: Lowest valid quality value

    Returns:
        FieldPresence snapshot
    """
    location = material.location
    has_location = (
        location is not None
        and abs(location.latitude) > location_epsilon
        and abs(location.longitude) > location_epsilon
    )

    return FieldPresence(
        name=_has_text(material.name),
        description=_has_text(material.description),
        price=material.price is not None and material.price > 0,
        quality=material.quality is not None and material.quality >= min_quality,
        location=has_location,
        availability=material.available_time is not None
        and material.available_time.has_any_bound(),
        size=material.size is not None and material.size.has_any_dimension(),
    )


class WeightResolver:
    """
    Produces the per-field weights for a query.

    The default table is injected; nothing here reads global state.
    """

    def __init__(self, default_weights: WeightTable = DEFAULT_WEIGHTS):
        if abs(default_weights.total - 1.0) > 1e-6:
            raise ValueError(f"Default weights must sum to 1.0, got {default_weights.total}")
        self.default_weights = default_weights

    def adaptive(self, presence: FieldPresence) -> WeightTable:
        """Zero the weights of absent fields and renormalize the rest."""
        return self.default_weights.without(presence.absent_fields()).normalized()

    def explicit(self, weights: WeightsInput) -> WeightTable:
        """
        Rescale caller weights from 0-100 to [0, 1] and renormalize.

        The name weight is forced to 0: in this mode the name vector only
        drives candidate retrieval, never ranking.
        """
        table = WeightTable.from_dict(weights.model_dump()).scaled(1.0 / 100)
        return table.without(["name"]).normalized()

    def resolve(
        self, presence: FieldPresence, explicit: Optional[WeightsInput] = None
    ) -> WeightTable:
        """Pick the mode by whether the caller supplied explicit weights."""
        if explicit is not None:
            resolved = self.explicit(explicit)
            mode = "explicit"
        else:
            resolved = self.adaptive(presence)
            mode = "adaptive"

        if resolved.total == 0:
            logger.info(f"No weighted field available ({mode} mode), combined scores will be 0")
        else:
            logger.debug(f"Resolved {mode} weights: {resolved.to_dict()}")

        return resolved

    def reported(
        self, weights: WeightTable, breakdowns: Iterable[ScoreBreakdown]
    ) -> WeightTable:
        """
        Weights that actually influenced the output.

        Fields for which no returned candidate has a nonzero score are zeroed
        and the remainder renormalized.
        """
        breakdowns = list(breakdowns)
        uncovered = [
            name
            for name in WeightTable.field_names()
            if not any(getattr(breakdown, name) > 0 for breakdown in breakdowns)
        ]
        return weights.without(uncovered).normalized()
