"""
Monotonic Scorers
Pure functions turning a (query value, candidate value) pair into a [0, 1]
similarity score for one attribute family.

Every scorer returns None when either side lacks the value it needs, and never
raises. All transforms have the shape score = 1 / (1 + r) where r >= 0 grows
with the mismatch.
"""

import math
from typing import Iterable, Optional, Tuple

from ...models.material import AvailableTime, Location, Size, to_timestamp

EARTH_RADIUS_METERS = 6371e3

# Distance at which the location score is exactly 0.5
DEFAULT_DISTANCE_DECAY_METERS = 10000.0

NORMALIZATION_TOLERANCE = 1e-4


def weighted_combine(
    scores: Iterable[Tuple[Optional[float], float]],
    tolerance: float = NORMALIZATION_TOLERANCE,
) -> float:
    """
    Combine (score, weight) pairs into one value.

    Pairs with an undefined score are ignored. When the remaining weights
    already sum to ~1.0 the weighted sum is returned as is, so weights that
    were normalized upstream are not divided a second time.

    Args:
        scores: Iterable of (score, weight) pairs
        tolerance: Distance from 1.0 under which weights count as normalized

    Returns:
        Combined score, 0.0 when no defined pair carries weight
    """
    total_weight = 0.0
    weighted_sum = 0.0

    for score, weight in scores:
        if score is None:
            continue
        weighted_sum += score * weight
        total_weight += weight

    if total_weight == 0:
        return 0.0

    if abs(total_weight - 1.0) < tolerance:
        return weighted_sum

    return weighted_sum / total_weight


def closer_is_better(expected: Optional[float], match: Optional[float]) -> Optional[float]:
    """
    Score how close match is to expected.

    score = 1 / (1 + |expected - match| / expected); 1 when equal.
    """
    if expected is None or match is None:
        return None
    if expected == 0 and match == 0:
        return 1.0
    if expected == 0:
        return 1.0 / (1.0 + abs(match))

    r = abs(expected - match) / expected
    return 1.0 / (1.0 + r)


def lower_is_better(expected: Optional[float], match: Optional[float]) -> Optional[float]:
    """
    Score where match values at or below expected are perfect.

    score = 1 / (1 + max(0, (match - expected) / expected)).
    A match of 0 or less is always the best possible value; an expected value
    of 0 or less penalizes any positive match by 1 / (1 + match).
    """
    if expected is None or match is None:
        return None
    if match <= 0:
        return 1.0
    if expected <= 0:
        return 1.0 / (1.0 + match)

    r = max(0.0, (match - expected) / expected)
    return 1.0 / (1.0 + r)


def size_score(expected: Optional[Size], match: Optional[Size]) -> Optional[float]:
    """Unweighted mean of closer_is_better over the dimensions both sides define."""
    if expected is None or match is None:
        return None

    dimension_scores = [
        closer_is_better(expected.width, match.width),
        closer_is_better(expected.height, match.height),
        closer_is_better(expected.depth, match.depth),
    ]
    defined = [(score, 1.0) for score in dimension_scores if score is not None]

    if not defined:
        return None

    return weighted_combine(defined)


def _has_coordinates(location: Optional[Location]) -> bool:
    return location is not None and bool(location.latitude) and bool(location.longitude)


def distance_in_meters(expected: Optional[Location], match: Optional[Location]) -> Optional[float]:
    """
    Haversine great-circle distance in meters.

    Returns None if either location is missing or has a zero coordinate.
    """
    if not _has_coordinates(expected) or not _has_coordinates(match):
        return None

    phi1 = math.radians(expected.latitude)
    phi2 = math.radians(match.latitude)
    delta_phi = math.radians(match.latitude - expected.latitude)
    delta_lambda = math.radians(match.longitude - expected.longitude)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def distance_score(
    expected: Optional[Location],
    match: Optional[Location],
    decay_meters: float = DEFAULT_DISTANCE_DECAY_METERS,
) -> Optional[float]:
    """
    Score geographic proximity: 1 / (1 + d / k).

    With the default k = 10 km the score is 0.5 at 10 km, tends to 1 as the
    distance shrinks and to 0 as it grows.
    """
    d = distance_in_meters(expected, match)
    if d is None:
        return None
    return 1.0 / (1.0 + d / decay_meters)


def is_within_radius(
    center: Optional[Location], point: Optional[Location], radius_km: Optional[float]
) -> Optional[bool]:
    """
    Radius containment on the raw Haversine distance.

    Returns None when the check cannot be evaluated (missing data).
    """
    if center is None or point is None or not radius_km:
        return None

    distance_m = distance_in_meters(center, point)
    if distance_m is None:
        return None

    return distance_m <= radius_km * 1000


def _bounds(time_range: AvailableTime) -> Tuple[float, float]:
    start = to_timestamp(time_range.from_) if time_range.from_ is not None else -math.inf
    end = to_timestamp(time_range.to) if time_range.to is not None else math.inf
    return start, end


def _has_bounds(time_range: Optional[AvailableTime]) -> bool:
    return time_range is not None and time_range.has_any_bound()


def time_ranges_overlap(
    search: Optional[AvailableTime], candidate: Optional[AvailableTime]
) -> Optional[bool]:
    """
    Whether two time ranges share at least one instant.

    An unset side is unbounded. Returns None when either range has no bound.
    """
    if not _has_bounds(search) or not _has_bounds(candidate):
        return None

    search_start, search_end = _bounds(search)
    candidate_start, candidate_end = _bounds(candidate)

    return not (search_end < candidate_start or candidate_end < search_start)


def availability_score(
    expected: Optional[AvailableTime], match: Optional[AvailableTime]
) -> Optional[float]:
    """
    Share of the requested time span covered by the candidate's window.

    Non-overlapping ranges score 0. When the requested range is open on either
    side, the overlap itself is the reference span, so any overlap scores 1.

    Args:
        expected: Time range of the query material
        match: Time range of the candidate

    Returns:
        min(1, overlap / requested span), or None if either range has no bound
    """
    if not _has_bounds(expected) or not _has_bounds(match):
        return None

    search_start, search_end = _bounds(expected)
    candidate_start, candidate_end = _bounds(match)

    if search_end < candidate_start or candidate_end < search_start:
        return 0.0

    overlap = min(search_end, candidate_end) - max(search_start, candidate_start)

    if math.isinf(search_start) or math.isinf(search_end):
        search_span = overlap
    else:
        search_span = search_end - search_start

    if search_span <= 0 or math.isinf(overlap):
        return 1.0

    return min(1.0, overlap / search_span)
