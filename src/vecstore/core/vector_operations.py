"""Exact vector similarity math used by backends that rank results client side."""

import math
from typing import Iterable, List, Optional, Sequence, Tuple, TypeVar

from vecstore.core.definition import DistanceFunction
from vecstore.core.exceptions import UnsupportedQueryError
from vecstore.core.options import VectorSearchOptions

T = TypeVar("T")


def _check_lengths(a: Sequence[float], b: Sequence[float]) -> None:
    if len(a) != len(b):
        raise ValueError(f"Vectors must have the same length, got {len(a)} and {len(b)}")


def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
    _check_lengths(a, b)
    return float(sum(float(x) * float(y) for x, y in zip(a, b)))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    _check_lengths(a, b)
    na = math.sqrt(sum(float(x) * float(x) for x in a))
    nb = math.sqrt(sum(float(y) * float(y) for y in b))
    if na == 0.0 or nb == 0.0:
        raise ValueError("Cannot compute cosine similarity of a zero vector")
    return dot_product(a, b) / (na * nb)


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    return 1.0 - cosine_similarity(a, b)


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    _check_lengths(a, b)
    return math.sqrt(sum((float(x) - float(y)) ** 2 for x, y in zip(a, b)))


def effective_distance_function(distance_function: DistanceFunction) -> DistanceFunction:
    if distance_function == DistanceFunction.UNDEFINED:
        return DistanceFunction.EUCLIDEAN_DISTANCE
    return distance_function


def score(distance_function: DistanceFunction, a: Sequence[float], b: Sequence[float]) -> float:
    distance_function = effective_distance_function(distance_function)
    if distance_function == DistanceFunction.COSINE_SIMILARITY:
        return cosine_similarity(a, b)
    if distance_function == DistanceFunction.COSINE_DISTANCE:
        return cosine_distance(a, b)
    if distance_function == DistanceFunction.DOT_PRODUCT:
        return dot_product(a, b)
    return euclidean_distance(a, b)


def is_ascending(distance_function: DistanceFunction) -> bool:
    """Distances rank smallest first; similarities and dot products rank largest first."""
    distance_function = effective_distance_function(distance_function)
    return distance_function in (DistanceFunction.COSINE_DISTANCE, DistanceFunction.EUCLIDEAN_DISTANCE)


def exact_search(
    candidates: Iterable[Tuple[T, Optional[Sequence[float]]]],
    vector: Sequence[float],
    distance_function: DistanceFunction,
    options: VectorSearchOptions,
) -> List[Tuple[T, float]]:
    """
    Score every candidate against ``vector`` and cut the ``[skip, skip + top)`` window
    out of the ranking. Candidates without a stored vector are passed over.
    """
    try:
        scored = [(item, score(distance_function, vector, stored)) for item, stored in candidates if stored is not None]
    except ValueError as e:
        raise UnsupportedQueryError(str(e)) from e
    scored.sort(key=lambda pair: pair[1], reverse=not is_ascending(distance_function))
    return scored[options.window(len(scored))]
