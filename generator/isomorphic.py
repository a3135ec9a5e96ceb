"""
Isomorphic variation generator.

Generates N datasets with identical targets (r, n, slope, ranges) but
different seeds, producing visually distinct scatterplots with the same
ground-truth correlation. Useful for building balanced stimulus sets and for
checking that a property holds across layouts rather than for one seed.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from config import settings
from generator.base import BaseCache
from generator.state import GeneratedDataset, GenerationRequest, generate_request


def generate_isomorphisms(
    request: GenerationRequest,
    n: Optional[int] = None,
    base_seed: int = 0,
    cache: Optional[BaseCache] = None,
) -> list[GeneratedDataset]:
    """
    Generate N isomorphic variations of one request.

    Args:
        request: The targets to hold constant; its own seed is ignored.
        n: Number of variations (defaults to settings.NUM_ISOMORPHISMS).
        base_seed: Starting seed; variations use base_seed + i.
        cache: Optional base cache shared across calls.

    Returns:
        List of datasets. Empty when the sample size is below 2.
    """
    if n is None:
        n = settings.NUM_ISOMORPHISMS

    results: list[GeneratedDataset] = []
    for i in range(n):
        dataset = generate_request(replace(request, seed=base_seed + i), cache=cache)
        if dataset is None:
            return []
        results.append(dataset)

    return results
