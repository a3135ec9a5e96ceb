"""Stimulus Generator — exact-correlation scatterplot data."""

from generator.base import BaseCache, BaseVectors, build_base
from generator.errors import GeneratorError, InsufficientSamples
from generator.state import (
    GeneratedDataset,
    GenerationRequest,
    Point,
    generate,
    generate_request,
    mix,
)
from generator.stats import pearson
from generator.isomorphic import generate_isomorphisms

__all__ = [
    "BaseCache",
    "BaseVectors",
    "build_base",
    "GeneratorError",
    "InsufficientSamples",
    "GeneratedDataset",
    "GenerationRequest",
    "Point",
    "generate",
    "generate_request",
    "mix",
    "pearson",
    "generate_isomorphisms",
]
