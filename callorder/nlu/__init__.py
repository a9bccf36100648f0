"""Utterance normalization and entity extraction."""

from .extractor import EntityExtractor, detect_quantity, detect_size
from .normalizer import normalize, tokens
from .types import Intent, ParsedUtterance

__all__ = [
    "EntityExtractor",
    "Intent",
    "ParsedUtterance",
    "detect_quantity",
    "detect_size",
    "normalize",
    "tokens",
]
