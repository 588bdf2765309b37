"""Linguistic style matching: analysis, comparison, blending, directives."""

from casual_companion.style.lsm import (
    analyze_style,
    apply_style,
    blend_styles,
    style_instructions,
    style_similarity,
)
from casual_companion.style.profile import StyleProfile

__all__ = [
    "StyleProfile",
    "analyze_style",
    "apply_style",
    "blend_styles",
    "style_instructions",
    "style_similarity",
]
