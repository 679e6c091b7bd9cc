"""Materials module for Phong shading and procedural patterns.

Components:
    material: Material parameters, the material table and lighting()
    pattern: Pattern kinds, the pattern table and pattern sampling

Materials reference patterns by id; both live in Taichi fields so that
shading kernels can look them up per hit.
"""

from .material import (
    MAX_MATERIALS,
    Material,
    add_material,
    clear_materials,
    get_material_count,
    glass,
    lighting,
    surface_color,
)
from .pattern import (
    MAX_PATTERNS,
    Pattern,
    PatternKind,
    add_pattern,
    blended_pattern,
    checker_pattern,
    clear_patterns,
    get_pattern_count,
    gradient_pattern,
    pattern_at,
    pattern_color_at,
    position_pattern,
    ring_pattern,
    solid_pattern,
    stripe_pattern,
)

__all__ = [
    # Material
    "Material",
    "glass",
    "add_material",
    "clear_materials",
    "get_material_count",
    "lighting",
    "surface_color",
    "MAX_MATERIALS",
    # Pattern
    "Pattern",
    "PatternKind",
    "add_pattern",
    "clear_patterns",
    "get_pattern_count",
    "pattern_at",
    "pattern_color_at",
    "solid_pattern",
    "stripe_pattern",
    "gradient_pattern",
    "ring_pattern",
    "checker_pattern",
    "blended_pattern",
    "position_pattern",
    "MAX_PATTERNS",
]
