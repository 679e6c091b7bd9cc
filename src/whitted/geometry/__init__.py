"""Geometry module for the primitive shapes.

Components:
    hits: Fixed-capacity LocalHits root list shared by all primitives
    sphere: Unit sphere
    plane: Infinite xz plane
    cube: Axis-aligned cube [-1, 1]^3
    cylinder: Unit cylinder with optional bounds and caps
    cone: Double cone with optional bounds and caps
    shape: ShapeKind enum and the local intersect/normal dispatch

Every routine here works in object space and is a Taichi function. The
scene layer transforms rays into object space before calling them and
carries normals back out with the inverse-transpose.
"""

from .hits import MAX_LOCAL_HITS, LocalHits, empty_hits, push_hit
from .shape import ShapeKind, local_intersect, local_normal_at

__all__ = [
    "MAX_LOCAL_HITS",
    "LocalHits",
    "empty_hits",
    "push_hit",
    "ShapeKind",
    "local_intersect",
    "local_normal_at",
]
