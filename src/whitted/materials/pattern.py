"""Procedural color patterns sampled in pattern space.

A pattern has a kind, two inputs `a` and `b`, and its own transform
(pattern space to object space). Each input is either a color or a
nested leaf pattern, which allows a checkerboard of stripes or a blend of
two rings. Nesting is one level deep: a pattern used as an input must
itself only have colors as inputs.

Sampling goes world -> object (the owning shape's inverse) -> pattern
(the pattern's inverse). A nested input is sampled at the parent's
pattern-space point carried through the child's own inverse.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.whitted.core.transform import scaling
    >>> from src.whitted.materials.pattern import add_pattern, checker_pattern, stripe_pattern
    >>> inner = stripe_pattern((1, 0, 0), (1, 1, 1), transform=scaling(0.25, 1, 1))
    >>> pattern_id = add_pattern(checker_pattern(inner, (0, 0, 0)))
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Union

import numpy as np
import taichi as ti

from src.whitted.core.ray import mat4, real, transform_point, vec3
from src.whitted.core.transform import Matrix4, as_matrix, inverse

logger = logging.getLogger(__name__)

Color = tuple[float, float, float]


class PatternKind(IntEnum):
    """Pattern functions available to materials."""

    SOLID = 0
    STRIPE = 1
    GRADIENT = 2
    RING = 3
    CHECKER = 4
    BLENDED = 5
    POSITION = 6


@dataclass
class Pattern:
    """Host-side description of a pattern.

    Attributes:
        kind: Which pattern function to evaluate.
        a: First color, or a leaf Pattern sampled in its place.
        b: Second color, or a leaf Pattern sampled in its place.
        transform: Pattern-to-object transform (None for identity).
    """

    kind: PatternKind
    a: Union[Color, "Pattern"] = (1.0, 1.0, 1.0)
    b: Union[Color, "Pattern"] = (0.0, 0.0, 0.0)
    transform: Matrix4 | None = None

    def is_leaf(self) -> bool:
        """Whether both inputs are plain colors."""
        return not isinstance(self.a, Pattern) and not isinstance(self.b, Pattern)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""

        def _input(value: Union[Color, "Pattern"]) -> Any:
            if isinstance(value, Pattern):
                return value.to_dict()
            return [float(c) for c in value]

        return {
            "kind": self.kind.name.lower(),
            "a": _input(self.a),
            "b": _input(self.b),
            "transform": as_matrix(self.transform).tolist(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Pattern":
        """Rebuild a pattern from to_dict() output.

        Raises:
            ValueError: If the kind name is unknown.
        """
        kind_name = str(data["kind"]).upper()
        if kind_name not in PatternKind.__members__:
            raise ValueError(f"Unknown pattern kind: {data['kind']}")

        def _input(value: Any) -> Union[Color, "Pattern"]:
            if isinstance(value, dict):
                return cls.from_dict(value)
            return (float(value[0]), float(value[1]), float(value[2]))

        return cls(
            kind=PatternKind[kind_name],
            a=_input(data.get("a", (1.0, 1.0, 1.0))),
            b=_input(data.get("b", (0.0, 0.0, 0.0))),
            transform=np.array(data["transform"]) if "transform" in data else None,
        )


# =============================================================================
# Pattern constructors
# =============================================================================


def solid_pattern(color: Color) -> Pattern:
    """A pattern that is the same color everywhere."""
    return Pattern(PatternKind.SOLID, color, color)


def stripe_pattern(a, b, transform: Matrix4 | None = None) -> Pattern:
    """Alternate a and b on unit intervals of x."""
    return Pattern(PatternKind.STRIPE, a, b, transform)


def gradient_pattern(a, b, transform: Matrix4 | None = None) -> Pattern:
    """Blend linearly from a to b across each unit interval of x."""
    return Pattern(PatternKind.GRADIENT, a, b, transform)


def ring_pattern(a, b, transform: Matrix4 | None = None) -> Pattern:
    """Concentric rings of a and b around the y axis."""
    return Pattern(PatternKind.RING, a, b, transform)


def checker_pattern(a, b, transform: Matrix4 | None = None) -> Pattern:
    """Alternate a and b on a 3D grid of unit cubes."""
    return Pattern(PatternKind.CHECKER, a, b, transform)


def blended_pattern(a, b, transform: Matrix4 | None = None) -> Pattern:
    """Average of a and b, typically two nested patterns."""
    return Pattern(PatternKind.BLENDED, a, b, transform)


def position_pattern(transform: Matrix4 | None = None) -> Pattern:
    """Color each point by its pattern-space coordinates. Used in tests."""
    return Pattern(PatternKind.POSITION, transform=transform)


# =============================================================================
# Pattern storage
# =============================================================================

# Maximum number of patterns, counting nested inputs separately
MAX_PATTERNS = 1024

pattern_kinds = ti.field(dtype=ti.i32, shape=MAX_PATTERNS)
pattern_colors_a = ti.Vector.field(3, dtype=real, shape=MAX_PATTERNS)
pattern_colors_b = ti.Vector.field(3, dtype=real, shape=MAX_PATTERNS)
pattern_inverses = ti.Matrix.field(4, 4, dtype=real, shape=MAX_PATTERNS)
# Nested input pattern ids, -1 when the input is a plain color
pattern_children_a = ti.field(dtype=ti.i32, shape=MAX_PATTERNS)
pattern_children_b = ti.field(dtype=ti.i32, shape=MAX_PATTERNS)
num_patterns = ti.field(dtype=ti.i32, shape=())


def clear_patterns() -> None:
    """Clear all registered patterns."""
    num_patterns[None] = 0


def get_pattern_count() -> int:
    """Get the number of registered patterns (nested inputs included)."""
    return int(num_patterns[None])


def _store_pattern(kind: PatternKind, a: Color, b: Color, inverse_matrix: Matrix4, child_a: int, child_b: int) -> int:
    idx = num_patterns[None]
    if idx >= MAX_PATTERNS:
        raise RuntimeError(f"Maximum number of patterns ({MAX_PATTERNS}) exceeded")
    pattern_kinds[idx] = int(kind)
    pattern_colors_a[idx] = vec3(a[0], a[1], a[2])
    pattern_colors_b[idx] = vec3(b[0], b[1], b[2])
    pattern_inverses[idx] = inverse_matrix.tolist()
    pattern_children_a[idx] = child_a
    pattern_children_b[idx] = child_b
    num_patterns[None] = idx + 1
    return idx


def add_pattern(pattern: Pattern) -> int:
    """Register a pattern (and any nested inputs) for use by materials.

    Args:
        pattern: The pattern to upload.

    Returns:
        The pattern id of the top-level pattern.

    Raises:
        ValueError: If a nested input has nested inputs of its own, or
            a transform is not invertible.
        RuntimeError: If the maximum number of patterns is exceeded.
    """
    inverse_matrix = inverse(as_matrix(pattern.transform))
    for value in (pattern.a, pattern.b):
        if isinstance(value, Pattern):
            if not value.is_leaf():
                raise ValueError("Nested patterns may only be one level deep")
            inverse(as_matrix(value.transform))
        elif len(value) != 3:
            raise ValueError(f"Pattern color must have 3 components, got {value!r}")

    child_ids = []
    colors = []
    for value in (pattern.a, pattern.b):
        if isinstance(value, Pattern):
            child_ids.append(
                _store_pattern(
                    value.kind,
                    value.a,
                    value.b,
                    inverse(as_matrix(value.transform)),
                    -1,
                    -1,
                )
            )
            colors.append((0.0, 0.0, 0.0))
        else:
            child_ids.append(-1)
            colors.append(value)

    idx = _store_pattern(pattern.kind, colors[0], colors[1], inverse_matrix, child_ids[0], child_ids[1])
    logger.debug("Registered %s pattern %d", pattern.kind.name.lower(), idx)
    return idx


# =============================================================================
# Pattern evaluation
# =============================================================================


@ti.func
def _parity(value: real) -> ti.i32:
    """1 if floor(value) is odd, 0 if even (correct for negatives)."""
    return ti.cast(ti.floor(value), ti.i32) & 1


@ti.func
def _pattern_function(kind: ti.i32, a: vec3, b: vec3, point: vec3) -> vec3:
    """Evaluate a pattern function at a pattern-space point with resolved inputs."""
    color = a
    if kind == int(PatternKind.STRIPE):
        if _parity(point.x) == 1:
            color = b
    elif kind == int(PatternKind.GRADIENT):
        fraction = point.x - ti.floor(point.x)
        color = a + (b - a) * fraction
    elif kind == int(PatternKind.RING):
        if _parity(ti.sqrt(point.x * point.x + point.z * point.z)) == 1:
            color = b
    elif kind == int(PatternKind.CHECKER):
        total = ti.cast(ti.floor(point.x) + ti.floor(point.y) + ti.floor(point.z), ti.i32)
        if (total & 1) == 1:
            color = b
    elif kind == int(PatternKind.BLENDED):
        color = (a + b) * 0.5
    elif kind == int(PatternKind.POSITION):
        color = point
    return color


@ti.func
def _input_color(child_id: ti.i32, color: vec3, parent_point: vec3) -> vec3:
    """Resolve one pattern input: a plain color or a nested leaf pattern."""
    result = color
    if child_id >= 0:
        child_point = transform_point(pattern_inverses[child_id], parent_point)
        result = _pattern_function(
            pattern_kinds[child_id],
            pattern_colors_a[child_id],
            pattern_colors_b[child_id],
            child_point,
        )
    return result


@ti.func
def pattern_at(pattern_id: ti.i32, object_point: vec3) -> vec3:
    """Sample a pattern at a point given in the owning object's space."""
    point = transform_point(pattern_inverses[pattern_id], object_point)
    a = _input_color(pattern_children_a[pattern_id], pattern_colors_a[pattern_id], point)
    b = _input_color(pattern_children_b[pattern_id], pattern_colors_b[pattern_id], point)
    return _pattern_function(pattern_kinds[pattern_id], a, b, point)


@ti.func
def pattern_color_at(pattern_id: ti.i32, object_inverse: mat4, world_point: vec3) -> vec3:
    """Sample a pattern at a world-space point on the object it decorates.

    Args:
        pattern_id: Id returned by add_pattern().
        object_inverse: Inverse transform of the shape owning the material.
        world_point: Point on the shape's surface in world space.

    Returns:
        The pattern color. Pure and deterministic.
    """
    return pattern_at(pattern_id, transform_point(object_inverse, world_point))
