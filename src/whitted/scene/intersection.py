"""Shape storage and ray-world intersection.

Shapes are stored in Taichi fields with a Structure of Arrays layout:
kind, inverse transform, material id and the cylinder/cone bounds. Only
the inverse transform is kept because every query needs to move a world
ray into object space, and normals come back through its transpose.

Two views of the same intersections are provided:

- `intersect_world()` / `hit()` on the host return the full sorted list
  of Intersection records for one ray. This is what tests and debugging
  code look at.
- `nearest_hit()` inside kernels finds the same hit without building a
  list, by keeping the smallest non-negative t seen. Shapes are visited
  in insertion order and ties keep the earlier entry, which matches the
  stable sort of the host list.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.whitted.core.transform import identity
    >>> from src.whitted.geometry.shape import ShapeKind
    >>> from src.whitted.scene.intersection import add_shape, hit, intersect_world
    >>> add_shape(ShapeKind.SPHERE, identity(), material_id=0)
    >>> xs = intersect_world((0, 0, -5), (0, 0, 1))
    >>> [x.t for x in xs], hit(xs).t
    ([4.0, 6.0], 4.0)
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import Ray, real, transform_point, transform_ray, transform_vector, vec3
from src.whitted.core.transform import Matrix4, inverse
from src.whitted.geometry.hits import MAX_LOCAL_HITS, LocalHits
from src.whitted.geometry.shape import ShapeKind, local_intersect, local_normal_at
from src.whitted.materials.material import material_refractive_indices

logger = logging.getLogger(__name__)


@ti.dataclass
class HitRecord:
    """Nearest intersection of a ray with the world.

    Attributes:
        hit: 1 if some shape was hit at t >= 0, 0 if the ray escaped.
        t: Ray parameter of the hit. Only valid if hit == 1.
        shape_id: Index of the shape that was hit. Only valid if hit == 1.
        index: Position of the root within that shape's local roots, which
            identifies the hit in the containment walk for n1/n2.
    """

    hit: ti.i32
    t: real
    shape_id: ti.i32
    index: ti.i32


@dataclass(frozen=True)
class Intersection:
    """One crossing of a ray with a shape (host side).

    Attributes:
        t: Distance along the ray, in units of the ray's direction.
        shape_id: Index of the shape crossed.
        local_index: Position of this root among the shape's own roots.
    """

    t: float
    shape_id: int
    local_index: int = 0


# Maximum number of shapes in the scene
MAX_SHAPES = 1024

# Shape storage: Structure of Arrays layout
shape_kinds = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
shape_inverses = ti.Matrix.field(4, 4, dtype=real, shape=MAX_SHAPES)
shape_material_ids = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
shape_minimums = ti.field(dtype=real, shape=MAX_SHAPES)
shape_maximums = ti.field(dtype=real, shape=MAX_SHAPES)
shape_closed = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
num_shapes = ti.field(dtype=ti.i32, shape=())

# Scratch output for intersect_world()
_xs_t = ti.field(dtype=real, shape=MAX_SHAPES * MAX_LOCAL_HITS)
_xs_shape = ti.field(dtype=ti.i32, shape=MAX_SHAPES * MAX_LOCAL_HITS)
_xs_index = ti.field(dtype=ti.i32, shape=MAX_SHAPES * MAX_LOCAL_HITS)
_xs_count = ti.field(dtype=ti.i32, shape=())


def clear_shapes() -> None:
    """Remove all shapes from the scene."""
    num_shapes[None] = 0


def get_shape_count() -> int:
    """Get the number of shapes in the scene."""
    return int(num_shapes[None])


def validate_bounds(minimum: float, maximum: float, closed: bool) -> None:
    """Check the y bounds of a cylinder or cone.

    Raises:
        ValueError: If minimum exceeds maximum, or a closed shape has an
            infinite bound.
    """
    if minimum > maximum:
        raise ValueError(f"Shape minimum ({minimum}) must not exceed maximum ({maximum})")
    if closed and not (math.isfinite(minimum) and math.isfinite(maximum)):
        raise ValueError("A closed shape requires finite minimum and maximum bounds")


def add_shape(
    kind: ShapeKind,
    transform: Matrix4,
    material_id: int,
    minimum: float = -math.inf,
    maximum: float = math.inf,
    closed: bool = False,
) -> int:
    """Add a shape to the scene.

    Args:
        kind: Which primitive to add.
        transform: Object-to-world transform.
        material_id: Material id from add_material(). Not validated here;
            the World checks it against its own materials.
        minimum: Lower y bound for cylinders and cones.
        maximum: Upper y bound for cylinders and cones.
        closed: Whether a cylinder or cone has end caps.

    Returns:
        The index of the added shape.

    Raises:
        ValueError: If the transform is not invertible or the bounds are
            inconsistent.
        RuntimeError: If the maximum number of shapes is exceeded.
    """
    validate_bounds(minimum, maximum, closed)
    inverse_matrix = inverse(transform)

    idx = num_shapes[None]
    if idx >= MAX_SHAPES:
        raise RuntimeError(f"Maximum number of shapes ({MAX_SHAPES}) exceeded")
    shape_kinds[idx] = int(kind)
    shape_inverses[idx] = inverse_matrix.tolist()
    shape_material_ids[idx] = material_id
    shape_minimums[idx] = minimum
    shape_maximums[idx] = maximum
    shape_closed[idx] = 1 if closed else 0
    num_shapes[None] = idx + 1

    logger.debug("Added %s %d with material %d", ShapeKind(kind).name.lower(), idx, material_id)
    return idx


# =============================================================================
# Per-shape queries
# =============================================================================


@ti.func
def intersect_shape(shape_id: ti.i32, ray: Ray) -> LocalHits:
    """Intersect a world-space ray with one shape.

    The ray is moved into object space by the shape's inverse transform;
    the resulting t values are valid along the world ray.
    """
    local_ray = transform_ray(shape_inverses[shape_id], ray)
    return local_intersect(
        shape_kinds[shape_id],
        local_ray,
        shape_minimums[shape_id],
        shape_maximums[shape_id],
        shape_closed[shape_id],
    )


@ti.func
def normal_at(shape_id: ti.i32, world_point: vec3) -> vec3:
    """World-space unit normal of a shape at a point on its surface.

    The object-space normal is carried back with the inverse-transpose of
    the shape's transform. A degenerate normal (the apex of a cone) is
    returned as the zero vector instead of being normalized.
    """
    inv = shape_inverses[shape_id]
    local_point = transform_point(inv, world_point)
    local_normal = local_normal_at(
        shape_kinds[shape_id],
        local_point,
        shape_minimums[shape_id],
        shape_maximums[shape_id],
    )
    world_normal = transform_vector(inv.transpose(), local_normal)
    length_sq = tm.dot(world_normal, world_normal)
    if length_sq > 0.0:
        world_normal = world_normal / ti.sqrt(length_sq)
    return world_normal


# =============================================================================
# World queries
# =============================================================================


@ti.func
def nearest_hit(ray: Ray) -> HitRecord:
    """Find the intersection with the smallest non-negative t.

    Must be called inside a serial context (for example inside the
    per-pixel loop of a kernel), since it loops over all shapes.

    Args:
        ray: World-space ray.

    Returns:
        A HitRecord; hit == 0 when the ray escapes the scene.
    """
    result = HitRecord(hit=0, t=0.0, shape_id=-1, index=-1)
    for j in range(num_shapes[None]):
        hits = intersect_shape(j, ray)
        for k in ti.static(range(MAX_LOCAL_HITS)):
            if k < hits.count:
                t = hits.t[k]
                if t >= 0.0 and (result.hit == 0 or t < result.t):
                    result = HitRecord(hit=1, t=t, shape_id=j, index=k)
    return result


@ti.func
def _key_after(t: real, shape_id: ti.i32, index: ti.i32, other_t: real, other_shape: ti.i32, other_index: ti.i32) -> ti.i32:
    """Whether (t, shape, index) sorts after the other key in the stable order."""
    return t > other_t or (
        t == other_t and (shape_id > other_shape or (shape_id == other_shape and index > other_index))
    )


@ti.func
def refractive_indices(ray: Ray, hit_t: real, hit_shape: ti.i32, hit_index: ti.i32):
    """Refractive indices on either side of a hit (n1 exited, n2 entered).

    Equivalent to walking the sorted intersection list up to the hit while
    maintaining the list of shapes the ray is currently inside, but without
    storing the list. A shape contains the ray at the hit exactly when an
    odd number of its crossings sort before the hit. The most recently
    entered container is the one whose last preceding crossing sorts
    latest.

    Args:
        ray: The world-space ray that produced the hit.
        hit_t: t of the hit.
        hit_shape: Shape of the hit.
        hit_index: Local root index of the hit within hit_shape.

    Returns:
        Tuple of (n1, n2). The surrounding medium is vacuum (1.0).
    """
    # Innermost container among all shapes, and among shapes other than the hit one
    all_found = 0
    all_t = 0.0
    all_shape = -1
    all_index = -1
    other_found = 0
    other_t = 0.0
    other_shape = -1
    other_index = -1
    hit_shape_inside = 0

    for j in range(num_shapes[None]):
        hits = intersect_shape(j, ray)
        crossings = 0
        last_t = 0.0
        last_index = -1
        for k in ti.static(range(MAX_LOCAL_HITS)):
            if k < hits.count:
                t = hits.t[k]
                if _key_after(hit_t, hit_shape, hit_index, t, j, k):
                    crossings += 1
                    if last_index < 0 or _key_after(t, j, k, last_t, j, last_index):
                        last_t = t
                        last_index = k

        if crossings % 2 == 1:
            if all_found == 0 or _key_after(last_t, j, last_index, all_t, all_shape, all_index):
                all_found = 1
                all_t = last_t
                all_shape = j
                all_index = last_index
            if j == hit_shape:
                hit_shape_inside = 1
            elif other_found == 0 or _key_after(last_t, j, last_index, other_t, other_shape, other_index):
                other_found = 1
                other_t = last_t
                other_shape = j
                other_index = last_index

    n1 = 1.0
    if all_found == 1:
        n1 = material_refractive_indices[shape_material_ids[all_shape]]

    n2 = material_refractive_indices[shape_material_ids[hit_shape]]
    if hit_shape_inside == 1:
        n2 = 1.0
        if other_found == 1:
            n2 = material_refractive_indices[shape_material_ids[other_shape]]

    return n1, n2


@ti.kernel
def _collect_intersections(origin: vec3, direction: vec3):
    for _ in range(1):
        ray = Ray(origin=origin, direction=direction)
        count = 0
        for j in range(num_shapes[None]):
            hits = intersect_shape(j, ray)
            for k in ti.static(range(MAX_LOCAL_HITS)):
                if k < hits.count:
                    _xs_t[count] = hits.t[k]
                    _xs_shape[count] = j
                    _xs_index[count] = k
                    count += 1
        _xs_count[None] = count


def intersect_world(origin: Sequence[float], direction: Sequence[float]) -> list[Intersection]:
    """Intersect a ray with every shape and return the sorted crossings.

    The crossings of each shape are concatenated in shape order and then
    stably sorted by t, so equal t values keep that order.

    Args:
        origin: Ray origin in world space.
        direction: Ray direction in world space (not normalized here).

    Returns:
        All intersections, negative t included, ascending by t.
    """
    _collect_intersections(vec3(*origin), vec3(*direction))
    count = int(_xs_count[None])
    if count == 0:
        return []
    ts = _xs_t.to_numpy()[:count]
    shapes = _xs_shape.to_numpy()[:count]
    indices = _xs_index.to_numpy()[:count]
    order = np.argsort(ts, kind="stable")
    return [Intersection(float(ts[i]), int(shapes[i]), int(indices[i])) for i in order]


def hit(intersections: Sequence[Intersection]) -> Intersection | None:
    """Return the visible intersection: the lowest non-negative t.

    Args:
        intersections: Intersections sorted ascending by t, as returned by
            intersect_world(). Unsorted input is sorted (stably) first.

    Returns:
        The hit, or None if every intersection is behind the ray origin.
    """
    ordered = sorted(intersections, key=lambda x: x.t)
    for intersection in ordered:
        if intersection.t >= 0.0:
            return intersection
    return None
