"""Unit sphere primitive.

The sphere is centered at the object-space origin with radius 1; position
and size come from the shape's transform. The intersection uses the
robust quadratic solver so that grazing rays near the silhouette do not
lose a root to cancellation.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.whitted.geometry.sphere import intersect_sphere
    >>> # Inside a kernel, a ray from (0, 0, -5) along +z gives roots 4 and 6
"""

import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import Ray, solve_quadratic, vec3
from src.whitted.geometry.hits import LocalHits, empty_hits, push_hit


@ti.func
def intersect_sphere(ray: Ray) -> LocalHits:
    """Intersect an object-space ray with the unit sphere.

    Substituting the ray into x^2 + y^2 + z^2 = 1 gives
        a*t^2 + 2*h*t + c = 0
    with a = d.d, h = d.o and c = o.o - 1.

    Args:
        ray: Ray in object space. The direction need not be unit length.

    Returns:
        Two roots in ascending order (equal for a tangent ray), or none.
    """
    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(ray.direction, ray.origin)
    c = tm.dot(ray.origin, ray.origin) - 1.0

    hits = empty_hits()
    count, t0, t1 = solve_quadratic(a, h, c)
    if count > 0:
        hits = push_hit(hits, t0)
        hits = push_hit(hits, t1)
    return hits


@ti.func
def sphere_normal_at(point: vec3) -> vec3:
    """Object-space normal of the unit sphere: the point itself."""
    return point
