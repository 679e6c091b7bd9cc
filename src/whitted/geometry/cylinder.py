"""Unit-radius cylinder primitive around the object-space y axis.

The lateral surface is x^2 + z^2 = 1. It may be truncated to
minimum < y < maximum and, when closed, capped by disks at both ends.
The cap helpers are shared with the cone, whose caps have radius |y|.
"""

import taichi as ti

from src.whitted.core.ray import EPSILON, Ray, real, solve_quadratic, vec3
from src.whitted.geometry.hits import LocalHits, push_hit


@ti.func
def _within_cap(ray: Ray, t: real, radius: real) -> ti.i32:
    """Whether the ray at t lies inside a cap disk of the given radius."""
    x = ray.origin.x + t * ray.direction.x
    z = ray.origin.z + t * ray.direction.z
    return x * x + z * z <= radius * radius


@ti.func
def intersect_caps(
    ray: Ray,
    hits: LocalHits,
    minimum: real,
    maximum: real,
    radius_min: real,
    radius_max: real,
) -> LocalHits:
    """Append cap roots at y = minimum and y = maximum.

    A ray without a y component can never reach a cap plane.

    Args:
        ray: Ray in object space.
        hits: Roots found so far.
        minimum: Lower bound (y) of the shape.
        maximum: Upper bound (y) of the shape.
        radius_min: Radius of the lower cap disk.
        radius_max: Radius of the upper cap disk.

    Returns:
        hits with any cap roots appended, lower cap first.
    """
    result = hits
    if ti.abs(ray.direction.y) >= EPSILON:
        t = (minimum - ray.origin.y) / ray.direction.y
        if _within_cap(ray, t, radius_min):
            result = push_hit(result, t)
        t = (maximum - ray.origin.y) / ray.direction.y
        if _within_cap(ray, t, radius_max):
            result = push_hit(result, t)
    return result


@ti.func
def push_if_within_bounds(hits: LocalHits, ray: Ray, t: real, minimum: real, maximum: real) -> LocalHits:
    """Append t only if the hit point's y lies strictly between the bounds."""
    result = hits
    y = ray.origin.y + t * ray.direction.y
    if minimum < y and y < maximum:
        result = push_hit(result, t)
    return result


@ti.func
def intersect_cylinder(ray: Ray, hits: LocalHits, minimum: real, maximum: real, closed: ti.i32) -> LocalHits:
    """Intersect an object-space ray with the cylinder.

    A ray parallel to the y axis (a ~ 0) cannot cross the lateral surface
    but may still pass through both caps.

    Args:
        ray: Ray in object space.
        hits: Starting roots (normally empty).
        minimum: Lower y bound (may be -inf).
        maximum: Upper y bound (may be +inf).
        closed: 1 to test the end caps.

    Returns:
        Lateral roots in ascending order followed by cap roots.
    """
    result = hits
    a = ray.direction.x * ray.direction.x + ray.direction.z * ray.direction.z

    if a >= EPSILON:
        h = ray.origin.x * ray.direction.x + ray.origin.z * ray.direction.z
        c = ray.origin.x * ray.origin.x + ray.origin.z * ray.origin.z - 1.0
        count, t0, t1 = solve_quadratic(a, h, c)
        if count > 0:
            result = push_if_within_bounds(result, ray, t0, minimum, maximum)
            result = push_if_within_bounds(result, ray, t1, minimum, maximum)

    if closed == 1:
        result = intersect_caps(ray, result, minimum, maximum, 1.0, 1.0)
    return result


@ti.func
def cylinder_normal_at(point: vec3, minimum: real, maximum: real) -> vec3:
    """Object-space normal: +-y on the caps, radial on the lateral surface."""
    dist = point.x * point.x + point.z * point.z
    normal = vec3(point.x, 0.0, point.z)
    if dist < 1.0 and point.y >= maximum - EPSILON:
        normal = vec3(0.0, 1.0, 0.0)
    elif dist < 1.0 and point.y <= minimum + EPSILON:
        normal = vec3(0.0, -1.0, 0.0)
    return normal
