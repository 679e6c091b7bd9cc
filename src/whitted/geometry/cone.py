"""Double-napped cone primitive x^2 + z^2 = y^2 around the y axis.

Like the cylinder, the cone can be truncated to minimum < y < maximum and
closed with caps; a cap's radius equals |y| at that bound.
"""

import taichi as ti

from src.whitted.core.ray import EPSILON, Ray, real, solve_quadratic, vec3
from src.whitted.geometry.cylinder import intersect_caps, push_if_within_bounds
from src.whitted.geometry.hits import LocalHits


@ti.func
def intersect_cone(ray: Ray, hits: LocalHits, minimum: real, maximum: real, closed: ti.i32) -> LocalHits:
    """Intersect an object-space ray with the cone.

    With half-b coefficients
        a = dx^2 - dy^2 + dz^2
        h = ox*dx - oy*dy + oz*dz
        c = ox^2 - oy^2 + oz^2
    a ~ 0 means the ray is parallel to one nappe. It then crosses the other
    nappe once at t = -c / (2h), or not at all when h ~ 0 too.

    Returns:
        Lateral roots followed by cap roots (caps only when closed).
    """
    o = ray.origin
    d = ray.direction
    a = d.x * d.x - d.y * d.y + d.z * d.z
    h = o.x * d.x - o.y * d.y + o.z * d.z
    c = o.x * o.x - o.y * o.y + o.z * o.z

    result = hits
    if ti.abs(a) < EPSILON:
        if ti.abs(h) >= EPSILON:
            result = push_if_within_bounds(result, ray, -c / (2.0 * h), minimum, maximum)
    else:
        count, t0, t1 = solve_quadratic(a, h, c)
        if count > 0:
            result = push_if_within_bounds(result, ray, t0, minimum, maximum)
            result = push_if_within_bounds(result, ray, t1, minimum, maximum)

    if closed == 1:
        result = intersect_caps(ray, result, minimum, maximum, ti.abs(minimum), ti.abs(maximum))
    return result


@ti.func
def cone_normal_at(point: vec3, minimum: real, maximum: real) -> vec3:
    """Object-space normal of the cone.

    The lateral normal points away from the axis and tilts along y; at the
    apex it degenerates to the zero vector.
    """
    dist = point.x * point.x + point.z * point.z
    y = ti.sqrt(dist)
    if point.y > 0.0:
        y = -y
    normal = vec3(point.x, y, point.z)

    if dist < maximum * maximum and point.y >= maximum - EPSILON:
        normal = vec3(0.0, 1.0, 0.0)
    elif dist < minimum * minimum and point.y <= minimum + EPSILON:
        normal = vec3(0.0, -1.0, 0.0)
    return normal
