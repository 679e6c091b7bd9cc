"""Axis-aligned cube primitive spanning [-1, 1] on every axis.

Intersection uses the slab method: each pair of parallel faces bounds the
ray to an interval of t, and the ray hits the cube where the three
intervals overlap.
"""

import taichi as ti

from src.whitted.core.ray import EPSILON, Ray, real, vec3
from src.whitted.geometry.hits import LocalHits, empty_hits, push_hit

# Stand-in for division by a near-zero direction component
SLAB_INFINITY = 1e30


@ti.func
def _check_axis(origin: real, direction: real):
    """Return the (tmin, tmax) interval of one slab pair, ordered."""
    tmin_numerator = -1.0 - origin
    tmax_numerator = 1.0 - origin

    tmin = 0.0
    tmax = 0.0
    if ti.abs(direction) >= EPSILON:
        tmin = tmin_numerator / direction
        tmax = tmax_numerator / direction
    else:
        tmin = tmin_numerator * SLAB_INFINITY
        tmax = tmax_numerator * SLAB_INFINITY

    if tmin > tmax:
        temp = tmin
        tmin = tmax
        tmax = temp

    return tmin, tmax


@ti.func
def intersect_cube(ray: Ray) -> LocalHits:
    """Intersect an object-space ray with the cube.

    Returns:
        Entry and exit roots when the slab intervals overlap and the exit
        is not behind the ray origin, otherwise none. A ray starting inside
        the cube gets a negative entry root.
    """
    xtmin, xtmax = _check_axis(ray.origin.x, ray.direction.x)
    ytmin, ytmax = _check_axis(ray.origin.y, ray.direction.y)
    ztmin, ztmax = _check_axis(ray.origin.z, ray.direction.z)

    tmin = ti.max(xtmin, ytmin, ztmin)
    tmax = ti.min(xtmax, ytmax, ztmax)

    hits = empty_hits()
    if tmin <= tmax and tmax >= 0.0:
        hits = push_hit(hits, tmin)
        hits = push_hit(hits, tmax)
    return hits


@ti.func
def cube_normal_at(point: vec3) -> vec3:
    """Normal of the face owning the point's largest-magnitude component."""
    ax = ti.abs(point.x)
    ay = ti.abs(point.y)
    az = ti.abs(point.z)
    maxc = ti.max(ax, ay, az)

    normal = vec3(0.0, 0.0, point.z)
    if maxc == ax:
        normal = vec3(point.x, 0.0, 0.0)
    elif maxc == ay:
        normal = vec3(0.0, point.y, 0.0)
    return normal
