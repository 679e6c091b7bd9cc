"""Infinite xz plane primitive (y = 0 in object space)."""

import taichi as ti

from src.whitted.core.ray import EPSILON, Ray, vec3
from src.whitted.geometry.hits import LocalHits, empty_hits, push_hit


@ti.func
def intersect_plane(ray: Ray) -> LocalHits:
    """Intersect an object-space ray with the plane y = 0.

    A ray whose direction has no meaningful y component is parallel to
    the plane (or lies in it) and reports no intersection.
    """
    hits = empty_hits()
    if ti.abs(ray.direction.y) >= EPSILON:
        hits = push_hit(hits, -ray.origin.y / ray.direction.y)
    return hits


@ti.func
def plane_normal_at(point: vec3) -> vec3:
    """The plane's normal is +y everywhere."""
    return vec3(0.0, 1.0, 0.0)
