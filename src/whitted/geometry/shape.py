"""Shape kinds and the local intersection/normal dispatch table.

Shapes are a closed set of kinds rather than a class hierarchy: the
scene stores an integer kind per shape and these two functions branch on
it. Adding a primitive means adding a ShapeKind member and one branch in
each dispatcher.
"""

from enum import IntEnum

import taichi as ti

from src.whitted.core.ray import Ray, real, vec3
from src.whitted.geometry.cone import cone_normal_at, intersect_cone
from src.whitted.geometry.cube import cube_normal_at, intersect_cube
from src.whitted.geometry.cylinder import cylinder_normal_at, intersect_cylinder
from src.whitted.geometry.hits import LocalHits, empty_hits
from src.whitted.geometry.plane import intersect_plane, plane_normal_at
from src.whitted.geometry.sphere import intersect_sphere, sphere_normal_at


class ShapeKind(IntEnum):
    """Primitive kinds understood by the intersection dispatch."""

    SPHERE = 0
    PLANE = 1
    CUBE = 2
    CYLINDER = 3
    CONE = 4


@ti.func
def local_intersect(kind: ti.i32, ray: Ray, minimum: real, maximum: real, closed: ti.i32) -> LocalHits:
    """Intersect an object-space ray with a primitive of the given kind.

    Args:
        kind: A ShapeKind value.
        ray: Ray already transformed into the shape's object space.
        minimum: Lower y bound (cylinder and cone only).
        maximum: Upper y bound (cylinder and cone only).
        closed: Whether the cylinder or cone has end caps.

    Returns:
        The primitive's roots. Unknown kinds report none.
    """
    hits = empty_hits()
    if kind == int(ShapeKind.SPHERE):
        hits = intersect_sphere(ray)
    elif kind == int(ShapeKind.PLANE):
        hits = intersect_plane(ray)
    elif kind == int(ShapeKind.CUBE):
        hits = intersect_cube(ray)
    elif kind == int(ShapeKind.CYLINDER):
        hits = intersect_cylinder(ray, hits, minimum, maximum, closed)
    elif kind == int(ShapeKind.CONE):
        hits = intersect_cone(ray, hits, minimum, maximum, closed)
    return hits


@ti.func
def local_normal_at(kind: ti.i32, point: vec3, minimum: real, maximum: real) -> vec3:
    """Object-space (unnormalized) surface normal for a primitive kind."""
    normal = vec3(0.0, 0.0, 0.0)
    if kind == int(ShapeKind.SPHERE):
        normal = sphere_normal_at(point)
    elif kind == int(ShapeKind.PLANE):
        normal = plane_normal_at(point)
    elif kind == int(ShapeKind.CUBE):
        normal = cube_normal_at(point)
    elif kind == int(ShapeKind.CYLINDER):
        normal = cylinder_normal_at(point, minimum, maximum)
    elif kind == int(ShapeKind.CONE):
        normal = cone_normal_at(point, minimum, maximum)
    return normal
