"""Per-hit shading context.

Once the nearest hit of a ray is known, everything shading needs about
that point is computed once and passed around in a Computations struct:
the point itself, the eye and normal vectors (with the normal flipped to
face the eye when the ray starts inside the shape), the points nudged
just above and below the surface, the mirror direction, and the
refractive indices on either side of the boundary.
"""

import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import EPSILON, Ray, ray_at, real, reflect, vec3
from src.whitted.scene.intersection import normal_at, refractive_indices


@ti.dataclass
class Computations:
    """Shading context of one ray-surface hit.

    Attributes:
        t: Ray parameter of the hit.
        shape_id: Shape that was hit.
        point: Hit point in world space.
        eyev: Unit vector toward the ray origin (negated ray direction).
        normalv: Unit normal, flipped to face eyev.
        inside: 1 if the normal was flipped (the ray started inside).
        over_point: point moved EPSILON along normalv; origin of shadow
            and reflection rays.
        under_point: point moved EPSILON against normalv; origin of
            refraction rays.
        reflectv: Ray direction mirrored about normalv.
        n1: Refractive index of the medium being exited.
        n2: Refractive index of the medium being entered.
    """

    t: real
    shape_id: ti.i32
    point: vec3
    eyev: vec3
    normalv: vec3
    inside: ti.i32
    over_point: vec3
    under_point: vec3
    reflectv: vec3
    n1: real
    n2: real


@ti.func
def prepare_computations(ray: Ray, t: real, shape_id: ti.i32, index: ti.i32) -> Computations:
    """Build the shading context for a hit.

    Args:
        ray: The world-space ray that hit the shape.
        t: Ray parameter of the hit.
        shape_id: Shape that was hit.
        index: Local root index of the hit within the shape's roots.

    Returns:
        The Computations for this hit.
    """
    point = ray_at(ray, t)
    eyev = -ray.direction
    normalv = normal_at(shape_id, point)
    inside = 0
    if tm.dot(normalv, eyev) < 0.0:
        inside = 1
        normalv = -normalv

    n1, n2 = refractive_indices(ray, t, shape_id, index)

    return Computations(
        t=t,
        shape_id=shape_id,
        point=point,
        eyev=eyev,
        normalv=normalv,
        inside=inside,
        over_point=point + normalv * EPSILON,
        under_point=point - normalv * EPSILON,
        reflectv=reflect(ray.direction, normalv),
        n1=n1,
        n2=n2,
    )


@ti.func
def schlick(comps: Computations) -> real:
    """Schlick's approximation of the Fresnel reflectance at a hit.

    Returns:
        The fraction of light reflected, in [0, 1]. Total internal
        reflection gives 1.
    """
    cos = tm.dot(comps.eyev, comps.normalv)
    total_internal = 0
    if comps.n1 > comps.n2:
        n = comps.n1 / comps.n2
        sin2_t = n * n * (1.0 - cos * cos)
        if sin2_t > 1.0:
            total_internal = 1
        else:
            cos = ti.sqrt(1.0 - sin2_t)

    reflectance = 1.0
    if total_internal == 0:
        r0 = (comps.n1 - comps.n2) / (comps.n1 + comps.n2)
        r0 = r0 * r0
        reflectance = r0 + (1.0 - r0) * ti.pow(1.0 - cos, 5)
    return reflectance


@ti.func
def refraction_direction(comps: Computations):
    """Direction of the refracted ray by Snell's law.

    Returns:
        Tuple of (ok, direction). ok is 0 under total internal reflection,
        in which case direction is the zero vector.
    """
    n_ratio = comps.n1 / comps.n2
    cos_i = tm.dot(comps.eyev, comps.normalv)
    sin2_t = n_ratio * n_ratio * (1.0 - cos_i * cos_i)

    ok = 0
    direction = vec3(0.0, 0.0, 0.0)
    if sin2_t <= 1.0:
        ok = 1
        cos_t = ti.sqrt(1.0 - sin2_t)
        direction = comps.normalv * (n_ratio * cos_i - cos_t) - comps.eyev * n_ratio
    return ok, direction
