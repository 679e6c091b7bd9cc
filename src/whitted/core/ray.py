"""Ray data structure and vector utilities for Whitted ray tracing.

This module provides the Ray dataclass, the numeric types shared by every
kernel in the package, and the small vector helpers used by intersection
and shading code. Everything runs in double precision: scene units are
small and the shadow/refraction offsets rely on EPSILON being well above
the rounding error of a hit point.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.whitted.core.ray import Ray, ray_at, vec3
    >>> ray = Ray(origin=vec3(2.0, 3.0, 4.0), direction=vec3(1.0, 0.0, 0.0))
    >>> # ray_at(ray, 2.5) inside a kernel gives (4.5, 3.0, 4.0)
"""

import taichi as ti
import taichi.math as tm

# Scalar precision for all fields and structs
real = ti.f64

# Vector and matrix types in that precision
vec3 = ti.types.vector(3, real)
vec4 = ti.types.vector(4, real)
mat4 = ti.types.matrix(4, 4, real)

# =============================================================================
# Numerical Constants
# =============================================================================

# Offset for over/under points and the tolerance for "parallel" tests
EPSILON = 1e-5


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray.
        direction: The direction of the ray. Camera, reflected and refracted
            rays are unit length; rays transformed into object space are not.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: real) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def transform_point(m: mat4, p: vec3) -> vec3:
    """Apply a 4x4 affine matrix to a point (w = 1)."""
    r = m @ vec4(p.x, p.y, p.z, 1.0)
    return vec3(r[0], r[1], r[2])


@ti.func
def transform_vector(m: mat4, v: vec3) -> vec3:
    """Apply a 4x4 affine matrix to a direction (w = 0).

    Dropping w also makes this the correct way to carry a normal through
    an inverse-transpose, whose last row picks up the translation.
    """
    r = m @ vec4(v.x, v.y, v.z, 0.0)
    return vec3(r[0], r[1], r[2])


@ti.func
def transform_ray(m: mat4, ray: Ray) -> Ray:
    """Transform a ray by a 4x4 matrix without renormalizing its direction.

    The direction is left unnormalized so that t values found in object
    space are valid along the original world-space ray.
    """
    return Ray(origin=transform_point(m, ray.origin), direction=transform_vector(m, ray.direction))


@ti.func
def length_squared(v: vec3) -> real:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def solve_quadratic(a: real, h: real, c: real):
    """Solve a*t^2 + 2*h*t + c = 0 using the robust formula from Ray Tracing Gems.

    Using the half-b coefficient h and picking the sign of q from h avoids
    catastrophic cancellation when b^2 is close to 4ac.

    Args:
        a: Quadratic coefficient (must be non-zero).
        h: Half of the linear coefficient.
        c: Constant term.

    Returns:
        Tuple of (count, t0, t1). count is 0 when the discriminant is
        negative, otherwise 2 with t0 <= t1 (equal for a tangent ray).
    """
    discriminant = h * h - a * c
    # Round-off can push an exactly tangent ray just below zero
    if discriminant < 0.0 and discriminant > -1e-12 * (h * h + ti.abs(a * c)):
        discriminant = 0.0
    count = 0
    t0 = 0.0
    t1 = 0.0

    if discriminant >= 0.0:
        count = 2
        sqrt_d = ti.sqrt(discriminant)
        sign_h = ti.select(h < 0.0, -1.0, 1.0)
        q = -(h + sign_h * sqrt_d)

        if ti.abs(q) < 1e-12:
            # h and the discriminant are both zero
            t0 = (-h - sqrt_d) / a
            t1 = (-h + sqrt_d) / a
        else:
            t0 = q / a
            t1 = c / q

        if t0 > t1:
            temp = t0
            t0 = t1
            t1 = temp

    return count, t0, t1
