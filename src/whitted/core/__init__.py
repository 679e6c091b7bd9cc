"""Core rendering module.

Components:
    ray: Ray struct, point/vector transforms, reflection and the robust
        quadratic solver used by the curved primitives
    transform: NumPy 4x4 transform constructors and checked inversion
    integrator: Whitted shading (lighting, shadows, reflection,
        refraction) and the render loop
    progressive: Band-by-band renderer with progress callbacks

All per-pixel work runs in Taichi kernels; transforms are built on the
host with NumPy.
"""

from .ray import EPSILON, Ray, mat4, ray_at, real, reflect, vec3, vec4
from .transform import (
    Matrix4,
    chain,
    identity,
    inverse,
    rotation_x,
    rotation_y,
    rotation_z,
    scaling,
    shearing,
    translation,
    view_transform,
)

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from src.whitted.core.integrator or src.whitted.core.progressive when needed.

__all__ = [
    "EPSILON",
    "Ray",
    "ray_at",
    "reflect",
    "real",
    "vec3",
    "vec4",
    "mat4",
    "Matrix4",
    "identity",
    "translation",
    "scaling",
    "rotation_x",
    "rotation_y",
    "rotation_z",
    "shearing",
    "view_transform",
    "chain",
    "inverse",
]
