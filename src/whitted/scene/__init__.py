"""Scene module: shape and light tables, intersection and shading context.

Components:
    light: Point light table
    intersection: Shape table, ray-world intersection and n1/n2 lookup
    computations: Per-hit shading context and Schlick reflectance
    world: World container that owns the tables and (de)serializes scenes
    default_world: Canonical test world and the sphere-in-sphere demo

Scene data is organized for kernel access:
    - Structure-of-Arrays layout for shape data
    - Only inverse transforms are stored
    - Material and light ids index their own tables
"""

from .computations import Computations, prepare_computations, refraction_direction, schlick
from .intersection import (
    MAX_SHAPES,
    HitRecord,
    Intersection,
    add_shape,
    clear_shapes,
    get_shape_count,
    hit,
    intersect_shape,
    intersect_world,
    nearest_hit,
    normal_at,
    refractive_indices,
)
from .light import MAX_LIGHTS, PointLight, add_light, clear_lights, get_light_count

# Note: world and default_world are NOT imported here; they depend on the
# integrator, which itself imports this package. Use
#   from src.whitted.scene.world import World
#   from src.whitted.scene.default_world import create_default_world

__all__ = [
    # Lights
    "PointLight",
    "add_light",
    "clear_lights",
    "get_light_count",
    "MAX_LIGHTS",
    # Intersection
    "HitRecord",
    "Intersection",
    "add_shape",
    "clear_shapes",
    "get_shape_count",
    "intersect_shape",
    "normal_at",
    "nearest_hit",
    "refractive_indices",
    "intersect_world",
    "hit",
    "MAX_SHAPES",
    # Computations
    "Computations",
    "prepare_computations",
    "schlick",
    "refraction_direction",
]
