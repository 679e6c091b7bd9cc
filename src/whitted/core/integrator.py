"""Whitted-style shading integrator and render loop.

This module turns rays into colors. For the nearest hit of a ray it sums
Phong lighting over every point light with a shadow test per light, then
follows the mirror-reflected and refracted rays for a bounded number of
bounces.

Taichi functions are inlined and cannot recurse, so the reflection and
refraction tree is evaluated with an explicit stack. color_at(),
shade_hit(), reflected_color() and refracted_color() only seed a RayStack
and hand it to evaluate_stack(), so a kernel built on any of them holds a
single copy of the tracing loop. Every stack entry
is a ray, the product of the weights along its path (reflective,
transparency and the Schlick split) and its remaining bounce budget.
Since a pixel's color is a weighted sum of the local lighting at every
surface the tree reaches, popping entries in any order and accumulating
weight * local color gives the same result as the recursive definition.
Depth-first order keeps at most one pending sibling per level, so
MAX_DEPTH_LIMIT + 1 entries always suffice.

Key features:
    - Phong lighting with per-light hard shadows
    - Mirror reflection and Snell refraction with nested media
    - Schlick-weighted reflection for surfaces that are also transparent
    - Parallel per-pixel rendering into a preallocated canvas

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.whitted.camera.camera import Camera
    >>> from src.whitted.core.integrator import render
    >>> from src.whitted.scene.default_world import create_default_world
    >>> world = create_default_world()
    >>> image = render(Camera(11, 11, 1.5707963), world)
    >>> image.shape
    (11, 11, 3)
"""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.whitted.camera.camera import Camera, ray_for_pixel, setup_camera
from src.whitted.core.ray import Ray, real, vec3
from src.whitted.materials.material import (
    lighting,
    material_reflectives,
    material_transparencies,
)
from src.whitted.scene.computations import (
    Computations,
    prepare_computations,
    refraction_direction,
    schlick,
)
from src.whitted.scene.intersection import (
    nearest_hit,
    shape_inverses,
    shape_material_ids,
)
from src.whitted.scene.light import light_intensities, light_positions, num_lights

if TYPE_CHECKING:
    from src.whitted.scene.world import World

logger = logging.getLogger(__name__)

# =============================================================================
# Rendering Constants
# =============================================================================

# Bounce cap used when the caller does not give one
DEFAULT_MAX_DEPTH = 5

# Largest accepted bounce cap; sizes the secondary ray stack
MAX_DEPTH_LIMIT = 16

_STACK_SIZE = MAX_DEPTH_LIMIT + 1


def validate_depth(depth: int) -> int:
    """Check a bounce cap and return it as an int.

    Raises:
        ValueError: If depth is outside [0, MAX_DEPTH_LIMIT].
    """
    if not 0 <= int(depth) <= MAX_DEPTH_LIMIT:
        raise ValueError(f"Bounce depth must be in [0, {MAX_DEPTH_LIMIT}], got {depth}")
    return int(depth)


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Linear, unclamped RGB per pixel, indexed [x, y] with y = 0 at the top
_canvas = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the canvas for an image of the given size.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()


def clear_render_target() -> None:
    """Clear the canvas to black."""
    _canvas.fill(0.0)


def reset_render_target() -> None:
    """Forget the current render target so that it must be set up again."""
    _render_target_initialized[None] = 0
    _image_width[None] = 0
    _image_height[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions.

    Returns:
        Tuple of (width, height).
    """
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Shading
# =============================================================================


@ti.func
def is_shadowed(point: vec3, light_id: ti.i32) -> ti.i32:
    """Whether any shape blocks the segment from point to a light.

    Args:
        point: Point being shaded, already offset above the surface.
        light_id: Index of the light.

    Returns:
        1 if the nearest hit toward the light is closer than the light.
    """
    to_light = light_positions[light_id] - point
    distance = tm.length(to_light)
    record = nearest_hit(Ray(origin=point, direction=to_light / distance))
    shadowed = 0
    if record.hit == 1 and record.t < distance:
        shadowed = 1
    return shadowed


@ti.func
def local_color(comps: Computations) -> vec3:
    """Phong lighting at a hit summed over all lights, with shadows."""
    color = vec3(0.0, 0.0, 0.0)
    material_id = shape_material_ids[comps.shape_id]
    object_inverse = shape_inverses[comps.shape_id]
    for i in range(num_lights[None]):
        in_shadow = is_shadowed(comps.over_point, i)
        color += lighting(
            material_id,
            object_inverse,
            light_positions[i],
            light_intensities[i],
            comps.over_point,
            comps.eyev,
            comps.normalv,
            in_shadow,
        )
    return color


@ti.func
def secondary_weights(comps: Computations):
    """Weights of the reflected and refracted colors at a hit.

    Surfaces that are both reflective and transparent split light between
    the two by Schlick's approximation of the Fresnel reflectance.

    Returns:
        Tuple of (reflected_weight, refracted_weight).
    """
    material_id = shape_material_ids[comps.shape_id]
    reflective = material_reflectives[material_id]
    transparency = material_transparencies[material_id]
    reflected_weight = reflective
    refracted_weight = transparency
    if reflective > 0.0 and transparency > 0.0:
        reflectance = schlick(comps)
        reflected_weight = reflective * reflectance
        refracted_weight = transparency * (1.0 - reflectance)
    return reflected_weight, refracted_weight


# =============================================================================
# Secondary ray stack
# =============================================================================

_stack_real = ti.types.vector(_STACK_SIZE, real)
_stack_int = ti.types.vector(_STACK_SIZE, ti.i32)


@ti.dataclass
class RayStack:
    """Pending rays of a reflection/refraction tree.

    Attributes:
        origin_x, origin_y, origin_z: Ray origins, one column per axis.
        direction_x, direction_y, direction_z: Ray directions.
        weights: Product of the weights along each ray's path.
        depths: Bounce budget left for each ray.
        top: Number of pending rays.
    """

    origin_x: _stack_real
    origin_y: _stack_real
    origin_z: _stack_real
    direction_x: _stack_real
    direction_y: _stack_real
    direction_z: _stack_real
    weights: _stack_real
    depths: _stack_int
    top: ti.i32


@ti.func
def empty_stack() -> RayStack:
    """Return a RayStack with no pending rays."""
    zeros = ti.Vector.zero(real, _STACK_SIZE)
    return RayStack(
        origin_x=zeros,
        origin_y=zeros,
        origin_z=zeros,
        direction_x=zeros,
        direction_y=zeros,
        direction_z=zeros,
        weights=zeros,
        depths=ti.Vector.zero(ti.i32, _STACK_SIZE),
        top=0,
    )


@ti.func
def push_ray(stack: RayStack, origin: vec3, direction: vec3, weight: real, depth: ti.i32) -> RayStack:
    """Push a ray, dropping it if the stack is full."""
    result = stack
    top = result.top
    if top < _STACK_SIZE:
        result.origin_x[top] = origin.x
        result.origin_y[top] = origin.y
        result.origin_z[top] = origin.z
        result.direction_x[top] = direction.x
        result.direction_y[top] = direction.y
        result.direction_z[top] = direction.z
        result.weights[top] = weight
        result.depths[top] = depth
        result.top = top + 1
    return result


@ti.func
def push_secondary(
    stack: RayStack,
    comps: Computations,
    reflected_weight: real,
    refracted_weight: real,
    weight: real,
    depth: ti.i32,
) -> RayStack:
    """Push the reflected and refracted rays leaving a hit.

    A zero weight skips that ray. The refracted ray is also skipped under
    total internal reflection.

    Args:
        stack: The stack to push onto.
        comps: Shading context of the hit.
        reflected_weight: Weight of the mirror ray relative to the hit.
        refracted_weight: Weight of the transmitted ray relative to the hit.
        weight: Path weight of the hit itself.
        depth: Bounce budget given to the new rays.
    """
    result = stack
    if reflected_weight > 0.0:
        result = push_ray(result, comps.over_point, comps.reflectv, weight * reflected_weight, depth)
    if refracted_weight > 0.0:
        ok, direction = refraction_direction(comps)
        if ok == 1:
            result = push_ray(result, comps.under_point, direction, weight * refracted_weight, depth)
    return result


@ti.func
def evaluate_stack(stack: RayStack) -> vec3:
    """Trace every pending ray and its descendants.

    This is the only tracing loop; color_at() and the per-hit shading
    functions seed a stack and hand it here.

    Returns:
        Sum over all surfaces reached of path weight times local color.
    """
    color = vec3(0.0, 0.0, 0.0)
    pending = stack

    while pending.top > 0:
        top = pending.top - 1
        pending.top = top
        current = Ray(
            origin=vec3(pending.origin_x[top], pending.origin_y[top], pending.origin_z[top]),
            direction=vec3(pending.direction_x[top], pending.direction_y[top], pending.direction_z[top]),
        )
        weight = pending.weights[top]
        depth = pending.depths[top]

        record = nearest_hit(current)
        if record.hit == 1:
            comps = prepare_computations(current, record.t, record.shape_id, record.index)
            color += weight * local_color(comps)
            if depth > 0:
                reflected_weight, refracted_weight = secondary_weights(comps)
                pending = push_secondary(pending, comps, reflected_weight, refracted_weight, weight, depth - 1)

    return color


# =============================================================================
# Shading entry points
# =============================================================================


@ti.func
def color_at(ray: Ray, remaining: ti.i32) -> vec3:
    """Color seen along a ray, following up to `remaining` bounces.

    Rays that escape the scene contribute black. A bounce budget of 0
    shades the nearest hit locally and stops.

    Args:
        ray: World-space ray.
        remaining: Bounce budget, clamped to MAX_DEPTH_LIMIT.

    Returns:
        Unclamped linear RGB.
    """
    stack = push_ray(empty_stack(), ray.origin, ray.direction, 1.0, ti.min(remaining, MAX_DEPTH_LIMIT))
    return evaluate_stack(stack)


@ti.func
def reflected_color(comps: Computations, remaining: ti.i32) -> vec3:
    """Color arriving along the mirror direction, scaled by reflective.

    Black when the material is not reflective or no bounces remain.
    """
    reflective = material_reflectives[shape_material_ids[comps.shape_id]]
    stack = empty_stack()
    if remaining > 0:
        stack = push_secondary(stack, comps, reflective, 0.0, 1.0, ti.min(remaining, MAX_DEPTH_LIMIT) - 1)
    return evaluate_stack(stack)


@ti.func
def refracted_color(comps: Computations, remaining: ti.i32) -> vec3:
    """Color arriving through the surface, scaled by transparency.

    Black when the material is opaque, no bounces remain, or the ray is
    totally internally reflected.
    """
    transparency = material_transparencies[shape_material_ids[comps.shape_id]]
    stack = empty_stack()
    if remaining > 0:
        stack = push_secondary(stack, comps, 0.0, transparency, 1.0, ti.min(remaining, MAX_DEPTH_LIMIT) - 1)
    return evaluate_stack(stack)


@ti.func
def shade_hit(comps: Computations, remaining: ti.i32) -> vec3:
    """Full color at a hit: local lighting plus reflected and refracted light.

    When the material is both reflective and transparent the two secondary
    colors are weighted by the Schlick reflectance.
    """
    surface = local_color(comps)
    stack = empty_stack()
    if remaining > 0:
        reflected_weight, refracted_weight = secondary_weights(comps)
        stack = push_secondary(
            stack, comps, reflected_weight, refracted_weight, 1.0, ti.min(remaining, MAX_DEPTH_LIMIT) - 1
        )
    return surface + evaluate_stack(stack)


# =============================================================================
# Kernels
# =============================================================================


@ti.kernel
def _render_rows(width: ti.i32, row_start: ti.i32, row_end: ti.i32, max_depth: ti.i32):
    """Render rows [row_start, row_end) of the canvas.

    Args:
        width: Image width in pixels.
        row_start: First row to render (0 = top).
        row_end: One past the last row to render.
        max_depth: Bounce cap for every pixel.
    """
    for x, y in ti.ndrange(width, (row_start, row_end)):
        ray = ray_for_pixel(x, y)
        _canvas[x, y] = ti.cast(color_at(ray, max_depth), ti.f32)


@ti.kernel
def _color_at_ray(origin: vec3, direction: vec3, remaining: ti.i32) -> vec3:
    color = vec3(0.0, 0.0, 0.0)
    for _ in range(1):
        color = color_at(Ray(origin=origin, direction=direction), remaining)
    return color


@ti.kernel
def _render_single_pixel(x: ti.i32, y: ti.i32, max_depth: ti.i32) -> vec3:
    color = vec3(0.0, 0.0, 0.0)
    for _ in range(1):
        color = color_at(ray_for_pixel(x, y), max_depth)
    return color


@ti.kernel
def _shadow_test(point: vec3, light_id: ti.i32) -> ti.i32:
    shadowed = 0
    for _ in range(1):
        shadowed = is_shadowed(point, light_id)
    return shadowed


# =============================================================================
# Public Rendering API
# =============================================================================


def trace(origin: Sequence[float], direction: Sequence[float], remaining: int = DEFAULT_MAX_DEPTH) -> tuple[float, float, float]:
    """Evaluate color_at for one ray against the current scene.

    Args:
        origin: Ray origin in world space.
        direction: Ray direction in world space.
        remaining: Bounce budget.

    Returns:
        Tuple of (R, G, B).

    Raises:
        ValueError: If remaining is outside [0, MAX_DEPTH_LIMIT].
    """
    color = _color_at_ray(vec3(*origin), vec3(*direction), validate_depth(remaining))
    return (float(color[0]), float(color[1]), float(color[2]))


def point_is_shadowed(point: Sequence[float], light_id: int = 0) -> bool:
    """Host-side shadow test of a world point against one light."""
    return bool(_shadow_test(vec3(*point), light_id))


def render_rows(row_start: int, row_end: int, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
    """Render a band of rows of the current render target.

    The camera must already be uploaded with setup_camera().

    Raises:
        RuntimeError: If the render target has not been set up.
        ValueError: If max_depth is out of range.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    row_start = max(0, row_start)
    row_end = min(height, row_end)
    if row_start >= row_end:
        return
    _render_rows(width, row_start, row_end, validate_depth(max_depth))


def render(camera: Camera, world: "World", max_depth: int | None = None) -> npt.NDArray[np.float32]:
    """Render every pixel of the camera's image of the world.

    Args:
        camera: The camera; its hsize x vsize sets the image size.
        world: The scene. It must be the active World (the most recently
            constructed one), since scene tables are shared.
        max_depth: Bounce cap; defaults to world.max_depth.

    Returns:
        Unclamped linear RGB of shape (vsize, hsize, 3); pixel (x, y) is
        image[y, x].

    Raises:
        RuntimeError: If a newer World has replaced this one.
    """
    world.ensure_active()
    depth = world.max_depth if max_depth is None else max_depth
    setup_camera(camera)
    setup_render_target(camera.hsize, camera.vsize)
    logger.debug("Rendering %dx%d with depth %d", camera.hsize, camera.vsize, depth)
    render_rows(0, camera.vsize, depth)
    return get_image_numpy()


def render_pixel(camera: Camera, world: "World", x: int, y: int, max_depth: int | None = None) -> tuple[float, float, float]:
    """Render a single pixel without touching the canvas."""
    world.ensure_active()
    depth = world.max_depth if max_depth is None else max_depth
    setup_camera(camera)
    color = _render_single_pixel(x, y, validate_depth(depth))
    return (float(color[0]), float(color[1]), float(color[2]))


def get_image_numpy() -> npt.NDArray[np.float32]:
    """Get the canvas as a NumPy array of shape (height, width, 3).

    Values are linear and unclamped; row 0 is the top of the image.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    full_image = _canvas.to_numpy()
    image = full_image[:width, :height, :]
    return np.ascontiguousarray(np.transpose(image, (1, 0, 2))).astype(np.float32)
