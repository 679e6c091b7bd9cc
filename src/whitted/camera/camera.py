"""Pinhole camera with a view transform.

The camera sits at the origin of its own space looking down -z at an
image plane one unit away. Its transform (usually built with
view_transform()) maps world space into camera space; the inverse is
used to carry each pixel's ray back out into the world.

The canvas size and field of view fix the extent of the image plane.
The wider of the two canvas dimensions spans the full field of view and
pixels are square.

Example:
    >>> import math
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.whitted.camera.camera import Camera, setup_camera
    >>> from src.whitted.core.transform import view_transform
    >>> camera = Camera(
    ...     hsize=200,
    ...     vsize=125,
    ...     field_of_view=math.pi / 2,
    ...     transform=view_transform((0, 1.5, -5), (0, 1, 0), (0, 1, 0)),
    ... )
    >>> camera.pixel_size
    0.01
    >>> setup_camera(camera)
    >>> # ray_for_pixel(x, y) is now available inside kernels
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import Ray, real, transform_point, vec3
from src.whitted.core.transform import Matrix4, as_matrix, inverse

logger = logging.getLogger(__name__)

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class Camera:
    """Configuration for a pinhole camera.

    Attributes:
        hsize: Canvas width in pixels.
        vsize: Canvas height in pixels.
        field_of_view: Angle spanned by the wider canvas dimension, in radians.
        transform: World-to-camera view matrix (None for identity).
        half_width: Half the image-plane width (derived).
        half_height: Half the image-plane height (derived).
        pixel_size: Side of one pixel on the image plane (derived).
    """

    hsize: int
    vsize: int
    field_of_view: float
    transform: Matrix4 | None = None
    half_width: float = field(init=False)
    half_height: float = field(init=False)
    pixel_size: float = field(init=False)

    def __post_init__(self) -> None:
        if self.hsize < 1 or self.vsize < 1:
            raise ValueError(f"Camera size must be at least 1x1, got {self.hsize}x{self.vsize}")
        if not 0.0 < self.field_of_view < math.pi:
            raise ValueError(f"field_of_view must be in (0, pi) radians, got {self.field_of_view}")
        self.transform = as_matrix(self.transform)
        self._inverse = inverse(self.transform)

        half_view = math.tan(self.field_of_view / 2.0)
        aspect = self.hsize / self.vsize
        if aspect >= 1.0:
            self.half_width = half_view
            self.half_height = half_view / aspect
        else:
            self.half_width = half_view * aspect
            self.half_height = half_view
        self.pixel_size = (self.half_width * 2.0) / self.hsize

    @property
    def inverse_transform(self) -> Matrix4:
        """Camera-to-world matrix."""
        return self._inverse

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "hsize": self.hsize,
            "vsize": self.vsize,
            "field_of_view": self.field_of_view,
            "transform": np.asarray(self.transform).tolist(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Camera":
        """Rebuild a camera from to_dict() output."""
        return cls(
            hsize=int(data["hsize"]),
            vsize=int(data["vsize"]),
            field_of_view=float(data["field_of_view"]),
            transform=np.array(data["transform"]) if data.get("transform") is not None else None,
        )


# =============================================================================
# Taichi Fields for Camera Parameters
# =============================================================================

_camera_inverse = ti.Matrix.field(4, 4, dtype=real, shape=())
_camera_half_width = ti.field(dtype=real, shape=())
_camera_half_height = ti.field(dtype=real, shape=())
_camera_pixel_size = ti.field(dtype=real, shape=())


def setup_camera(camera: Camera) -> None:
    """Upload a camera's parameters to the Taichi fields used by ray_for_pixel.

    Args:
        camera: The camera to use for subsequent rendering.
    """
    _camera_inverse[None] = camera.inverse_transform.tolist()
    _camera_half_width[None] = camera.half_width
    _camera_half_height[None] = camera.half_height
    _camera_pixel_size[None] = camera.pixel_size
    logger.debug(
        "Camera %dx%d, fov %.4f rad, pixel size %.6f",
        camera.hsize,
        camera.vsize,
        camera.field_of_view,
        camera.pixel_size,
    )


@ti.func
def ray_for_pixel(px: ti.i32, py: ti.i32) -> Ray:
    """Generate the world-space ray through the center of a pixel.

    Pixel (0, 0) is the top-left corner of the canvas. The camera looks
    toward -z, so +x is to the left on the image plane and pixel x grows
    toward the camera's right.

    Args:
        px: Pixel column.
        py: Pixel row.

    Returns:
        A ray from the camera position with unit direction.
    """
    pixel_size = _camera_pixel_size[None]
    xoffset = (ti.cast(px, real) + 0.5) * pixel_size
    yoffset = (ti.cast(py, real) + 0.5) * pixel_size
    world_x = _camera_half_width[None] - xoffset
    world_y = _camera_half_height[None] - yoffset

    inv = _camera_inverse[None]
    pixel = transform_point(inv, vec3(world_x, world_y, -1.0))
    origin = transform_point(inv, vec3(0.0, 0.0, 0.0))
    direction = tm.normalize(pixel - origin)
    return Ray(origin=origin, direction=direction)


# Host readback of a single camera ray
_ray_origin = ti.Vector.field(3, dtype=real, shape=())
_ray_direction = ti.Vector.field(3, dtype=real, shape=())


@ti.kernel
def _ray_for_pixel_kernel(px: ti.i32, py: ti.i32):
    ray = ray_for_pixel(px, py)
    _ray_origin[None] = ray.origin
    _ray_direction[None] = ray.direction


def get_ray(px: int, py: int) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Host-side ray_for_pixel using the uploaded camera.

    Returns:
        Tuple of (origin, direction) as 3-tuples.
    """
    _ray_for_pixel_kernel(px, py)
    o = _ray_origin[None]
    d = _ray_direction[None]
    origin = (float(o[0]), float(o[1]), float(o[2]))
    direction = (float(d[0]), float(d[1]), float(d[2]))
    return origin, direction


def get_camera_info() -> dict[str, float]:
    """Get the current camera parameters from the Taichi fields.

    Useful for debugging and verification.
    """
    return {
        "half_width": float(_camera_half_width[None]),
        "half_height": float(_camera_half_height[None]),
        "pixel_size": float(_camera_pixel_size[None]),
    }
