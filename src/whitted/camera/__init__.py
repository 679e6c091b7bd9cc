"""Camera module for primary ray generation.

Components:
    camera: Pinhole camera with a view transform

The camera is configured on the host and uploaded to Taichi fields with
setup_camera(); kernels then call ray_for_pixel(x, y) for every pixel.
"""

from .camera import Camera, get_camera_info, get_ray, ray_for_pixel, setup_camera

__all__ = [
    "Camera",
    "setup_camera",
    "ray_for_pixel",
    "get_ray",
    "get_camera_info",
]
