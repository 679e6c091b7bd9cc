"""Preview module for image output.

Components:
    export: Clamping, gamma correction and PNG/PPM export via Pillow

Example:
    >>> from src.whitted.preview import save_image_from_array
    >>> save_image_from_array(image, "output.png", gamma=2.2)
"""

from src.whitted.preview.export import (
    SUPPORTED_FORMATS,
    apply_gamma,
    compute_rmse,
    image_to_uint8,
    save_image_from_array,
    save_png,
)

__all__ = [
    "SUPPORTED_FORMATS",
    "apply_gamma",
    "image_to_uint8",
    "save_image_from_array",
    "save_png",
    "compute_rmse",
]
