"""Image export utilities for rendered images.

Rendered images are linear, unclamped RGB. For output they are clamped to
[0, 1], optionally gamma corrected and quantized to 8 bits.

Supported formats:
    - PNG (8-bit via Pillow)
    - PPM (binary P6 via Pillow)

Example:
    >>> from src.whitted.core.integrator import render
    >>> from src.whitted.preview.export import save_image_from_array
    >>>
    >>> image = render(camera, world)
    >>> save_image_from_array(image, "output.png")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from src.whitted.core.progressive import ProgressiveRenderer

# File extension -> Pillow format name
SUPPORTED_FORMATS = {
    ".png": "PNG",
    ".ppm": "PPM",
}


def apply_gamma(image: npt.NDArray[np.float32], gamma: float = 1.0) -> npt.NDArray[np.float32]:
    """Clamp an image to [0, 1] and apply gamma correction.

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma value; 1.0 leaves values linear.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    clamped = np.clip(np.asarray(image, dtype=np.float32), 0.0, 1.0)
    if gamma != 1.0:
        clamped = np.power(clamped, 1.0 / gamma)
    return clamped


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    gamma: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to uint8 for display/export.

    Each channel is clamped to [0, 1], gamma corrected and scaled to
    0..255 with rounding.

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma correction value (default 1.0, linear).

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    processed = apply_gamma(image, gamma)
    return np.round(processed * 255.0).astype(np.uint8)


def save_image_from_array(
    image: npt.NDArray[np.float32],
    filepath: str | Path,
    *,
    gamma: float = 1.0,
) -> None:
    """Save a NumPy image as PNG or PPM.

    The format is chosen from the file extension.

    Args:
        image: Linear image array of shape (H, W, 3).
        filepath: Output path ending in .png or .ppm.
        gamma: Gamma correction value (default 1.0, linear).

    Raises:
        ValueError: If the extension is not supported or the image is not
            of shape (H, W, 3).
    """
    path = Path(filepath)
    image_format = SUPPORTED_FORMATS.get(path.suffix.lower())
    if image_format is None:
        raise ValueError(
            f"Unsupported image format {path.suffix!r}; expected one of {sorted(SUPPORTED_FORMATS)}"
        )
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")

    pil_image = PILImage.fromarray(image_to_uint8(image, gamma=gamma))
    pil_image.save(path, format=image_format)


def save_png(
    renderer: ProgressiveRenderer,
    filepath: str | Path,
    *,
    gamma: float = 1.0,
) -> None:
    """Save a renderer's current canvas as a PNG file.

    Args:
        renderer: The ProgressiveRenderer whose image to save.
        filepath: Output file path (should end in .png).
        gamma: Gamma correction value (default 1.0, linear).
    """
    image = renderer.get_image_numpy(gamma=1.0)
    pil_image = PILImage.fromarray(image_to_uint8(image, gamma=gamma))
    pil_image.save(filepath, format="PNG")


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
