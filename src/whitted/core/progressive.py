"""Band-by-band rendering with progress reporting.

A Whitted image is deterministic, so there is nothing to accumulate;
"progressive" here means the canvas is filled a few rows at a time. This
gives long renders a way to report progress and to be abandoned early:

- render() calls a callback after every band. Returning False from the
  callback stops the render, leaving the remaining rows black.
- render_progressive() is a generator that yields after every band, for
  callers that prefer to drive the loop themselves.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.whitted.core.progressive import ProgressiveRenderer
    >>> from src.whitted.scene.default_world import create_sphere_in_sphere_scene
    >>>
    >>> world, camera = create_sphere_in_sphere_scene(256, 256)
    >>> renderer = ProgressiveRenderer(camera, world, rows_per_batch=32)
    >>> renderer.render(lambda done, total: print(f"{done}/{total} rows"))
    >>> renderer.save_image("sphere_in_sphere.png")
"""

import logging
from collections.abc import Callable, Generator
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from src.whitted.camera.camera import Camera, setup_camera
from src.whitted.core.integrator import (
    get_image_numpy,
    render_rows,
    setup_render_target,
    validate_depth,
)

if TYPE_CHECKING:
    from src.whitted.scene.world import World

logger = logging.getLogger(__name__)

# Callback receives (rows_completed, total_rows); returning False cancels
ProgressCallback = Callable[[int, int], bool | None]


class ProgressiveRenderer:
    """Render a camera's view of a world a band of rows at a time.

    The renderer owns the shared render target while it is in use: it
    sizes the canvas to the camera on construction and on reset().

    Attributes:
        camera: The camera being rendered.
        world: The scene being rendered.
        rows_per_batch: Number of rows rendered between progress reports.
        max_depth: Bounce cap for every pixel.
    """

    def __init__(
        self,
        camera: Camera,
        world: "World",
        rows_per_batch: int = 16,
        max_depth: int | None = None,
    ) -> None:
        """Initialize the renderer and its render target.

        Args:
            camera: The camera; its hsize x vsize sets the image size.
            world: The active World.
            rows_per_batch: Rows per band (at least 1).
            max_depth: Bounce cap; defaults to world.max_depth.

        Raises:
            ValueError: If rows_per_batch < 1, the depth is out of range or
                the image exceeds the maximum supported size.
            RuntimeError: If world is no longer the active World.
        """
        world.ensure_active()
        if rows_per_batch < 1:
            raise ValueError(f"rows_per_batch must be at least 1, got {rows_per_batch}")
        self.camera = camera
        self.world = world
        self.rows_per_batch = rows_per_batch
        self.max_depth = validate_depth(world.max_depth if max_depth is None else max_depth)
        self._rows_completed = 0
        setup_render_target(camera.hsize, camera.vsize)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.camera.hsize

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.camera.vsize

    @property
    def rows_completed(self) -> int:
        """Number of rows rendered since the last reset."""
        return self._rows_completed

    @property
    def is_complete(self) -> bool:
        """Whether every row has been rendered."""
        return self._rows_completed >= self.height

    def reset(self) -> None:
        """Clear the canvas and start over from the top row."""
        setup_render_target(self.width, self.height)
        self._rows_completed = 0

    def _render_next_band(self) -> None:
        self.world.ensure_active()
        row_start = self._rows_completed
        row_end = min(row_start + self.rows_per_batch, self.height)
        render_rows(row_start, row_end, self.max_depth)
        self._rows_completed = row_end

    def render(self, callback: ProgressCallback | None = None) -> bool:
        """Render the remaining rows, reporting progress after each band.

        Can be called again after a cancelled render to continue where it
        stopped.

        Args:
            callback: Optional function called after each band with
                (rows_completed, total_rows). Returning False cancels the
                render; any other return value continues it.

        Returns:
            True if the image is complete, False if it was cancelled.

        Example:
            >>> def progress(done, total):
            ...     print(f"Progress: {done}/{total} rows")
            >>> renderer.render(progress)
        """
        setup_camera(self.camera)
        while not self.is_complete:
            self._render_next_band()
            if callback is not None and callback(self._rows_completed, self.height) is False:
                logger.debug("Render cancelled after %d rows", self._rows_completed)
                return False
        return True

    def render_progressive(self) -> Generator[tuple[int, int], None, None]:
        """Render the remaining rows, yielding progress after each band.

        This is a generator-based alternative to render() with callbacks.
        Stopping iteration early leaves the remaining rows unrendered.

        Yields:
            Tuple of (rows_completed, total_rows).

        Example:
            >>> for done, total in renderer.render_progressive():
            ...     print(f"Progress: {done}/{total} rows")
        """
        setup_camera(self.camera)
        while not self.is_complete:
            self._render_next_band()
            yield (self._rows_completed, self.height)

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the rendered image as a NumPy array.

        Returns the canvas with values clamped to [0, 1] and optionally
        gamma corrected. The array shape is (height, width, 3).

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).
                Use 2.2 for sRGB display.
        """
        image = np.clip(get_image_numpy(), 0.0, 1.0)
        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)
        return image.astype(np.float32)

    def get_image_uint8(self, gamma: float = 1.0) -> npt.NDArray[np.uint8]:
        """Get the rendered image as an 8-bit NumPy array."""
        from src.whitted.preview.export import image_to_uint8

        return image_to_uint8(get_image_numpy(), gamma=gamma)

    def save_image(self, filepath: str, gamma: float = 1.0) -> None:
        """Save the rendered image to a file.

        Args:
            filepath: Output path; ".png" or ".ppm" picks the format.
            gamma: Gamma correction value. Default 1.0 (linear).
        """
        from src.whitted.preview.export import save_image_from_array

        save_image_from_array(get_image_numpy(), filepath, gamma=gamma)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"rows_completed={self.rows_completed})"
        )
