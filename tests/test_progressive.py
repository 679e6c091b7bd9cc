"""Tests for the band-by-band renderer.

This module tests the ProgressiveRenderer class including:
- Initialization and validation
- Progress callbacks, cancellation and resuming
- The generator interface
- Reset functionality
- Image output

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run.
"""

import math

import numpy as np
import pytest


def small_scene(width=12, height=10):
    """The default world seen through a view transform."""
    from src.whitted.camera.camera import Camera
    from src.whitted.core.transform import view_transform
    from src.whitted.scene.default_world import create_default_world

    world = create_default_world()
    camera = Camera(width, height, math.pi / 2, view_transform((0, 0, -5), (0, 0, 0), (0, 1, 0)))
    return world, camera


class TestProgressiveRendererInit:
    """Test ProgressiveRenderer initialization."""

    def test_init_creates_render_target(self):
        """Test that initialization sizes the render target to the camera."""
        from src.whitted.core.integrator import get_image_dimensions
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene(16, 9)
        renderer = ProgressiveRenderer(camera, world)

        assert renderer.width == 16
        assert renderer.height == 9
        assert renderer.rows_completed == 0
        assert not renderer.is_complete
        assert get_image_dimensions() == (16, 9)

    def test_init_rejects_bad_batch_size(self):
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene()
        with pytest.raises(ValueError, match="rows_per_batch"):
            ProgressiveRenderer(camera, world, rows_per_batch=0)

    def test_init_rejects_oversized_dimensions(self):
        """Test that initialization rejects dimensions exceeding max size."""
        from src.whitted.camera.camera import Camera
        from src.whitted.core.progressive import ProgressiveRenderer
        from src.whitted.scene.world import World

        with pytest.raises(ValueError, match="exceed maximum"):
            ProgressiveRenderer(Camera(4096, 100, 1.0), World())

    def test_init_uses_world_depth(self):
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene()
        world.max_depth = 2
        assert ProgressiveRenderer(camera, world).max_depth == 2
        assert ProgressiveRenderer(camera, world, max_depth=7).max_depth == 7


class TestProgressiveRendererRender:
    """Test render functionality."""

    def test_matches_single_pass_render(self):
        """Rendering in bands gives the same image as render()."""
        from src.whitted.core.integrator import render
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene()
        expected = render(camera, world)

        renderer = ProgressiveRenderer(camera, world, rows_per_batch=3)
        assert renderer.render() is True
        assert renderer.is_complete
        assert np.allclose(renderer.get_image_numpy(), np.clip(expected, 0.0, 1.0))

    def test_callback_reports_progress(self):
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene(12, 10)
        renderer = ProgressiveRenderer(camera, world, rows_per_batch=4)
        progress = []
        renderer.render(lambda done, total: progress.append((done, total)))
        assert progress == [(4, 10), (8, 10), (10, 10)]

    def test_callback_can_cancel(self):
        """Returning False stops the render; the remaining rows stay black."""
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene(12, 10)
        renderer = ProgressiveRenderer(camera, world, rows_per_batch=4)
        assert renderer.render(lambda done, total: False) is False
        assert renderer.rows_completed == 4
        assert np.allclose(renderer.get_image_numpy()[4:], 0.0)

    def test_resume_after_cancel(self):
        from src.whitted.core.integrator import render
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene(12, 10)
        expected = np.clip(render(camera, world), 0.0, 1.0)

        renderer = ProgressiveRenderer(camera, world, rows_per_batch=4)
        renderer.render(lambda done, total: done < 8)
        assert renderer.rows_completed == 8
        assert renderer.render() is True
        assert np.allclose(renderer.get_image_numpy(), expected)

    def test_generator(self):
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene(12, 10)
        renderer = ProgressiveRenderer(camera, world, rows_per_batch=5)
        assert list(renderer.render_progressive()) == [(5, 10), (10, 10)]
        assert renderer.is_complete

    def test_reset(self):
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene()
        renderer = ProgressiveRenderer(camera, world)
        renderer.render()
        assert renderer.get_image_numpy().max() > 0.0

        renderer.reset()
        assert renderer.rows_completed == 0
        assert np.allclose(renderer.get_image_numpy(), 0.0)

    def test_gamma_brightens_midtones(self):
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene()
        renderer = ProgressiveRenderer(camera, world)
        renderer.render()
        linear = renderer.get_image_numpy()
        corrected = renderer.get_image_numpy(gamma=2.2)
        mask = (linear > 0.0) & (linear < 1.0)
        assert np.all(corrected[mask] >= linear[mask])

    def test_uint8_output(self):
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene(12, 10)
        renderer = ProgressiveRenderer(camera, world)
        renderer.render()
        image = renderer.get_image_uint8()
        assert image.dtype == np.uint8
        assert image.shape == (10, 12, 3)

    def test_save_image(self, tmp_path):
        from PIL import Image as PILImage

        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene(12, 10)
        renderer = ProgressiveRenderer(camera, world)
        renderer.render()
        filepath = tmp_path / "render.png"
        renderer.save_image(str(filepath))

        img = PILImage.open(filepath)
        assert img.size == (12, 10)
        assert img.mode == "RGB"

    def test_repr(self):
        from src.whitted.core.progressive import ProgressiveRenderer

        world, camera = small_scene(12, 10)
        renderer = ProgressiveRenderer(camera, world)
        assert repr(renderer) == "ProgressiveRenderer(width=12, height=10, rows_completed=0)"
