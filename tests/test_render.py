"""Tests for rendering whole images.

Tests cover:
- Rendering the default world through a view transform
- Single-pixel rendering agreeing with full renders
- Empty scenes and render target validation
"""

import math

import numpy as np
import pytest


def default_view(hsize=11, vsize=11):
    from src.whitted.camera.camera import Camera
    from src.whitted.core.transform import view_transform

    return Camera(hsize, vsize, math.pi / 2, view_transform((0, 0, -5), (0, 0, 0), (0, 1, 0)))


class TestRender:
    """Tests for render()."""

    def test_default_world_center_pixel(self):
        from src.whitted.core.integrator import render
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        image = render(default_view(), world)

        assert image.shape == (11, 11, 3)
        assert image.dtype == np.float32
        assert tuple(image[5, 5]) == pytest.approx((0.38066, 0.47583, 0.2855), abs=1e-4)

    def test_corners_miss(self):
        from src.whitted.core.integrator import render
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        image = render(default_view(), world)
        for y, x in [(0, 0), (0, 10), (10, 0), (10, 10)]:
            assert np.allclose(image[y, x], 0.0)

    def test_non_square_image_layout(self):
        from src.whitted.core.integrator import get_image_dimensions, render
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        image = render(default_view(15, 7), world)
        assert image.shape == (7, 15, 3)
        assert get_image_dimensions() == (15, 7)
        assert tuple(image[3, 7]) == pytest.approx((0.38066, 0.47583, 0.2855), abs=1e-4)

    def test_render_pixel_matches_image(self):
        from src.whitted.core.integrator import render, render_pixel
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        camera = default_view()
        image = render(camera, world)
        for x, y in [(5, 5), (3, 6), (7, 2)]:
            assert render_pixel(camera, world, x, y) == pytest.approx(tuple(image[y, x]), abs=1e-6)

    def test_empty_world_is_black(self):
        from src.whitted.core.integrator import render
        from src.whitted.scene.world import World

        image = render(default_view(), World())
        assert np.allclose(image, 0.0)

    def test_oversized_image(self):
        from src.whitted.core.integrator import render
        from src.whitted.scene.world import World

        with pytest.raises(ValueError, match="exceed maximum"):
            render(default_view(4096, 10), World())

    def test_invalid_depth(self):
        from src.whitted.core.integrator import render
        from src.whitted.scene.world import World

        with pytest.raises(ValueError, match="Bounce depth"):
            render(default_view(), World(), max_depth=17)


class TestRenderTarget:
    """Tests for the shared canvas."""

    def test_rows_require_setup(self):
        from src.whitted.core.integrator import render_rows

        with pytest.raises(RuntimeError, match="not set up"):
            render_rows(0, 1)

    def test_setup_clears_canvas(self):
        from src.whitted.core.integrator import get_image_numpy, render, setup_render_target
        from src.whitted.scene.default_world import create_default_world

        render(default_view(), create_default_world())
        setup_render_target(11, 11)
        assert np.allclose(get_image_numpy(), 0.0)

    def test_invalid_dimensions(self):
        from src.whitted.core.integrator import setup_render_target

        with pytest.raises(ValueError, match="must be positive"):
            setup_render_target(0, 10)

    def test_sphere_in_sphere_scene_renders(self):
        from src.whitted.core.integrator import render
        from src.whitted.scene.default_world import create_sphere_in_sphere_scene

        world, camera = create_sphere_in_sphere_scene(24, 16)
        image = render(camera, world)
        assert image.shape == (16, 24, 3)
        assert np.all(np.isfinite(image))
        # The checkered wall fills the background
        assert image.mean() > 0.0
