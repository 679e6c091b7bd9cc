"""Pytest configuration for the ray tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts. Double precision
    is required by every module, since fields are declared as f64.
    """
    ti.init(arch=ti.cpu, default_fp=ti.f64, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene data before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here to ensure Taichi is initialized before fields are declared
    from src.whitted.core.integrator import reset_render_target
    from src.whitted.materials.material import clear_materials
    from src.whitted.materials.pattern import clear_patterns
    from src.whitted.scene.intersection import clear_shapes
    from src.whitted.scene.light import clear_lights

    def _clear_all():
        clear_shapes()
        clear_materials()
        clear_patterns()
        clear_lights()
        reset_render_target()

    _clear_all()
    yield
    _clear_all()

