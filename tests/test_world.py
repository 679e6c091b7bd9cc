"""Tests for the World scene container.

Tests cover:
- Adding shapes, materials and lights
- Material id resolution and validation
- Bounds handling for cylinders and cones
- Serialization to and from dictionaries
- Rejecting a World replaced by a newer one
- The ready-made scenes
"""

import json
import math

import numpy as np
import pytest


class TestWorldBasics:
    """Tests for building a world."""

    def test_new_world_is_empty(self):
        from src.whitted.scene.world import World

        world = World()
        assert world.get_shape_count() == 0
        assert world.get_material_count() == 0
        assert world.get_light_count() == 0
        assert world.max_depth == 5

    def test_new_world_clears_previous_scene(self):
        from src.whitted.scene.default_world import create_default_world
        from src.whitted.scene.world import World

        create_default_world()
        world = World()
        assert world.get_shape_count() == 0
        assert world.intersect((0, 0, -5), (0, 0, 1)) == []

    def test_add_shapes_returns_ids(self):
        from src.whitted.scene.world import World

        world = World()
        assert world.add_sphere() == 0
        assert world.add_plane() == 1
        assert world.add_cube() == 2
        assert world.add_cylinder(minimum=0, maximum=1, closed=True) == 3
        assert world.add_cone(minimum=-1, maximum=0) == 4
        assert [s.kind.name for s in world.shapes] == ["SPHERE", "PLANE", "CUBE", "CYLINDER", "CONE"]

    def test_default_material_per_shape(self):
        from src.whitted.materials.material import Material
        from src.whitted.scene.world import World

        world = World()
        world.add_sphere()
        world.add_sphere()
        assert world.get_material_count() == 2
        assert world.materials[0] == Material()

    def test_shared_material_id(self):
        from src.whitted.materials.material import Material
        from src.whitted.scene.world import World

        world = World()
        red = world.add_material(Material(color=(1, 0, 0)))
        world.add_sphere(material=red)
        world.add_cube(material=red)
        assert world.get_material_count() == 1
        assert [s.material_id for s in world.shapes] == [red, red]

    def test_unknown_material_id(self):
        from src.whitted.scene.world import World

        world = World()
        with pytest.raises(ValueError, match="Unknown material id"):
            world.add_sphere(material=3)
        assert world.get_shape_count() == 0

    def test_bounds_ignored_for_unbounded_kinds(self):
        from src.whitted.geometry.shape import ShapeKind
        from src.whitted.scene.world import World

        world = World()
        world.add_shape(ShapeKind.SPHERE, minimum=0, maximum=1, closed=True)
        info = world.shapes[0]
        assert (info.minimum, info.maximum, info.closed) == (-math.inf, math.inf, False)

    def test_closed_cylinder_needs_finite_bounds(self):
        from src.whitted.scene.world import World

        world = World()
        with pytest.raises(ValueError, match="finite"):
            world.add_cylinder(closed=True)

    def test_rejected_shape_registers_no_material(self):
        from src.whitted.core.transform import scaling
        from src.whitted.materials.material import Material
        from src.whitted.scene.world import World

        world = World()
        with pytest.raises(ValueError, match="not invertible"):
            world.add_sphere(scaling(0, 1, 1), Material(color=(1, 0, 0)))
        with pytest.raises(ValueError, match="must not exceed"):
            world.add_cylinder(material=Material(), minimum=2, maximum=1)
        assert world.get_material_count() == 0
        assert world.materials == []
        assert world.get_shape_count() == 0

    def test_add_point_light(self):
        from src.whitted.scene.world import World

        world = World()
        assert world.add_point_light((0, 5, 0), (0.5, 0.5, 0.5)) == 0
        assert world.lights[0].position == (0, 5, 0)
        assert world.get_light_count() == 1

    def test_negative_light_intensity(self):
        from src.whitted.scene.world import World

        world = World()
        with pytest.raises(ValueError, match="non-negative"):
            world.add_point_light((0, 5, 0), (-1, 0, 0))

    @pytest.mark.parametrize("depth", [-1, 17])
    def test_invalid_max_depth(self, depth):
        from src.whitted.scene.world import World

        with pytest.raises(ValueError, match="Bounce depth"):
            World(max_depth=depth)
        world = World()
        with pytest.raises(ValueError, match="Bounce depth"):
            world.max_depth = depth

    def test_clear(self):
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        world.clear()
        assert world.get_shape_count() == 0
        assert world.shapes == []
        assert world.lights == []


class TestActiveWorld:
    """Tests for a World replaced by a newer one."""

    def test_newest_world_is_active(self):
        from src.whitted.scene.world import World

        first = World()
        assert first.is_active
        second = World()
        assert second.is_active
        assert not first.is_active

    def test_invalid_world_does_not_replace_active_one(self):
        from src.whitted.scene.world import World

        world = World()
        with pytest.raises(ValueError):
            World(max_depth=-1)
        assert world.is_active

    @pytest.mark.parametrize(
        "use",
        [
            lambda w: w.color_at((0, 0, -5), (0, 0, 1)),
            lambda w: w.intersect((0, 0, -5), (0, 0, 1)),
            lambda w: w.hit((0, 0, -5), (0, 0, 1)),
            lambda w: w.is_shadowed((0, 10, 0)),
            lambda w: w.add_sphere(),
            lambda w: w.add_point_light((0, 5, 0)),
            lambda w: w.clear(),
        ],
        ids=["color_at", "intersect", "hit", "is_shadowed", "add_sphere", "add_light", "clear"],
    )
    def test_stale_world_raises(self, use):
        from src.whitted.scene.default_world import create_default_world

        stale = create_default_world()
        current = create_default_world()
        with pytest.raises(RuntimeError, match="no longer active"):
            use(stale)
        assert current.get_shape_count() == 2
        assert current.get_material_count() == 2
        assert current.get_light_count() == 1

    def test_stale_world_cannot_render(self):
        from src.whitted.camera.camera import Camera
        from src.whitted.core.integrator import render, render_pixel
        from src.whitted.core.progressive import ProgressiveRenderer
        from src.whitted.scene.world import World

        stale = World()
        World()
        camera = Camera(4, 4, math.pi / 2)
        with pytest.raises(RuntimeError, match="no longer active"):
            render(camera, stale)
        with pytest.raises(RuntimeError, match="no longer active"):
            render_pixel(camera, stale, 0, 0)
        with pytest.raises(RuntimeError, match="no longer active"):
            ProgressiveRenderer(camera, stale)

    def test_renderer_stops_when_world_is_replaced(self):
        from src.whitted.camera.camera import Camera
        from src.whitted.core.progressive import ProgressiveRenderer
        from src.whitted.scene.world import World

        renderer = ProgressiveRenderer(Camera(4, 4, math.pi / 2), World())
        World()
        with pytest.raises(RuntimeError, match="no longer active"):
            renderer.render()
        assert renderer.rows_completed == 0

class TestWorldSerialization:
    """Tests for to_dict() / from_dict()."""

    def test_round_trip(self):
        from src.whitted.core.transform import chain, rotation_z, scaling, translation
        from src.whitted.materials.material import Material
        from src.whitted.materials.pattern import checker_pattern
        from src.whitted.scene.world import World

        world = World(max_depth=3)
        world.add_point_light((-10, 10, -10))
        world.add_sphere(translation(0, 1, 0), Material(color=(0.1, 0.2, 0.3), reflective=0.4))
        world.add_plane(material=Material(pattern=checker_pattern((1, 1, 1), (0, 0, 0))))
        world.add_cylinder(chain(scaling(0.5, 1, 0.5), rotation_z(0.3)), minimum=1, maximum=2, closed=True)
        world.add_cone(minimum=-1)

        data = json.loads(json.dumps(world.to_dict()))
        before = world.color_at((0, 0.5, -5), (0, 0, 1))
        xs_before = [(x.t, x.shape_id) for x in world.intersect((0, 1.5, -5), (0, 0, 1))]

        restored = World()
        restored.from_dict(data)
        assert restored.max_depth == 3
        assert restored.get_shape_count() == 4
        assert restored.get_light_count() == 1
        assert restored.shapes[2].closed is True
        assert restored.shapes[3].maximum == math.inf
        assert np.allclose(restored.shapes[2].transform, world.shapes[2].transform)
        assert restored.materials[1].pattern is not None

        assert restored.color_at((0, 0.5, -5), (0, 0, 1)) == pytest.approx(before)
        xs_after = [(x.t, x.shape_id) for x in restored.intersect((0, 1.5, -5), (0, 0, 1))]
        assert [s for _, s in xs_after] == [s for _, s in xs_before]
        assert [t for t, _ in xs_after] == pytest.approx([t for t, _ in xs_before])

    def test_unbounded_ends_are_null(self):
        from src.whitted.scene.world import World

        world = World()
        world.add_cylinder(maximum=2.0)
        shape = world.to_dict()["shapes"][0]
        assert shape["kind"] == "cylinder"
        assert shape["minimum"] is None
        assert shape["maximum"] == 2.0

    def test_unknown_shape_kind(self):
        from src.whitted.scene.world import World

        world = World()
        with pytest.raises(ValueError, match="Unknown shape kind"):
            world.from_dict({"shapes": [{"kind": "torus"}]})

    def test_repr(self):
        from src.whitted.scene.default_world import create_default_world

        assert repr(create_default_world()) == "World(shapes=2, lights=1, materials=2, max_depth=5)"


class TestSceneBuilders:
    """Tests for the ready-made scenes."""

    def test_default_world(self):
        from src.whitted.scene.default_world import DEFAULT_LIGHT_POSITION, create_default_world

        world = create_default_world()
        assert world.lights[0].position == DEFAULT_LIGHT_POSITION
        assert world.materials[0].color == (0.8, 1.0, 0.6)
        assert world.materials[0].diffuse == 0.7
        assert world.materials[0].specular == 0.2
        assert np.allclose(np.diag(world.shapes[1].transform), (0.5, 0.5, 0.5, 1.0))

    def test_sphere_in_sphere_scene(self):
        from src.whitted.scene.default_world import SphereInSphereParams, create_sphere_in_sphere_scene

        world, camera = create_sphere_in_sphere_scene(80, 60, SphereInSphereParams(shell_index=1.6))
        assert (camera.hsize, camera.vsize) == (80, 60)
        assert world.get_shape_count() == 5
        assert world.materials[0].refractive_index == 1.6
        assert world.get_light_count() == 1
