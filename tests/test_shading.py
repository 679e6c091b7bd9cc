"""Unit tests for Whitted shading.

Tests cover:
- shade_hit() from outside and inside a shape, and in shadow
- color_at() for misses, hits and the ray origin sitting between shapes
- Shadow tests against a point light
- Reflected and refracted color, including the bounce budget
- Fresnel weighting of surfaces that are both reflective and transparent
"""

import functools
import math

import pytest
import taichi as ti

S = math.sqrt(2) / 2

SHADE_HIT = 0
REFLECTED = 1
REFRACTED = 2


@functools.lru_cache(maxsize=None)
def _shading_kernel(mode):
    """One compiled kernel per shading function, each holding a single tracing loop."""
    from src.whitted.core.integrator import reflected_color, refracted_color, shade_hit
    from src.whitted.core.ray import Ray, vec3
    from src.whitted.scene.computations import prepare_computations

    shading = {SHADE_HIT: shade_hit, REFLECTED: reflected_color, REFRACTED: refracted_color}[mode]

    @ti.kernel
    def compute(o: vec3, d: vec3, t: ti.f64, shape_id: ti.i32, index: ti.i32, remaining: ti.i32) -> vec3:
        color = vec3(0.0, 0.0, 0.0)
        for _ in range(1):
            comps = prepare_computations(Ray(origin=o, direction=d), t, shape_id, index)
            color = shading(comps, remaining)
        return color

    return compute


def shade(world, origin, direction, which, remaining=5, mode=SHADE_HIT):
    """Shade the which-th intersection of a ray with one of the shading funcs."""
    from src.whitted.core.ray import vec3

    x = world.intersect(origin, direction)[which]
    color = _shading_kernel(mode)(vec3(*origin), vec3(*direction), x.t, x.shape_id, x.local_index, remaining)
    return (color[0], color[1], color[2])


def default_world_with(outer=None, inner=None, light=None):
    """The default world with its materials or light swapped out."""
    from src.whitted.core.transform import scaling
    from src.whitted.materials.material import Material
    from src.whitted.scene.default_world import DEFAULT_LIGHT_POSITION
    from src.whitted.scene.light import PointLight
    from src.whitted.scene.world import World

    world = World()
    world.add_light(PointLight(position=light or DEFAULT_LIGHT_POSITION))
    world.add_sphere(material=outer or Material(color=(0.8, 1.0, 0.6), diffuse=0.7, specular=0.2))
    world.add_sphere(scaling(0.5, 0.5, 0.5), inner or Material())
    return world


class TestShadeHit:
    """Tests for shade_hit()."""

    def test_outside(self):
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        color = shade(world, (0, 0, -5), (0, 0, 1), 0)
        assert color == pytest.approx((0.38066, 0.47583, 0.2855), abs=1e-5)

    def test_inside(self):
        world = default_world_with(light=(0, 0.25, 0))
        xs = world.intersect((0, 0, 0), (0, 0, 1))
        which = next(i for i, x in enumerate(xs) if x.t >= 0)
        assert xs[which].shape_id == 1
        color = shade(world, (0, 0, 0), (0, 0, 1), which)
        assert color == pytest.approx((0.90498, 0.90498, 0.90498), abs=1e-5)

    def test_in_shadow(self):
        from src.whitted.core.transform import translation
        from src.whitted.scene.light import PointLight
        from src.whitted.scene.world import World

        world = World()
        world.add_light(PointLight(position=(0, 0, -10)))
        world.add_sphere()
        world.add_sphere(translation(0, 0, 10))
        xs = world.intersect((0, 0, 5), (0, 0, 1))
        which = next(i for i, x in enumerate(xs) if x.t >= 0)
        assert xs[which].shape_id == 1
        color = shade(world, (0, 0, 5), (0, 0, 1), which)
        assert color == pytest.approx((0.1, 0.1, 0.1))

    def test_lights_add_up(self):
        from src.whitted.scene.default_world import DEFAULT_LIGHT_POSITION
        from src.whitted.scene.light import PointLight

        world = default_world_with()
        single = shade(world, (0, 0, -5), (0, 0, 1), 0)
        world.add_light(PointLight(position=DEFAULT_LIGHT_POSITION))
        double = shade(world, (0, 0, -5), (0, 0, 1), 0)
        assert double == pytest.approx(tuple(2 * c for c in single))


class TestColorAt:
    """Tests for color_at() through World.color_at()."""

    def test_miss_is_black(self):
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        assert world.color_at((0, 0, -5), (0, 1, 0)) == pytest.approx((0, 0, 0))

    def test_hit(self):
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        color = world.color_at((0, 0, -5), (0, 0, 1))
        assert color == pytest.approx((0.38066, 0.47583, 0.2855), abs=1e-5)

    def test_intersection_behind_ray(self):
        from src.whitted.materials.material import Material

        world = default_world_with(
            outer=Material(color=(0.8, 1.0, 0.6), diffuse=0.7, specular=0.2, ambient=1.0),
            inner=Material(ambient=1.0),
        )
        color = world.color_at((0, 0, 0.75), (0, 0, -1))
        assert color == pytest.approx((1.0, 1.0, 1.0))

    def test_empty_world_is_black(self):
        from src.whitted.scene.world import World

        world = World()
        assert world.color_at((0, 0, 0), (0, 0, 1)) == pytest.approx((0, 0, 0))

    def test_no_lights_is_black(self):
        from src.whitted.scene.world import World

        world = World()
        world.add_sphere()
        assert world.color_at((0, 0, -5), (0, 0, 1)) == pytest.approx((0, 0, 0))

    def test_invalid_depth(self):
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        with pytest.raises(ValueError, match="Bounce depth"):
            world.color_at((0, 0, -5), (0, 0, 1), remaining=-1)


class TestShadows:
    """Tests for the shadow test against the default world's light."""

    @pytest.mark.parametrize(
        "point,expected",
        [
            ((0, 10, 0), False),
            ((10, -10, 10), True),
            ((-20, 20, -20), False),
            ((-2, 2, -2), False),
        ],
    )
    def test_default_world(self, point, expected):
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        assert world.is_shadowed(point) is expected

    def test_unknown_light(self):
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        with pytest.raises(ValueError, match="Unknown light"):
            world.is_shadowed((0, 0, 0), light=3)


class TestReflection:
    """Tests for reflected color."""

    def _mirror_floor_world(self):
        from src.whitted.core.transform import translation
        from src.whitted.materials.material import Material

        world = default_world_with()
        world.add_plane(translation(0, -1, 0), Material(reflective=0.5))
        return world

    def test_non_reflective_surface(self):
        from src.whitted.materials.material import Material

        world = default_world_with(inner=Material(ambient=1.0))
        xs = world.intersect((0, 0, 0), (0, 0, 1))
        which = next(i for i, x in enumerate(xs) if x.t >= 0)
        color = shade(world, (0, 0, 0), (0, 0, 1), which, mode=REFLECTED)
        assert color == pytest.approx((0, 0, 0))

    def test_reflective_surface(self):
        world = self._mirror_floor_world()
        xs = world.intersect((0, 0, -3), (0, -S, S))
        assert xs[0].shape_id == 2 and xs[0].t == pytest.approx(math.sqrt(2))
        color = shade(world, (0, 0, -3), (0, -S, S), 0, mode=REFLECTED)
        assert color == pytest.approx((0.19033, 0.23791, 0.14274), abs=1e-4)

    def test_shade_hit_with_reflection(self):
        world = self._mirror_floor_world()
        color = shade(world, (0, 0, -3), (0, -S, S), 0)
        assert color == pytest.approx((0.87677, 0.92436, 0.82918), abs=1e-4)
        assert world.color_at((0, 0, -3), (0, -S, S)) == pytest.approx(color)

    def test_shade_hit_is_local_plus_reflected(self):
        world = self._mirror_floor_world()
        local = shade(world, (0, 0, -3), (0, -S, S), 0, remaining=0)
        reflected = shade(world, (0, 0, -3), (0, -S, S), 0, mode=REFLECTED)
        full = shade(world, (0, 0, -3), (0, -S, S), 0)
        assert full == pytest.approx(tuple(a + b for a, b in zip(local, reflected)))

    def test_no_bounces_left(self):
        world = self._mirror_floor_world()
        color = shade(world, (0, 0, -3), (0, -S, S), 0, remaining=0, mode=REFLECTED)
        assert color == pytest.approx((0, 0, 0))

    def test_mutually_reflective_surfaces_terminate(self):
        from src.whitted.core.transform import translation
        from src.whitted.materials.material import Material
        from src.whitted.scene.light import PointLight
        from src.whitted.scene.world import World

        world = World(max_depth=16)
        world.add_light(PointLight(position=(0, 0, 0)))
        mirror = world.add_material(Material(reflective=1.0))
        world.add_plane(translation(0, -1, 0), mirror)
        world.add_plane(translation(0, 1, 0), mirror)

        color = world.color_at((0, 0, 0), (0, 1, 0))
        assert all(math.isfinite(c) for c in color)
        assert all(c > 0.0 for c in color)

    def test_depth_zero_is_local_color_only(self):
        world = self._mirror_floor_world()
        local = world.color_at((0, 0, -3), (0, -S, S), remaining=0)
        full = world.color_at((0, 0, -3), (0, -S, S), remaining=5)
        assert full[0] == pytest.approx(local[0] + 0.19033, abs=1e-4)


class TestRefraction:
    """Tests for refracted color."""

    def test_opaque_surface(self):
        from src.whitted.scene.default_world import create_default_world

        world = create_default_world()
        color = shade(world, (0, 0, -5), (0, 0, 1), 0, mode=REFRACTED)
        assert color == pytest.approx((0, 0, 0))

    def test_no_bounces_left(self):
        from src.whitted.materials.material import glass

        world = default_world_with(outer=glass())
        color = shade(world, (0, 0, -5), (0, 0, 1), 0, remaining=0, mode=REFRACTED)
        assert color == pytest.approx((0, 0, 0))

    def test_total_internal_reflection(self):
        from src.whitted.materials.material import glass

        world = default_world_with(outer=glass())
        color = shade(world, (0, 0, S), (0, 1, 0), 1, mode=REFRACTED)
        assert color == pytest.approx((0, 0, 0))

    def test_refracted_ray_color(self):
        from src.whitted.materials.material import Material, glass
        from src.whitted.materials.pattern import position_pattern

        world = default_world_with(
            outer=Material(
                color=(0.8, 1.0, 0.6),
                diffuse=0.7,
                specular=0.2,
                ambient=1.0,
                pattern=position_pattern(),
            ),
            inner=glass(),
        )
        xs = world.intersect((0, 0, 0.1), (0, 1, 0))
        assert [x.shape_id for x in xs] == [0, 1, 1, 0]
        color = shade(world, (0, 0, 0.1), (0, 1, 0), 2, mode=REFRACTED)
        assert color == pytest.approx((0, 0.99888, 0.04725), abs=1e-4)

    def _floor_world(self, reflective):
        from src.whitted.core.transform import translation
        from src.whitted.materials.material import Material

        world = default_world_with()
        world.add_plane(
            translation(0, -1, 0),
            Material(transparency=0.5, refractive_index=1.5, reflective=reflective),
        )
        world.add_sphere(translation(0, -3.5, -0.5), Material(color=(1, 0, 0), ambient=0.5))
        return world

    def test_transparent_floor(self):
        world = self._floor_world(reflective=0.0)
        color = shade(world, (0, 0, -3), (0, -S, S), 0)
        assert color == pytest.approx((0.93642, 0.68642, 0.68642), abs=1e-4)

    def test_reflective_transparent_floor_uses_schlick(self):
        world = self._floor_world(reflective=0.5)
        color = shade(world, (0, 0, -3), (0, -S, S), 0)
        assert color == pytest.approx((0.93391, 0.69643, 0.69243), abs=1e-4)

    def test_color_at_matches_shade_hit(self):
        world = self._floor_world(reflective=0.5)
        expected = shade(world, (0, 0, -3), (0, -S, S), 0)
        assert world.color_at((0, 0, -3), (0, -S, S)) == pytest.approx(expected)
