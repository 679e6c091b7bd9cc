"""Ready-made scenes.

create_default_world() builds the canonical two-sphere world that the
shading tests are written against: a white point light up and to the left
of the camera, a unit sphere with a greenish matte material and a smaller
default sphere nested inside it.

create_sphere_in_sphere_scene() builds the demo scene used by the example
driver: two glass spheres, each holding an air bubble, in front of a
checkered wall.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.whitted.scene.default_world import create_default_world
    >>> world = create_default_world()
    >>> [x.t for x in world.intersect((0, 0, -5), (0, 0, 1))]
    [4.0, 4.5, 5.5, 6.0]
"""

import math
from dataclasses import dataclass

from src.whitted.camera.camera import Camera
from src.whitted.core.transform import chain, rotation_x, scaling, translation, view_transform
from src.whitted.materials.material import Material
from src.whitted.materials.pattern import checker_pattern
from src.whitted.scene.light import PointLight
from src.whitted.scene.world import World

DEFAULT_LIGHT_POSITION = (-10.0, 10.0, -10.0)


def create_default_world() -> World:
    """Create the canonical two-sphere world.

    Returns:
        A World with one white light at (-10, 10, -10), an outer unit
        sphere (color (0.8, 1.0, 0.6), diffuse 0.7, specular 0.2) and an
        inner sphere scaled by 0.5 with the default material.
    """
    world = World()
    world.add_light(PointLight(position=DEFAULT_LIGHT_POSITION, intensity=(1.0, 1.0, 1.0)))
    world.add_sphere(material=Material(color=(0.8, 1.0, 0.6), diffuse=0.7, specular=0.2))
    world.add_sphere(transform=scaling(0.5, 0.5, 0.5))
    return world


@dataclass
class SphereInSphereParams:
    """Parameters for the sphere-in-sphere demo scene.

    Attributes:
        shell_index: Refractive index of the outer glass spheres.
        bubble_index: Refractive index of the inner air bubbles.
        light_position: Position of the single point light.
        light_intensity: RGB intensity of the light.
        field_of_view: Camera field of view in radians.
    """

    shell_index: float = 1.5
    bubble_index: float = 1.0000034
    light_position: tuple[float, float, float] = (2.0, 10.0, -5.0)
    light_intensity: tuple[float, float, float] = (0.9, 0.9, 0.9)
    field_of_view: float = math.pi / 3.0


def create_sphere_in_sphere_scene(
    width: int = 400,
    height: int = 400,
    params: SphereInSphereParams | None = None,
) -> tuple[World, Camera]:
    """Create the sphere-in-sphere demo scene and a camera looking at it.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        params: Scene parameters; defaults to SphereInSphereParams().

    Returns:
        Tuple of (world, camera).
    """
    if params is None:
        params = SphereInSphereParams()

    world = World()

    shell = Material(
        ambient=0.0,
        diffuse=0.0,
        specular=0.9,
        shininess=300.0,
        reflective=0.9,
        transparency=0.9,
        refractive_index=params.shell_index,
    )
    bubble = shell.with_(refractive_index=params.bubble_index)
    shell_id = world.add_material(shell)
    bubble_id = world.add_material(bubble)

    for x in (-2.0, 2.0):
        world.add_sphere(translation(x, 0.0, 0.0), shell_id)
        world.add_sphere(chain(scaling(0.5, 0.5, 0.5), translation(x, 0.0, 0.0)), bubble_id)

    wall = Material(
        pattern=checker_pattern((0.15, 0.15, 0.15), (0.85, 0.85, 0.85)),
        ambient=0.8,
        diffuse=0.2,
        specular=0.0,
    )
    world.add_plane(chain(rotation_x(math.pi / 2.0), translation(0.0, 0.0, 10.0)), wall)

    world.add_light(PointLight(position=params.light_position, intensity=params.light_intensity))

    camera = Camera(
        hsize=width,
        vsize=height,
        field_of_view=params.field_of_view,
        transform=view_transform((0.0, 0.0, -8.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0)),
    )
    return world, camera
