"""World container that owns the scene tables.

The World provides a high-level API over the module-level Taichi tables
for shapes, materials, patterns and lights. It keeps a host-side record of
everything added so that a scene can be serialized and rebuilt, and it
holds the default bounce cap used by render().

Only one World is active at a time: the tables are shared, and
constructing a World clears them. A World that has been superseded
raises RuntimeError instead of reading or changing the newer scene.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.whitted.core.transform import scaling, translation
    >>> from src.whitted.materials.material import Material, glass
    >>> from src.whitted.scene.light import PointLight
    >>> from src.whitted.scene.world import World
    >>> world = World()
    >>> world.add_light(PointLight(position=(-10, 10, -10)))
    >>> floor = world.add_plane(translation(0, -1, 0), Material(reflective=0.3))
    >>> ball = world.add_sphere(scaling(0.5, 0.5, 0.5), glass())
    >>> world.color_at((0, 0, -5), (0, 0, 1))
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from src.whitted.core.integrator import (
    DEFAULT_MAX_DEPTH,
    point_is_shadowed,
    reset_render_target,
    trace,
    validate_depth,
)
from src.whitted.core.transform import Matrix4, as_matrix, inverse
from src.whitted.geometry.shape import ShapeKind
from src.whitted.materials.material import (
    Material,
    add_material,
    clear_materials,
    get_material_count,
)
from src.whitted.materials.pattern import clear_patterns
from src.whitted.scene.intersection import (
    Intersection,
    add_shape,
    clear_shapes,
    validate_bounds,
    get_shape_count,
    hit,
    intersect_world,
)
from src.whitted.scene.light import PointLight, add_light, clear_lights, get_light_count

logger = logging.getLogger(__name__)

# Incremented by every new World; only the World holding the latest value may touch the tables
_active_generation = 0


@dataclass
class ShapeInfo:
    """Host-side record of a shape in the world.

    Attributes:
        shape_id: The index in the shape tables.
        kind: Which primitive this is.
        transform: Object-to-world transform.
        material_id: The material assigned to the shape.
        minimum: Lower y bound (cylinders and cones).
        maximum: Upper y bound (cylinders and cones).
        closed: Whether the shape has end caps.
    """

    shape_id: int
    kind: ShapeKind
    transform: Matrix4
    material_id: int
    minimum: float = -math.inf
    maximum: float = math.inf
    closed: bool = False


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        materials: List of material configurations.
        shapes: List of shape configurations.
        lights: List of light configurations.
        max_depth: Default bounce cap.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    shapes: list[dict[str, Any]] = field(default_factory=list)
    lights: list[dict[str, Any]] = field(default_factory=list)
    max_depth: int = DEFAULT_MAX_DEPTH


def _bound_to_json(value: float) -> float | None:
    # JSON has no infinity; unbounded ends are stored as null
    return float(value) if math.isfinite(value) else None


class World:
    """A scene of shapes and point lights, plus the default bounce cap.

    Shapes keep their insertion order, which is also the tie order for
    intersections at equal t.

    Attributes:
        materials: Materials in registration order; index == material id.
        shapes: ShapeInfo for every shape in insertion order.
        lights: Lights in insertion order; index == light id.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        """Create an empty world and make it the active one.

        Args:
            max_depth: Default bounce cap for color_at() and render().

        Raises:
            ValueError: If max_depth is outside [0, MAX_DEPTH_LIMIT].
        """
        self._max_depth = validate_depth(max_depth)
        global _active_generation
        _active_generation += 1
        self._generation = _active_generation
        self.materials: list[Material] = []
        self.shapes: list[ShapeInfo] = []
        self.lights: list[PointLight] = []
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        clear_shapes()
        clear_materials()
        clear_patterns()
        clear_lights()
        reset_render_target()
        self.materials.clear()
        self.shapes.clear()
        self.lights.clear()

    @property
    def is_active(self) -> bool:
        """Whether this World owns the scene tables."""
        return self._generation == _active_generation

    def ensure_active(self) -> None:
        """Raise if a newer World has taken over the scene tables.

        Raises:
            RuntimeError: If this World is no longer the active one.
        """
        if not self.is_active:
            raise RuntimeError(
                "This World is no longer active; a newer World has replaced its scene tables"
            )

    def clear(self) -> None:
        """Remove every shape, material and light."""
        self.ensure_active()
        self._clear_all()

    @property
    def max_depth(self) -> int:
        """Default bounce cap for color_at() and render()."""
        return self._max_depth

    @max_depth.setter
    def max_depth(self, value: int) -> None:
        self._max_depth = validate_depth(value)

    # =========================================================================
    # Materials and Lights
    # =========================================================================

    def add_material(self, material: Material) -> int:
        """Register a material and return its id."""
        self.ensure_active()
        material_id = add_material(material)
        self.materials.append(material)
        return material_id

    def add_light(self, light: PointLight) -> int:
        """Add a point light and return its id."""
        self.ensure_active()
        light_id = add_light(light)
        self.lights.append(light)
        return light_id

    def add_point_light(
        self,
        position: Sequence[float],
        intensity: Sequence[float] = (1.0, 1.0, 1.0),
    ) -> int:
        """Convenience wrapper building the PointLight in place."""
        return self.add_light(
            PointLight(position=tuple(position), intensity=tuple(intensity))
        )

    def get_material_count(self) -> int:
        """Get the number of registered materials."""
        return get_material_count()

    def get_light_count(self) -> int:
        """Get the number of lights."""
        return get_light_count()

    # =========================================================================
    # Shapes
    # =========================================================================

    def _resolve_material(self, material: Material | int | None) -> int:
        if material is None:
            return self.add_material(Material())
        if isinstance(material, Material):
            return self.add_material(material)
        material_id = int(material)
        if not 0 <= material_id < len(self.materials):
            raise ValueError(
                f"Unknown material id {material_id}; "
                f"{len(self.materials)} materials are registered"
            )
        return material_id

    def add_shape(
        self,
        kind: ShapeKind,
        transform: Matrix4 | None = None,
        material: Material | int | None = None,
        minimum: float = -math.inf,
        maximum: float = math.inf,
        closed: bool = False,
    ) -> int:
        """Add a shape of any kind.

        Args:
            kind: Which primitive to add.
            transform: Object-to-world transform (None for identity).
            material: A Material to register, the id of one already
                registered, or None for the default material.
            minimum: Lower y bound for cylinders and cones.
            maximum: Upper y bound for cylinders and cones.
            closed: Whether a cylinder or cone has end caps.

        Returns:
            The shape id.

        Raises:
            ValueError: If the transform is singular, the bounds are
                invalid or the material id is unknown.
        """
        self.ensure_active()
        kind = ShapeKind(kind)
        matrix = as_matrix(transform)
        if kind not in (ShapeKind.CYLINDER, ShapeKind.CONE):
            minimum, maximum, closed = -math.inf, math.inf, False
        # Reject the shape before a new material is registered for it
        validate_bounds(minimum, maximum, closed)
        inverse(matrix)
        material_id = self._resolve_material(material)
        shape_id = add_shape(kind, matrix, material_id, minimum, maximum, closed)
        self.shapes.append(
            ShapeInfo(
                shape_id=shape_id,
                kind=kind,
                transform=matrix,
                material_id=material_id,
                minimum=float(minimum),
                maximum=float(maximum),
                closed=bool(closed),
            )
        )
        return shape_id

    def add_sphere(self, transform: Matrix4 | None = None, material: Material | int | None = None) -> int:
        """Add a unit sphere placed by transform."""
        return self.add_shape(ShapeKind.SPHERE, transform, material)

    def add_plane(self, transform: Matrix4 | None = None, material: Material | int | None = None) -> int:
        """Add an xz plane placed by transform."""
        return self.add_shape(ShapeKind.PLANE, transform, material)

    def add_cube(self, transform: Matrix4 | None = None, material: Material | int | None = None) -> int:
        """Add an axis-aligned cube spanning [-1, 1] on each axis."""
        return self.add_shape(ShapeKind.CUBE, transform, material)

    def add_cylinder(
        self,
        transform: Matrix4 | None = None,
        material: Material | int | None = None,
        minimum: float = -math.inf,
        maximum: float = math.inf,
        closed: bool = False,
    ) -> int:
        """Add a unit-radius cylinder around the y axis."""
        return self.add_shape(ShapeKind.CYLINDER, transform, material, minimum, maximum, closed)

    def add_cone(
        self,
        transform: Matrix4 | None = None,
        material: Material | int | None = None,
        minimum: float = -math.inf,
        maximum: float = math.inf,
        closed: bool = False,
    ) -> int:
        """Add a double cone x^2 + z^2 = y^2 around the y axis."""
        return self.add_shape(ShapeKind.CONE, transform, material, minimum, maximum, closed)

    def get_shape_count(self) -> int:
        """Get the number of shapes."""
        return get_shape_count()

    # =========================================================================
    # Queries
    # =========================================================================

    def intersect(self, origin: Sequence[float], direction: Sequence[float]) -> list[Intersection]:
        """All intersections of a ray with the world, ascending by t."""
        self.ensure_active()
        return intersect_world(origin, direction)

    def hit(self, origin: Sequence[float], direction: Sequence[float]) -> Intersection | None:
        """The visible intersection of a ray, or None if it escapes."""
        return hit(self.intersect(origin, direction))

    def color_at(
        self,
        origin: Sequence[float],
        direction: Sequence[float],
        remaining: int | None = None,
    ) -> tuple[float, float, float]:
        """Color seen along a ray.

        Args:
            origin: Ray origin in world space.
            direction: Ray direction in world space.
            remaining: Bounce budget; defaults to max_depth.

        Returns:
            Unclamped linear (R, G, B).

        Raises:
            RuntimeError: If a newer World has replaced this one.
        """
        self.ensure_active()
        return trace(origin, direction, self._max_depth if remaining is None else remaining)

    def is_shadowed(self, point: Sequence[float], light: int = 0) -> bool:
        """Whether a point is hidden from a light by some shape."""
        self.ensure_active()
        if not 0 <= light < len(self.lights):
            raise ValueError(f"Unknown light id {light}")
        return point_is_shadowed(point, light)

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig(max_depth=self._max_depth)
        config.materials = [material.to_dict() for material in self.materials]
        for shape in self.shapes:
            shape_config: dict[str, Any] = {
                "kind": shape.kind.name.lower(),
                "transform": np.asarray(shape.transform).tolist(),
                "material_id": shape.material_id,
            }
            if shape.kind in (ShapeKind.CYLINDER, ShapeKind.CONE):
                shape_config["minimum"] = _bound_to_json(shape.minimum)
                shape_config["maximum"] = _bound_to_json(shape.maximum)
                shape_config["closed"] = shape.closed
            config.shapes.append(shape_config)
        config.lights = [light.to_dict() for light in self.lights]
        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()
        self.max_depth = config.max_depth

        # Materials first, shapes refer to them by id
        for material_config in config.materials:
            self.add_material(Material.from_dict(material_config))

        for shape_config in config.shapes:
            kind_name = str(shape_config.get("kind", "")).upper()
            if kind_name not in ShapeKind.__members__:
                raise ValueError(f"Unknown shape kind: {shape_config.get('kind')!r}")
            minimum = shape_config.get("minimum")
            maximum = shape_config.get("maximum")
            self.add_shape(
                ShapeKind[kind_name],
                np.array(shape_config["transform"], dtype=np.float64)
                if shape_config.get("transform") is not None
                else None,
                int(shape_config.get("material_id", 0)),
                minimum=-math.inf if minimum is None else float(minimum),
                maximum=math.inf if maximum is None else float(maximum),
                closed=bool(shape_config.get("closed", False)),
            )

        for light_config in config.lights:
            self.add_light(PointLight.from_dict(light_config))

        logger.debug(
            "Loaded scene: %d materials, %d shapes, %d lights",
            len(self.materials),
            len(self.shapes),
            len(self.lights),
        )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "shapes": config.shapes,
            "lights": config.lights,
            "max_depth": config.max_depth,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary.

        Args:
            data: Dictionary with 'materials', 'shapes', 'lights' and
                optionally 'max_depth' keys.
        """
        config = SceneConfig(
            materials=data.get("materials", []),
            shapes=data.get("shapes", []),
            lights=data.get("lights", []),
            max_depth=data.get("max_depth", DEFAULT_MAX_DEPTH),
        )
        self.from_config(config)

    def __repr__(self) -> str:
        return (
            f"World(shapes={len(self.shapes)}, lights={len(self.lights)}, "
            f"materials={len(self.materials)}, max_depth={self._max_depth})"
        )
