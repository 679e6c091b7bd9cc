"""Phong surface materials and the local lighting model.

A material describes how a surface responds to a point light (ambient,
diffuse and specular coefficients plus shininess), an optional pattern
that replaces its flat color, and how much light it passes on to
secondary rays (reflective, transparency, refractive_index).

Materials are stored in Taichi fields using a Structure of Arrays layout
and referenced by integer id from each shape.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.whitted.materials.material import Material, add_material, glass
    >>> matte_red = add_material(Material(color=(1.0, 0.2, 0.2), specular=0.1))
    >>> glass_id = add_material(glass())
"""

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any

import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import mat4, real, reflect, vec3
from src.whitted.materials.pattern import Pattern, add_pattern, pattern_color_at

logger = logging.getLogger(__name__)


@dataclass
class Material:
    """Surface parameters for Phong shading and secondary rays.

    Attributes:
        color: Base RGB color, used when there is no pattern.
        ambient: Fraction of the light's color applied unconditionally.
        diffuse: Lambertian reflection coefficient.
        specular: Phong highlight coefficient.
        shininess: Phong exponent; larger values give tighter highlights.
        reflective: Weight of the mirror-reflected color in [0, 1].
        transparency: Weight of the refracted color in [0, 1].
        refractive_index: Index of refraction of the medium inside the
            shape. Vacuum is 1.0, water 1.333, glass 1.5, diamond 2.417.
        pattern: Optional pattern replacing color.
    """

    color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    ambient: float = 0.1
    diffuse: float = 0.9
    specular: float = 0.9
    shininess: float = 200.0
    reflective: float = 0.0
    transparency: float = 0.0
    refractive_index: float = 1.0
    pattern: Pattern | None = None

    def __post_init__(self) -> None:
        if len(self.color) != 3:
            raise ValueError(f"Material color must have 3 components, got {self.color!r}")
        for name in ("ambient", "diffuse", "specular", "shininess"):
            if getattr(self, name) < 0.0:
                raise ValueError(f"Material {name} must be non-negative, got {getattr(self, name)}")
        for name in ("reflective", "transparency"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Material {name} must be in [0, 1], got {value}")
        if self.refractive_index <= 0.0:
            raise ValueError(f"Material refractive_index must be positive, got {self.refractive_index}")

    def with_(self, **changes: Any) -> "Material":
        """Return a copy with some fields replaced (validated again)."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        data = asdict(self)
        data["color"] = [float(c) for c in self.color]
        data["pattern"] = self.pattern.to_dict() if self.pattern is not None else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Material":
        """Rebuild a material from to_dict() output. Missing keys take defaults."""
        params = dict(data)
        if "color" in params:
            params["color"] = tuple(float(c) for c in params["color"])
        pattern = params.pop("pattern", None)
        if pattern is not None:
            params["pattern"] = Pattern.from_dict(pattern)
        return cls(**params)


def glass() -> Material:
    """A fully transparent material with the refractive index of glass."""
    return Material(transparency=1.0, refractive_index=1.5)


# =============================================================================
# Material storage
# =============================================================================

# Maximum number of materials supported
MAX_MATERIALS = 1024

material_colors = ti.Vector.field(3, dtype=real, shape=MAX_MATERIALS)
material_ambients = ti.field(dtype=real, shape=MAX_MATERIALS)
material_diffuses = ti.field(dtype=real, shape=MAX_MATERIALS)
material_speculars = ti.field(dtype=real, shape=MAX_MATERIALS)
material_shininess = ti.field(dtype=real, shape=MAX_MATERIALS)
material_reflectives = ti.field(dtype=real, shape=MAX_MATERIALS)
material_transparencies = ti.field(dtype=real, shape=MAX_MATERIALS)
material_refractive_indices = ti.field(dtype=real, shape=MAX_MATERIALS)
# Pattern id per material, -1 for a flat color
material_pattern_ids = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear all registered materials.

    Patterns are owned by materials, so callers normally clear both.
    """
    num_materials[None] = 0


def get_material_count() -> int:
    """Get the number of registered materials."""
    return int(num_materials[None])


def add_material(material: Material) -> int:
    """Upload a material (and its pattern, if any) to the material table.

    Args:
        material: The material to register.

    Returns:
        The material id to assign to shapes.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If the material's pattern is invalid.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    pattern_id = -1
    if material.pattern is not None:
        pattern_id = add_pattern(material.pattern)

    material_colors[idx] = vec3(material.color[0], material.color[1], material.color[2])
    material_ambients[idx] = material.ambient
    material_diffuses[idx] = material.diffuse
    material_speculars[idx] = material.specular
    material_shininess[idx] = material.shininess
    material_reflectives[idx] = material.reflective
    material_transparencies[idx] = material.transparency
    material_refractive_indices[idx] = material.refractive_index
    material_pattern_ids[idx] = pattern_id
    num_materials[None] = idx + 1

    logger.debug("Registered material %d (pattern %d)", idx, pattern_id)
    return idx


# =============================================================================
# Lighting
# =============================================================================


@ti.func
def surface_color(material_id: ti.i32, object_inverse: mat4, point: vec3) -> vec3:
    """The material's color at a point: its pattern if it has one, else its flat color."""
    color = material_colors[material_id]
    pattern_id = material_pattern_ids[material_id]
    if pattern_id >= 0:
        color = pattern_color_at(pattern_id, object_inverse, point)
    return color


@ti.func
def lighting(
    material_id: ti.i32,
    object_inverse: mat4,
    light_position: vec3,
    light_intensity: vec3,
    point: vec3,
    eyev: vec3,
    normalv: vec3,
    in_shadow: ti.i32,
) -> vec3:
    """Phong illumination of a surface point by one point light.

    The ambient term is always applied. Diffuse and specular vanish when
    the point is in shadow or the light is behind the surface, and the
    specular term also vanishes when the reflected light points away from
    the eye. No clamping is done here.

    Args:
        material_id: Material of the surface.
        object_inverse: Inverse transform of the shape, used to place the
            material's pattern.
        light_position: Position of the point light.
        light_intensity: RGB intensity of the point light.
        point: Surface point being shaded (world space).
        eyev: Unit vector from the point toward the eye.
        normalv: Unit surface normal facing the eye.
        in_shadow: 1 if the light is occluded from the point.

    Returns:
        ambient + diffuse + specular.
    """
    effective_color = surface_color(material_id, object_inverse, point) * light_intensity
    ambient = effective_color * material_ambients[material_id]
    diffuse = vec3(0.0, 0.0, 0.0)
    specular = vec3(0.0, 0.0, 0.0)

    if in_shadow == 0:
        lightv = tm.normalize(light_position - point)
        light_dot_normal = tm.dot(lightv, normalv)
        if light_dot_normal > 0.0:
            diffuse = effective_color * material_diffuses[material_id] * light_dot_normal
            reflectv = reflect(-lightv, normalv)
            reflect_dot_eye = tm.dot(reflectv, eyev)
            if reflect_dot_eye > 0.0:
                factor = ti.pow(reflect_dot_eye, material_shininess[material_id])
                specular = light_intensity * material_speculars[material_id] * factor

    return ambient + diffuse + specular
