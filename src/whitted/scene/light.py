"""Point light storage.

Lights have a position and an RGB intensity, with no falloff and no
area. The shading integrator sums the contribution of every light, each
with its own shadow test.
"""

import logging
from dataclasses import dataclass
from typing import Any

import taichi as ti

from src.whitted.core.ray import real, vec3

logger = logging.getLogger(__name__)


@dataclass
class PointLight:
    """A point light source.

    Attributes:
        position: World-space position (x, y, z).
        intensity: RGB intensity; (1, 1, 1) is plain white.
    """

    position: tuple[float, float, float]
    intensity: tuple[float, float, float] = (1.0, 1.0, 1.0)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "position": [float(c) for c in self.position],
            "intensity": [float(c) for c in self.intensity],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PointLight":
        """Rebuild a light from to_dict() output."""
        return cls(
            position=tuple(float(c) for c in data["position"]),
            intensity=tuple(float(c) for c in data.get("intensity", (1.0, 1.0, 1.0))),
        )


# Maximum number of point lights supported
MAX_LIGHTS = 64

light_positions = ti.Vector.field(3, dtype=real, shape=MAX_LIGHTS)
light_intensities = ti.Vector.field(3, dtype=real, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Remove all lights."""
    num_lights[None] = 0


def get_light_count() -> int:
    """Get the number of lights."""
    return int(num_lights[None])


def add_light(light: PointLight) -> int:
    """Add a point light.

    Args:
        light: The light to add.

    Returns:
        The index of the added light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
        ValueError: If an intensity component is negative.
    """
    if any(c < 0.0 for c in light.intensity):
        raise ValueError(f"Light intensity must be non-negative, got {light.intensity}")
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
    light_positions[idx] = vec3(light.position[0], light.position[1], light.position[2])
    light_intensities[idx] = vec3(light.intensity[0], light.intensity[1], light.intensity[2])
    num_lights[None] = idx + 1
    logger.debug("Added light %d at %s", idx, light.position)
    return idx
