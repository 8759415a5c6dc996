"""
Display state queried by a rendering front end.

The solver does not draw anything; it only exposes which representation
(particle cloud or implicit surface) and which material preset a renderer
should use.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class RenderMode(Enum):
    """Available visualization modes."""
    PARTICLES = "particles"
    IMPLICIT_SURFACE = "implicit_surface"

    def toggled(self) -> 'RenderMode':
        if self is RenderMode.PARTICLES:
            return RenderMode.IMPLICIT_SURFACE
        return RenderMode.PARTICLES


class MaterialPreset(Enum):
    """Fluid material presets."""
    OPAQUE = "opaque"
    REFRACTIVE = "refractive"

    def toggled(self) -> 'MaterialPreset':
        if self is MaterialPreset.OPAQUE:
            return MaterialPreset.REFRACTIVE
        return MaterialPreset.OPAQUE


@dataclass(frozen=True)
class Material:
    """Surface appearance handed to the renderer."""
    color_rgba: Tuple[int, int, int, int] = (128, 128, 128, 255)
    refractive_index: float = 1.0  # 1.0 means opaque shading

    @property
    def is_refractive(self) -> bool:
        return self.refractive_index != 1.0


WATER_REFRACTIVE_INDEX = 1.33

MATERIAL_PRESETS = {
    MaterialPreset.OPAQUE: Material(color_rgba=(128, 128, 128, 255), refractive_index=1.0),
    MaterialPreset.REFRACTIVE: Material(refractive_index=WATER_REFRACTIVE_INDEX),
}
