"""Plain data records for the animated populations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

__all__ = [
    "KIND_TREE",
    "KIND_TIP",
    "KIND_STAR",
    "KIND_ORNAMENT",
    "KIND_SNOW",
    "SparkleParams",
    "FlashParams",
    "DriftParams",
    "SpatialParticle",
    "FireworkSpark",
    "GlyphColumn",
]

KIND_TREE = "tree"
KIND_TIP = "tip"
KIND_STAR = "star"
KIND_ORNAMENT = "ornament"
KIND_SNOW = "snow"


@dataclass(frozen=True)
class SparkleParams:
    """Phase of the twinkle signal for tree and tip particles."""

    sparkle_offset: float


@dataclass(frozen=True)
class FlashParams:
    """Strobe rate (radians per ms) and phase of an ornament."""

    rate: float
    offset: float


@dataclass(frozen=True)
class DriftParams:
    """Fall speed, sideways drift and spin of a snowflake."""

    speed: float
    drift: float
    offset: float
    rotation_speed: float


KindParams = Union[SparkleParams, FlashParams, DriftParams, None]

_PARAMS_BY_KIND = {
    KIND_TREE: SparkleParams,
    KIND_TIP: SparkleParams,
    KIND_ORNAMENT: FlashParams,
    KIND_SNOW: DriftParams,
    KIND_STAR: type(None),
}


@dataclass
class SpatialParticle:
    """A point of the tree, its ornaments, the star or the snow."""

    x: float
    y: float
    z: float
    color: str
    size: float
    kind: str
    alpha: float
    params: KindParams = None
    home_y: Optional[float] = None

    def __post_init__(self) -> None:
        expected = _PARAMS_BY_KIND.get(self.kind)
        if expected is None:
            raise ValueError(f"unknown particle kind {self.kind!r}")
        if not isinstance(self.params, expected):
            raise ValueError(
                f"{self.kind} particle expects {expected.__name__} params, got {type(self.params).__name__}"
            )
        if self.home_y is None and self.kind != KIND_SNOW:
            self.home_y = self.y

    def _params_as(self, expected: type):
        if not isinstance(self.params, expected):
            raise TypeError(f"{self.kind} particle has no {expected.__name__}")
        return self.params

    @property
    def sparkle(self) -> SparkleParams:
        return self._params_as(SparkleParams)

    @property
    def flash(self) -> FlashParams:
        return self._params_as(FlashParams)

    @property
    def drift(self) -> DriftParams:
        return self._params_as(DriftParams)


@dataclass
class FireworkSpark:
    x: float
    y: float
    z: float
    vx: float
    vy: float
    vz: float
    color: str
    size: float
    life: float = 1.0
    max_life: float = 1.0
    alpha: float = 1.0

    @property
    def alive(self) -> bool:
        return self.life > 0


@dataclass
class GlyphColumn:
    """One falling character of the background rain."""

    x: float
    y: float
    char: str
    speed: float
    alpha: float
    color: str
    font_size: float
