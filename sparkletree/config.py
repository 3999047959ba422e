
from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

DEFAULTS = dict(
    scene=dict(
        treeHeight=600.0, treeRadius=220.0,
        particleCount=5000, tipCount=200, ornamentCount=250,
        snowCount=1500, glyphCount=150,
        perspective=800.0, depthBias=400.0,
        rotationSpeed=0.015, riseDuration=5000.0, riseDistance=1500.0,
    ),
    appearance=dict(
        background="#020205",
        starThreshold=0.8, strobeThreshold=0.5,
    ),
    system=dict(frameIntervalMs=16),
)

# Environment switches read once by the host window.
ENV_BACKEND = "SPARKLETREE_FORCE_BACKEND"
ENV_SEED = "SPARKLETREE_SEED"
ENV_DEBUG = "SPARKLETREE_DEBUG"


def _coerce_float(value: object, default: float) -> float:
    if value is None:
        return default
    try:
        number = float(value) if isinstance(value, (int, float)) else float(str(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def _coerce_count(value: object, default: int) -> int:
    return max(0, int(_coerce_float(value, float(default))))


@dataclass(frozen=True)
class SceneConfig:
    """Constants shaping one run of the animation."""

    tree_height: float = DEFAULTS["scene"]["treeHeight"]
    tree_radius: float = DEFAULTS["scene"]["treeRadius"]
    particle_count: int = DEFAULTS["scene"]["particleCount"]
    tip_count: int = DEFAULTS["scene"]["tipCount"]
    ornament_count: int = DEFAULTS["scene"]["ornamentCount"]
    snow_count: int = DEFAULTS["scene"]["snowCount"]
    glyph_count: int = DEFAULTS["scene"]["glyphCount"]
    perspective: float = DEFAULTS["scene"]["perspective"]
    depth_bias: float = DEFAULTS["scene"]["depthBias"]
    rotation_speed: float = DEFAULTS["scene"]["rotationSpeed"]
    rise_duration: float = DEFAULTS["scene"]["riseDuration"]
    rise_distance: float = DEFAULTS["scene"]["riseDistance"]
    background: str = DEFAULTS["appearance"]["background"]
    star_threshold: float = DEFAULTS["appearance"]["starThreshold"]
    strobe_threshold: float = DEFAULTS["appearance"]["strobeThreshold"]

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, object]] = None) -> "SceneConfig":
        """Build a config from camelCase ``DEFAULTS`` style keys.

        Unknown keys are ignored and unparsable numbers fall back to the
        default. Counts are clamped to zero.
        """

        scene = dict(DEFAULTS["scene"])
        appearance = dict(DEFAULTS["appearance"])
        if payload:
            for key, value in payload.items():
                if key in scene:
                    scene[key] = value
                elif key in appearance:
                    appearance[key] = value
        base = cls()
        config = cls(
            tree_height=_coerce_float(scene["treeHeight"], base.tree_height),
            tree_radius=_coerce_float(scene["treeRadius"], base.tree_radius),
            particle_count=_coerce_count(scene["particleCount"], base.particle_count),
            tip_count=_coerce_count(scene["tipCount"], base.tip_count),
            ornament_count=_coerce_count(scene["ornamentCount"], base.ornament_count),
            snow_count=_coerce_count(scene["snowCount"], base.snow_count),
            glyph_count=_coerce_count(scene["glyphCount"], base.glyph_count),
            perspective=_coerce_float(scene["perspective"], base.perspective),
            depth_bias=_coerce_float(scene["depthBias"], base.depth_bias),
            rotation_speed=_coerce_float(scene["rotationSpeed"], base.rotation_speed),
            rise_duration=_coerce_float(scene["riseDuration"], base.rise_duration),
            rise_distance=_coerce_float(scene["riseDistance"], base.rise_distance),
            background=str(appearance["background"] or base.background),
            star_threshold=_coerce_float(appearance["starThreshold"], base.star_threshold),
            strobe_threshold=_coerce_float(appearance["strobeThreshold"], base.strobe_threshold),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if self.rise_duration <= 0:
            raise ValueError(f"riseDuration must be positive, got {self.rise_duration}")
        if self.perspective <= 0:
            raise ValueError(f"perspective must be positive, got {self.perspective}")

    def scaled(self, factor: float) -> "SceneConfig":
        """Return a copy with every population count multiplied by ``factor``."""

        counts = {
            f.name: max(0, int(getattr(self, f.name) * factor))
            for f in fields(self)
            if f.name.endswith("_count")
        }
        return SceneConfig(**{**{f.name: getattr(self, f.name) for f in fields(self)}, **counts})


def env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes"}


def env_seed() -> Optional[int]:
    raw = os.environ.get(ENV_SEED, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def frame_interval_ms(system: Optional[Mapping[str, object]] = None) -> int:
    cfg = system if system is not None else DEFAULTS["system"]
    raw = cfg.get("frameIntervalMs", 16)
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return 16
    if not math.isfinite(number):
        return 16
    return max(0, int(number))
