"""One-shot builders populating the particle stores of a run.

Every builder draws from the ``random.Random`` instance it is given, so a
seeded generator reproduces the same scene. None of the returned lists share
objects with one another.
"""

from __future__ import annotations

import math
import random
from typing import List, Sequence

from .colors import hsl_to_hex
from .config import SceneConfig
from .particles import (
    KIND_ORNAMENT,
    KIND_SNOW,
    KIND_STAR,
    KIND_TIP,
    KIND_TREE,
    DriftParams,
    FireworkSpark,
    FlashParams,
    GlyphColumn,
    SparkleParams,
    SpatialParticle,
)

__all__ = [
    "GLYPH_CHARS",
    "GLYPH_COLORS",
    "GLYPH_COLOR_ALPHA",
    "ORNAMENT_COLORS",
    "SNOW_COLORS",
    "TIP_COLOR",
    "STAR_COLOR",
    "gold_color",
    "tree_height_at",
    "gen_tree",
    "gen_tip",
    "gen_ornaments",
    "gen_star",
    "gen_structural",
    "gen_snow",
    "gen_glyphs",
    "gen_explosion",
    "random_glyph",
]

GLYPH_CHARS = "01{}[]<>/\\*&^%$#@!;:python_tree_render()"
GLYPH_COLORS = ("#225522", "#336633", "#114411", "#0F380F", "#00FF00")
# Colours that carry their own opacity, multiplied into the glyph alpha.
GLYPH_COLOR_ALPHA = {"#00FF00": 0.2}
ORNAMENT_COLORS = ("#FF0000", "#FFFFFF", "#00FFFF", "#FF1493", "#FF4500")
SNOW_COLORS = ("#C0C0C0", "#E8E8E8", "#D3D3D3", "#708090")
TIP_COLOR = "#FFF8DC"
STAR_COLOR = "#FFFFFF"

# The tree base sits this far below the world origin.
_BASE_DROP = 200.0
_SPIRAL_TURNS = 20.0
_JITTER = 3.0
_TIP_SPREAD = 60.0
_TIP_RADIUS = 20.0
_STAR_LIFT = 10.0


def gold_color(rng: random.Random) -> str:
    return hsl_to_hex(40 + rng.random() * 15, 80 + rng.random() * 20, 50 + rng.random() * 30)


def tree_height_at(t: float, tree_height: float) -> float:
    """World y of the cone at parameter ``t`` (0 base, 1 apex); up is negative."""

    return -(tree_height * t - _BASE_DROP)


def gen_tree(config: SceneConfig, rng: random.Random) -> List[SpatialParticle]:
    count = max(0, config.particle_count)
    points: List[SpatialParticle] = []
    for i in range(count):
        t = i / count
        r = config.tree_radius * (1 - t)
        spiral = t * _SPIRAL_TURNS * 2.0 * math.pi
        x = r * math.cos(spiral) + (rng.random() - 0.5) * _JITTER
        z = r * math.sin(spiral) + (rng.random() - 0.5) * _JITTER
        y = tree_height_at(t, config.tree_height)
        points.append(
            SpatialParticle(
                x, y, z,
                color=gold_color(rng),
                size=1.2 + rng.random() * 1.5,
                kind=KIND_TREE,
                alpha=0.8 + rng.random() * 0.2,
                params=SparkleParams(rng.random() * 100),
            )
        )
    return points


def gen_tip(config: SceneConfig, rng: random.Random) -> List[SpatialParticle]:
    count = max(0, config.tip_count)
    half = config.tree_height / 2.0
    points: List[SpatialParticle] = []
    for i in range(count):
        h = half - rng.random() * _TIP_SPREAD
        r = rng.random() * _TIP_RADIUS * (1 - i / count)
        spiral = rng.random() * math.pi * 2 * 10
        y = -(h + half - _BASE_DROP)
        points.append(
            SpatialParticle(
                r * math.cos(spiral), y, r * math.sin(spiral),
                color=TIP_COLOR,
                size=1.0 + rng.random(),
                kind=KIND_TIP,
                alpha=0.9,
                params=SparkleParams(rng.random() * 100),
            )
        )
    return points


def gen_ornaments(config: SceneConfig, rng: random.Random) -> List[SpatialParticle]:
    points: List[SpatialParticle] = []
    for _ in range(max(0, config.ornament_count)):
        t = rng.random()
        r = config.tree_radius * (1 - t)
        spiral = rng.random() * math.pi * 2
        points.append(
            SpatialParticle(
                r * math.cos(spiral), tree_height_at(t, config.tree_height), r * math.sin(spiral),
                color=rng.choice(ORNAMENT_COLORS),
                size=3 + rng.random() * 2,
                kind=KIND_ORNAMENT,
                alpha=1.0,
                params=FlashParams(0.05 + rng.random() * 0.05, rng.random() * math.pi * 2),
            )
        )
    return points


def gen_star(config: SceneConfig) -> SpatialParticle:
    y = -(config.tree_height - _BASE_DROP + _STAR_LIFT)
    return SpatialParticle(0.0, y, 0.0, color=STAR_COLOR, size=0.0, kind=KIND_STAR, alpha=1.0)


def gen_structural(config: SceneConfig, rng: random.Random) -> List[SpatialParticle]:
    """Tree spiral, tip cluster, ornaments and the star, in draw-tie order."""

    particles = gen_tree(config, rng)
    particles.extend(gen_tip(config, rng))
    particles.extend(gen_ornaments(config, rng))
    particles.append(gen_star(config))
    return particles


def gen_snow(config: SceneConfig, width: float, height: float, rng: random.Random) -> List[SpatialParticle]:
    flakes: List[SpatialParticle] = []
    for _ in range(max(0, config.snow_count)):
        flakes.append(
            SpatialParticle(
                (rng.random() - 0.5) * width * 2.5,
                (rng.random() - 1.0) * height * 1.5,
                (rng.random() - 0.5) * 1000,
                color=rng.choice(SNOW_COLORS),
                size=1.5 + rng.random() * 3,
                kind=KIND_SNOW,
                alpha=0.4 + rng.random() * 0.6,
                params=DriftParams(
                    speed=0.5 + rng.random() * 2,
                    drift=0.2 + rng.random() * 0.5,
                    offset=rng.random() * math.pi * 2,
                    rotation_speed=(rng.random() - 0.5) * 0.02,
                ),
            )
        )
    return flakes


def random_glyph(rng: random.Random, chars: Sequence[str] = GLYPH_CHARS) -> str:
    return chars[rng.randrange(len(chars))]


def gen_glyphs(config: SceneConfig, width: float, height: float, rng: random.Random) -> List[GlyphColumn]:
    glyphs: List[GlyphColumn] = []
    for _ in range(max(0, config.glyph_count)):
        x = rng.random() * width
        y = rng.random() * height
        char = random_glyph(rng)
        speed = 1 + rng.random() * 2
        alpha = 0.1 + rng.random() * 0.2
        color = rng.choice(GLYPH_COLORS)
        alpha *= GLYPH_COLOR_ALPHA.get(color, 1.0)
        glyphs.append(GlyphColumn(x, y, char, speed, alpha, color, font_size=10 + rng.random() * 14))
    return glyphs


def gen_explosion(
    origin: Sequence[float],
    count: int,
    color: str,
    rng: random.Random,
) -> List[FireworkSpark]:
    """Emit ``count`` sparks in random directions from ``origin``."""

    ex, ey, ez = origin
    sparks: List[FireworkSpark] = []
    for _ in range(max(0, count)):
        speed = 3 + rng.random() * 5
        theta = rng.random() * math.pi * 2
        phi = rng.random() * math.pi
        sparks.append(
            FireworkSpark(
                ex, ey, ez,
                vx=speed * math.sin(phi) * math.cos(theta),
                vy=speed * math.cos(phi),
                vz=speed * math.sin(phi) * math.sin(theta),
                color=color,
                size=2 + rng.random() * 2,
            )
        )
    return sparks
