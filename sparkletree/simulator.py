"""Per-frame simulation of the rising tree scene.

The whole mutable state of a run lives in :class:`SimulationState`.
:func:`step` advances that state by one frame and returns a :class:`Frame`,
an ordered list of :class:`RenderItem` records the view paints back to front.
Nothing in this module touches Qt, so the simulation can be stepped with
explicit timestamps in tests or in the headless exporter.

:class:`TreeEngine` wraps a state with a wall clock and the restart logic the
view widget needs.
"""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple

from .config import SceneConfig
from .diagnostics import debug
from .generators import gen_explosion, gen_glyphs, gen_snow, gen_structural, random_glyph
from .particles import (
    KIND_ORNAMENT,
    KIND_STAR,
    FireworkSpark,
    GlyphColumn,
    SpatialParticle,
)
from .projection import (
    Projection,
    is_visible,
    project,
    project_flat,
    rise_offset_y,
    screen_origin,
)
from .timeline import RISING, AnimationClock, EventQueue

__all__ = [
    "ROLE_GLYPH",
    "ROLE_DISC",
    "ROLE_STAR",
    "ROLE_SNOW",
    "ROLE_SPARK",
    "GRAVITY",
    "DRAG",
    "LIFE_DECAY",
    "Burst",
    "REVEAL_BURSTS",
    "RenderItem",
    "Frame",
    "SimulationState",
    "create_state",
    "step",
    "teardown",
    "advance_glyphs",
    "advance_snow",
    "advance_sparks",
    "project_structural",
    "style_structural",
    "star_rays",
    "TreeEngine",
]

ROLE_GLYPH = "glyph"
ROLE_DISC = "disc"
ROLE_STAR = "star"
ROLE_SNOW = "snow"
ROLE_SPARK = "spark"

GRAVITY = 0.05
DRAG = 0.96
LIFE_DECAY = 0.015
SPIN_BOOST = 0.05

GLYPH_RESPAWN_Y = -20.0
SPARK_GLOW = 15.0
SPARK_GLOW_CHANCE = 0.3

TWINKLE_RATE = 0.008
TWINKLE_FLASH = 0.92
TWINKLE_WARM = 0.7
WARM_TINT = "#FFFACD"
NEAR_SCALE = 1.5
STRIKE_ALPHA = 0.3


@dataclass(frozen=True)
class Burst:
    """An explosion scheduled after the reveal."""

    delay_ms: float
    origin: Tuple[float, float, float]
    count: int
    color: str


REVEAL_BURSTS: Tuple[Burst, ...] = (
    Burst(0.0, (0.0, -500.0, 0.0), 120, "#FFD700"),
    Burst(250.0, (-150.0, -400.0, 50.0), 100, "#FFA500"),
    Burst(500.0, (150.0, -400.0, -50.0), 100, "#FFC0CB"),
)


@dataclass
class RenderItem:
    """Structure describing one draw call on screen."""

    sx: float
    sy: float
    r: float
    color: str
    alpha: float
    role: str = ROLE_DISC
    depth: float = 0.0
    glow: float = 0.0
    glow_color: Optional[str] = None
    rotation: float = 0.0
    line_width: float = 1.0
    text: str = ""
    scale: float = 1.0
    time_ms: float = 0.0


@dataclass
class Frame:
    background: str
    width: int
    height: int
    items: List[RenderItem] = field(default_factory=list)
    progress: float = 0.0
    eased: float = 0.0
    angle: float = 0.0
    phase: str = RISING

    def by_role(self, role: str) -> List[RenderItem]:
        return [item for item in self.items if item.role == role]


@dataclass
class SimulationState:
    config: SceneConfig
    width: int
    height: int
    rng: random.Random
    clock: AnimationClock
    particles: List[SpatialParticle]
    snow: List[SpatialParticle]
    glyphs: List[GlyphColumn]
    sparks: List[FireworkSpark] = field(default_factory=list)
    events: EventQueue = field(default_factory=EventQueue)
    on_complete: Optional[Callable[[], None]] = None
    angle: float = 0.0
    frame_index: int = 0
    completions: int = 0
    closed: bool = False


def create_state(
    width: int,
    height: int,
    config: Optional[SceneConfig] = None,
    *,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
    on_complete: Optional[Callable[[], None]] = None,
    start_ms: float = 0.0,
) -> SimulationState:
    """Build fresh particle stores and a fresh clock for one run."""

    config = config or SceneConfig()
    rng = rng if rng is not None else random.Random(seed)
    width = max(1, int(width))
    height = max(1, int(height))
    state = SimulationState(
        config=config,
        width=width,
        height=height,
        rng=rng,
        clock=AnimationClock(config.rise_duration, start_ms),
        particles=gen_structural(config, rng),
        snow=gen_snow(config, width, height, rng),
        glyphs=gen_glyphs(config, width, height, rng),
        on_complete=on_complete,
    )
    debug(
        "state created %dx%d: %d structural, %d snow, %d glyphs (seed=%s)"
        % (width, height, len(state.particles), len(state.snow), len(state.glyphs), seed)
    )
    return state


def teardown(state: SimulationState) -> None:
    """Drop pending events; later steps draw nothing and fire nothing."""

    if state.closed:
        return
    dropped = len(state.events)
    state.events.clear()
    state.closed = True
    debug("state torn down after %d frames (%d pending events dropped)" % (state.frame_index, dropped))


# ---------------------------------------------------------------------------
# Reveal sequence


def _fire_burst(state: SimulationState, burst: Burst) -> None:
    state.sparks.extend(gen_explosion(burst.origin, burst.count, burst.color, state.rng))
    debug("explosion at %s: %d sparks %s" % (burst.origin, burst.count, burst.color))


def _notify_complete(state: SimulationState) -> None:
    state.completions += 1
    if state.on_complete is not None:
        state.on_complete()


def _schedule_reveal(state: SimulationState, now_ms: float) -> None:
    for burst in REVEAL_BURSTS:
        state.events.schedule(now_ms + burst.delay_ms, "explosion", partial(_fire_burst, state), burst)
    state.events.schedule(now_ms, "complete", partial(_notify_complete, state))
    debug("tree revealed at %.0f ms" % state.clock.elapsed(now_ms))


def _run_due_events(state: SimulationState, now_ms: float) -> None:
    for event in state.events.pop_due(now_ms):
        event.fire()


# ---------------------------------------------------------------------------
# Populations


def advance_glyphs(glyphs: Sequence[GlyphColumn], width: float, height: float, rng: random.Random) -> None:
    for glyph in glyphs:
        glyph.y += glyph.speed
        if glyph.y > height:
            glyph.y = GLYPH_RESPAWN_Y
            glyph.x = rng.random() * width
            glyph.char = random_glyph(rng)


def _glyph_items(glyphs: Sequence[GlyphColumn]) -> List[RenderItem]:
    return [
        RenderItem(g.x, g.y, g.font_size, g.color, g.alpha, role=ROLE_GLYPH, text=g.char)
        for g in glyphs
    ]


def snow_reset_limit(height: float) -> float:
    return min(height, height / 1.5 + 500.0)


def advance_snow(
    flakes: Sequence[SpatialParticle],
    width: float,
    height: float,
    now_ms: float,
    rng: random.Random,
) -> None:
    limit = snow_reset_limit(height)
    for flake in flakes:
        drift = flake.drift
        flake.y += drift.speed
        flake.x += math.sin(now_ms * 0.001 + drift.offset) * drift.drift
        if flake.y > limit:
            flake.y = -height
            flake.x = (rng.random() - 0.5) * width * 2.5


def _snow_items(
    flakes: Sequence[SpatialParticle],
    cx: float,
    cy: float,
    elapsed_ms: float,
    perspective: float,
) -> List[RenderItem]:
    items: List[RenderItem] = []
    for flake in flakes:
        proj = project_flat(flake.x, flake.y, flake.z, cx, cy, perspective)
        if not is_visible(proj.scale):
            continue
        drift = flake.drift
        items.append(
            RenderItem(
                proj.sx,
                proj.sy,
                flake.size * proj.scale,
                flake.color,
                flake.alpha,
                role=ROLE_SNOW,
                depth=flake.z,
                rotation=drift.offset + elapsed_ms * drift.rotation_speed,
                line_width=proj.scale,
                scale=proj.scale,
            )
        )
    return items


def advance_sparks(sparks: Sequence[FireworkSpark]) -> List[FireworkSpark]:
    """Integrate one frame of spark physics and return the survivors."""

    for spark in sparks:
        spark.x += spark.vx
        spark.y += spark.vy
        spark.z += spark.vz
        spark.vy += GRAVITY
        spark.vx *= DRAG
        spark.vz *= DRAG
        spark.life -= LIFE_DECAY
        spark.alpha = max(0.0, spark.life)
    return [spark for spark in sparks if spark.life > 0]


def _spark_items(state: SimulationState, cx: float, cy: float) -> List[RenderItem]:
    cfg = state.config
    items: List[RenderItem] = []
    for spark in state.sparks:
        proj = project(spark.x, spark.y, spark.z, state.angle, cx, cy, cfg.perspective, cfg.depth_bias)
        if not is_visible(proj.scale):
            continue
        glow = SPARK_GLOW if state.rng.random() > 1.0 - SPARK_GLOW_CHANCE else 0.0
        items.append(
            RenderItem(
                proj.sx,
                proj.sy,
                spark.size * proj.scale,
                spark.color,
                spark.alpha,
                role=ROLE_SPARK,
                depth=proj.depth,
                glow=glow,
                glow_color=spark.color if glow else None,
                scale=proj.scale,
            )
        )
    return items


# ---------------------------------------------------------------------------
# Tree, tip, ornaments and star


def project_structural(
    particles: Sequence[SpatialParticle],
    angle: float,
    eased: float,
    cx: float,
    cy: float,
    config: SceneConfig,
) -> List[Tuple[SpatialParticle, Projection]]:
    """Project with the rise offset applied, farthest first.

    ``sorted`` is stable, so particles at equal depth keep generation order.
    """

    projected = []
    for particle in particles:
        home = particle.home_y if particle.home_y is not None else particle.y
        current_y = rise_offset_y(home, eased, config.rise_distance)
        particle.y = current_y
        projected.append(
            (particle, project(particle.x, current_y, particle.z, angle, cx, cy, config.perspective, config.depth_bias))
        )
    return sorted(projected, key=lambda pair: pair[1].depth, reverse=True)


def twinkle_signal(now_ms: float, sparkle_offset: float) -> float:
    return math.sin(now_ms * TWINKLE_RATE + sparkle_offset)


def flash_signal(now_ms: float, rate: float, offset: float) -> float:
    return abs(math.sin(now_ms * rate + offset))


def style_structural(
    particle: SpatialParticle,
    proj: Projection,
    eased: float,
    now_ms: float,
    config: SceneConfig,
) -> Optional[RenderItem]:
    """Return the draw call for one projected particle, or None to skip it."""

    if not is_visible(proj.scale):
        return None

    if particle.kind == KIND_STAR:
        if eased <= config.star_threshold:
            return None
        return RenderItem(
            proj.sx, proj.sy, 0.0, particle.color, 1.0,
            role=ROLE_STAR, depth=proj.depth, scale=proj.scale, time_ms=now_ms,
        )

    alpha = particle.alpha * eased
    color = particle.color
    glow = 0.0
    glow_color: Optional[str] = None

    if particle.kind == KIND_ORNAMENT:
        flash = particle.flash
        signal = flash_signal(now_ms, flash.rate, flash.offset)
        if eased > config.strobe_threshold:
            alpha = 1.0 if signal > 0.5 else STRIKE_ALPHA
            if alpha == 1.0:
                glow = 10.0 * signal
                glow_color = color
    else:
        twinkle = twinkle_signal(now_ms, particle.sparkle.sparkle_offset)
        if twinkle > TWINKLE_FLASH:
            color = "#FFFFFF"
            glow = 8.0 * proj.scale
            glow_color = "#FFFFFF"
        elif twinkle > TWINKLE_WARM:
            color = WARM_TINT
            glow = 2.0
            glow_color = particle.color
        if proj.scale > NEAR_SCALE:
            glow = 4.0
            glow_color = particle.color

    return RenderItem(
        proj.sx,
        proj.sy,
        particle.size * proj.scale,
        color,
        alpha,
        role=ROLE_DISC,
        depth=proj.depth,
        glow=glow,
        glow_color=glow_color,
        scale=proj.scale,
    )


def star_rays(time_ms: float, scale: float, count: int = 16) -> List[Tuple[float, float, float]]:
    """Return ``(angle, length, width)`` of every ray of the star burst.

    The whole fan spins slowly with time; each ray flickers on its own phase.
    """

    base = time_ms * 0.0005
    step_angle = 2.0 * math.pi / count
    rays = []
    for i in range(count):
        flicker = math.sin(time_ms * 0.01 + i * 10) * 0.2 + 1
        length = (90 + math.sin(time_ms * 0.005 + i) * 30) * scale * flicker
        width = (1.5 + math.cos(time_ms * 0.005 + i)) * scale
        rays.append((base + (i + 1) * step_angle, length, width))
    return rays


# ---------------------------------------------------------------------------
# Frame step


def step(state: SimulationState, now_ms: float) -> Frame:
    """Advance ``state`` to ``now_ms`` and return the frame to paint."""

    cfg = state.config
    frame = Frame(cfg.background, state.width, state.height)
    if state.closed:
        return frame

    advance_glyphs(state.glyphs, state.width, state.height, state.rng)
    frame.items.extend(_glyph_items(state.glyphs))

    clock = state.clock
    if clock.poll_reveal(now_ms):
        _schedule_reveal(state, now_ms)
    _run_due_events(state, now_ms)

    eased = clock.eased(now_ms)
    state.angle += cfg.rotation_speed + (1.0 - eased) * SPIN_BOOST
    cx, cy = screen_origin(state.width, state.height)

    for particle, proj in project_structural(state.particles, state.angle, eased, cx, cy, cfg):
        item = style_structural(particle, proj, eased, now_ms, cfg)
        if item is not None:
            frame.items.append(item)

    advance_snow(state.snow, state.width, state.height, now_ms, state.rng)
    frame.items.extend(_snow_items(state.snow, cx, cy, clock.elapsed(now_ms), cfg.perspective))

    state.sparks = advance_sparks(state.sparks)
    frame.items.extend(_spark_items(state, cx, cy))

    state.frame_index += 1
    frame.progress = clock.progress(now_ms)
    frame.eased = eased
    frame.angle = state.angle
    frame.phase = clock.phase()
    return frame


class TreeEngine:
    """Owns the running simulation state and its wall clock."""

    def __init__(
        self,
        width: int,
        height: int,
        config: Optional[SceneConfig] = None,
        *,
        seed: Optional[int] = None,
        on_complete: Optional[Callable[[], None]] = None,
        time_source: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.config = config or SceneConfig()
        self.seed = seed
        self.on_complete = on_complete
        self._time_source = time_source
        self._start_time = time_source()
        self.generation = 0
        self.state = self._build_state(width, height)

    @property
    def now_ms(self) -> float:
        return (self._time_source() - self._start_time) * 1000.0

    @property
    def size(self) -> Tuple[int, int]:
        return self.state.width, self.state.height

    def _build_state(self, width: int, height: int) -> SimulationState:
        # Each generation gets its own seed so replays differ yet stay reproducible.
        seed = None if self.seed is None else self.seed + self.generation
        return create_state(
            width,
            height,
            self.config,
            seed=seed,
            on_complete=self.on_complete,
            start_ms=self.now_ms,
        )

    def restart(self, width: Optional[int] = None, height: Optional[int] = None) -> None:
        """Discard the current run and start a new one from a fresh clock."""

        w, h = self.size
        teardown(self.state)
        self.generation += 1
        self.state = self._build_state(width if width is not None else w, height if height is not None else h)
        debug("restart -> generation %d" % self.generation)

    def step(self) -> Frame:
        return step(self.state, self.now_ms)

    def shutdown(self) -> None:
        teardown(self.state)
