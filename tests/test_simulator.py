import math
import random

import pytest

from sparkletree.config import SceneConfig
from sparkletree.generators import GLYPH_CHARS
from sparkletree.particles import (
    KIND_ORNAMENT,
    KIND_TREE,
    DriftParams,
    FireworkSpark,
    FlashParams,
    GlyphColumn,
    SparkleParams,
    SpatialParticle,
)
from sparkletree.projection import Projection
from sparkletree.simulator import (
    LIFE_DECAY,
    ROLE_GLYPH,
    ROLE_SNOW,
    ROLE_SPARK,
    ROLE_STAR,
    Frame,
    SPARK_GLOW,
    TreeEngine,
    advance_glyphs,
    advance_snow,
    advance_sparks,
    create_state,
    project_structural,
    star_rays,
    step,
    style_structural,
    teardown,
)
from sparkletree.timeline import RISING


@pytest.fixture
def run(small_config):
    completed = []
    state = create_state(1920, 1080, small_config, seed=11, on_complete=lambda: completed.append(True))
    return state, completed


def _spark(**kwargs):
    values = dict(x=0.0, y=0.0, z=0.0, vx=1.0, vy=-2.0, vz=0.5, color="#FFD700", size=2.0)
    values.update(kwargs)
    return FireworkSpark(**values)


def test_rise_scenario_progress_values(run):
    state, completed = run
    frame = step(state, 2500.0)
    assert frame.progress == pytest.approx(0.5)
    assert frame.eased == pytest.approx(0.875)
    assert completed == []

    frame = step(state, 5000.0)
    assert frame.progress == 1.0
    assert frame.eased == 1.0
    assert frame.phase == "revealed"
    assert completed == [True]


def test_completion_fires_exactly_once(run):
    state, completed = run
    for t in range(0, 12000, 16):
        step(state, float(t))
    assert completed == [True]
    assert state.completions == 1


def test_reveal_explosions_are_staggered(run):
    state, _ = run
    step(state, 4990.0)
    assert state.sparks == []
    step(state, 5000.0)
    assert len(state.sparks) == 120
    step(state, 5100.0)
    assert len(state.sparks) == 120
    step(state, 5250.0)
    assert len(state.sparks) == 220
    step(state, 5500.0)
    assert len(state.sparks) == 320
    assert len(state.events) == 0


def test_teardown_drops_pending_explosions(run):
    state, completed = run
    step(state, 5000.0)
    assert len(state.events) == 2
    teardown(state)
    frame = step(state, 6000.0)
    assert frame.items == []
    assert len(state.sparks) == 120
    assert completed == [True]


def test_teardown_before_reveal_never_completes(run):
    state, completed = run
    step(state, 100.0)
    teardown(state)
    step(state, 10000.0)
    assert completed == []


def test_structural_particles_start_below_home(run):
    state, _ = run
    step(state, 0.0)
    tree = [p for p in state.particles if p.kind == KIND_TREE]
    assert all(p.y == pytest.approx(p.home_y + 1500.0) for p in tree)


def test_structural_particles_land_home(run):
    state, _ = run
    step(state, 5000.0)
    assert all(p.y == p.home_y for p in state.particles)


def test_rise_scenario_single_particle():
    particle = SpatialParticle(0.0, -400.0, 0.0, "#FFD700", 1.0, KIND_TREE, 1.0, params=SparkleParams(0.0))
    project_structural([particle], 0.0, 0.0, 0.0, 0.0, SceneConfig())
    assert particle.y == 1100.0


def test_rotation_is_faster_while_rising(run):
    state, _ = run
    step(state, 0.0)
    assert state.angle == pytest.approx(0.015 + 0.05)
    step(state, 6000.0)
    before = state.angle
    step(state, 6016.0)
    assert state.angle - before == pytest.approx(0.015)


def test_depth_sort_descending(run):
    state, _ = run
    pairs = project_structural(state.particles, 0.7, 0.5, 960.0, 590.0, state.config)
    depths = [proj.depth for _, proj in pairs]
    assert depths == sorted(depths, reverse=True)


def test_depth_sort_is_stable_under_ties():
    particles = [
        SpatialParticle(10.0, -100.0, 5.0, color, 1.0, KIND_TREE, 1.0, params=SparkleParams(0.0))
        for color in ("#000001", "#000002", "#000003")
    ]
    pairs = project_structural(particles, 0.3, 1.0, 0.0, 0.0, SceneConfig())
    assert [p.color for p, _ in pairs] == ["#000001", "#000002", "#000003"]


def test_frame_layers_back_to_front(run):
    state, _ = run
    step(state, 5000.0)
    frame = step(state, 5016.0)
    roles = [item.role for item in frame.items]
    first_snow = roles.index(ROLE_SNOW)
    assert set(roles[: len(state.glyphs)]) == {ROLE_GLYPH}
    assert ROLE_STAR in roles[:first_snow]
    assert all(role == ROLE_SPARK for role in roles[roles.index(ROLE_SPARK):])


def test_star_hidden_until_mostly_risen(run):
    state, _ = run
    frame = step(state, 1000.0)
    assert frame.by_role(ROLE_STAR) == []
    frame = step(state, 4000.0)
    assert len(frame.by_role(ROLE_STAR)) == 1


def test_spark_life_decreases_each_frame():
    sparks = [_spark()]
    previous = 1.0
    for _ in range(10):
        sparks = advance_sparks(sparks)
        assert sparks[0].life == pytest.approx(previous - LIFE_DECAY)
        assert sparks[0].alpha == sparks[0].life
        previous = sparks[0].life


def test_spark_expires_after_67_frames():
    assert math.ceil(1 / LIFE_DECAY) == 67
    sparks = [_spark()]
    for _ in range(66):
        sparks = advance_sparks(sparks)
    assert len(sparks) == 1 and sparks[0].life > 0
    spark = sparks[0]
    sparks = advance_sparks(sparks)
    assert sparks == []
    assert spark.life <= 0
    assert spark.alpha == 0.0


def test_spark_physics():
    spark = _spark(vx=2.0, vy=-1.0, vz=-3.0)
    advance_sparks([spark])
    assert (spark.x, spark.y, spark.z) == (2.0, -1.0, -3.0)
    assert spark.vy == pytest.approx(-0.95)
    assert spark.vx == pytest.approx(1.92)
    assert spark.vz == pytest.approx(-2.88)


def test_glyph_recycles_at_bottom():
    rng = random.Random(0)
    glyph = GlyphColumn(x=10.0, y=479.0, char="0", speed=2.0, alpha=0.2, color="#225522", font_size=12.0)
    advance_glyphs([glyph], 640, 480, rng)
    assert glyph.y == -20.0
    assert 0.0 <= glyph.x <= 640.0
    assert glyph.char in GLYPH_CHARS
    assert glyph.alpha == 0.2


def test_glyph_keeps_falling_inside_screen():
    glyph = GlyphColumn(x=10.0, y=100.0, char="0", speed=2.0, alpha=0.2, color="#225522", font_size=12.0)
    advance_glyphs([glyph], 640, 480, random.Random(0))
    assert (glyph.x, glyph.y, glyph.char) == (10.0, 102.0, "0")


def test_snow_recycles_above_top():
    flake = SpatialParticle(
        0.0, 599.5, 0.0, "#C0C0C0", 2.0, "snow", 1.0,
        params=DriftParams(speed=1.0, drift=0.0, offset=0.0, rotation_speed=0.01),
    )
    advance_snow([flake], 800, 600, 0.0, random.Random(1))
    assert flake.y == -600.0
    assert -1000.0 <= flake.x <= 1000.0


def test_snow_drifts_sideways():
    flake = SpatialParticle(
        0.0, 0.0, 0.0, "#C0C0C0", 2.0, "snow", 1.0,
        params=DriftParams(speed=1.0, drift=0.5, offset=math.pi / 2, rotation_speed=0.0),
    )
    advance_snow([flake], 800, 600, 0.0, random.Random(1))
    assert flake.y == 1.0
    assert flake.x == pytest.approx(0.5)


def test_snow_never_lingers_off_screen(run):
    state, _ = run
    for t in range(0, 4000, 16):
        step(state, float(t))
        assert all(f.y <= state.height for f in state.snow)


def test_glyphs_stay_inside_their_lane(run):
    state, _ = run
    for t in range(0, 3000, 16):
        step(state, float(t))
        for g in state.glyphs:
            assert -20.0 <= g.y <= state.height
            assert 0.0 <= g.x <= state.width


def test_some_sparks_get_an_extra_glow(run):
    state, _ = run
    step(state, 5000.0)
    frame = step(state, 5016.0)
    glows = [item.glow for item in frame.by_role(ROLE_SPARK)]
    assert len(glows) == 120
    assert set(glows) == {0.0, SPARK_GLOW}
    assert 0 < glows.count(SPARK_GLOW) < len(glows)
    for item in frame.by_role(ROLE_SPARK):
        assert (item.glow_color is None) == (item.glow == 0.0)


def _tree_particle(offset):
    return SpatialParticle(0.0, 0.0, 0.0, "#DDAA33", 2.0, KIND_TREE, 0.9, params=SparkleParams(offset))


def test_twinkle_flash_tier():
    item = style_structural(_tree_particle(math.pi / 2), Projection(0, 0, 1.0, 0), 1.0, 0.0, SceneConfig())
    assert item.color == "#FFFFFF"
    assert item.glow == pytest.approx(8.0)


def test_twinkle_warm_tier():
    item = style_structural(_tree_particle(math.asin(0.8)), Projection(0, 0, 1.0, 0), 1.0, 0.0, SceneConfig())
    assert item.color == "#FFFACD"
    assert item.glow == 2.0
    assert item.glow_color == "#DDAA33"


def test_twinkle_base_tier_and_near_glow():
    config = SceneConfig()
    item = style_structural(_tree_particle(0.0), Projection(0, 0, 1.0, 0), 0.5, 0.0, config)
    assert item.color == "#DDAA33"
    assert item.glow == 0.0
    assert item.alpha == pytest.approx(0.45)

    near = style_structural(_tree_particle(0.0), Projection(0, 0, 2.0, 0), 1.0, 0.0, config)
    assert near.glow == 4.0
    assert near.r == 4.0


def _ornament(offset):
    return SpatialParticle(0.0, 0.0, 0.0, "#FF0000", 4.0, KIND_ORNAMENT, 1.0, params=FlashParams(0.07, offset))


def test_ornament_strobes_after_half_rise():
    config = SceneConfig()
    on = style_structural(_ornament(math.pi / 2), Projection(0, 0, 1.0, 0), 0.9, 0.0, config)
    off = style_structural(_ornament(0.0), Projection(0, 0, 1.0, 0), 0.9, 0.0, config)
    assert on.alpha == 1.0 and on.glow == pytest.approx(10.0)
    assert off.alpha == 0.3 and off.glow == 0.0


def test_ornament_fades_in_before_half_rise():
    item = style_structural(_ornament(math.pi / 2), Projection(0, 0, 1.0, 0), 0.4, 0.0, SceneConfig())
    assert item.alpha == pytest.approx(0.4)
    assert item.glow == 0.0


def test_negative_scale_is_skipped():
    assert style_structural(_tree_particle(0.0), Projection(0, 0, -1.0, 0), 1.0, 0.0, SceneConfig()) is None


def test_star_rays_are_evenly_spaced():
    rays = star_rays(1234.0, 1.0)
    assert len(rays) == 16
    gaps = [b[0] - a[0] for a, b in zip(rays, rays[1:])]
    assert all(g == pytest.approx(2 * math.pi / 16) for g in gaps)
    assert all(length > 0 and width > 0 for _, length, width in rays)


def test_star_rays_scale_with_projection():
    small = star_rays(500.0, 0.5)
    large = star_rays(500.0, 1.0)
    for (_, l1, w1), (_, l2, w2) in zip(small, large):
        assert l2 == pytest.approx(2 * l1)
        assert w2 == pytest.approx(2 * w1)


class _FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_engine_restart_resets_clock_and_stores(small_config):
    clock = _FakeClock()
    completed = []
    engine = TreeEngine(800, 600, small_config, seed=5, on_complete=lambda: completed.append(engine.generation),
                        time_source=clock)
    clock.now = 6.0
    engine.step()
    assert completed == [0]
    old_state = engine.state

    engine.restart(1024, 768)
    assert engine.generation == 1
    assert engine.size == (1024, 768)
    assert engine.state is not old_state
    assert old_state.closed
    frame = engine.step()
    assert frame.progress == 0.0

    clock.now = 12.0
    engine.step()
    assert completed == [0, 1]


def test_engine_seed_is_reproducible(small_config):
    a = TreeEngine(800, 600, small_config, seed=3, time_source=_FakeClock())
    b = TreeEngine(800, 600, small_config, seed=3, time_source=_FakeClock())
    assert [p.color for p in a.state.particles] == [p.color for p in b.state.particles]
    assert [f.x for f in a.state.snow] == [f.x for f in b.state.snow]


def test_empty_frame_starts_in_rising_phase():
    frame = Frame("#020205", 10, 10)
    assert frame.phase == RISING
    assert frame.items == []
