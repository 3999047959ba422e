import time
from dataclasses import replace

import pytest

from sparkletree.config import SceneConfig
from sparkletree.simulator import ROLE_STAR, Frame, create_state, step
from sparkletree.view import TreeViewWidget, render_to_image


@pytest.fixture
def quick_config():
    return SceneConfig(
        particle_count=200,
        tip_count=20,
        ornament_count=10,
        snow_count=20,
        glyph_count=10,
        rise_duration=1.0,
    )


def test_empty_frame_is_background(qapp):
    image = render_to_image(Frame("#020205", 50, 40))
    assert (image.width(), image.height()) == (50, 40)
    color = image.pixelColor(25, 20)
    assert (color.red(), color.green(), color.blue()) == (2, 2, 5)


def test_star_burst_paints_bright_core(qapp, small_config):
    config = replace(small_config, snow_count=0)
    state = create_state(640, 480, config, seed=21)
    frame = step(state, 4500.0)
    star = frame.by_role(ROLE_STAR)[0]
    image = render_to_image(frame)
    core = image.pixelColor(int(star.sx), int(star.sy))
    assert core.red() > 200 and core.green() > 180


def test_full_frame_renders_with_every_role(qapp, small_config):
    state = create_state(640, 480, small_config, seed=8)
    step(state, 5000.0)
    frame = step(state, 5016.0)
    roles = {item.role for item in frame.items}
    assert roles == {"glyph", "disc", "star", "snow", "spark"}
    image = render_to_image(frame)
    assert not image.isNull()


def test_widget_restarts_on_resize(qapp, quick_config):
    widget = TreeViewWidget(config=quick_config, seed=1, force_backend="raster")
    try:
        assert widget.backend_name == "raster"
        widget.resize(320, 240)
        widget.show()
        qapp.processEvents()
        assert widget.engine.size == (320, 240)
        generation = widget.generation
        widget.resize(400, 300)
        qapp.processEvents()
        assert widget.engine.size == (400, 300)
        assert widget.generation == generation + 1
    finally:
        widget.shutdown()
        widget.deleteLater()


def test_widget_emits_completion_once(qapp, quick_config):
    received = []
    widget = TreeViewWidget(
        config=quick_config, seed=2, force_backend="raster", on_complete=lambda: received.append(1)
    )
    try:
        widget.resize(200, 150)
        # the first paint applies the pending resize, which starts a new run
        widget.grab()
        time.sleep(0.01)
        widget.grab()
        widget.grab()
        widget.grab()
        assert received == [1]
    finally:
        widget.shutdown()
        widget.deleteLater()


def test_shutdown_stops_frame_driver(qapp, quick_config):
    widget = TreeViewWidget(config=quick_config, force_backend="raster")
    assert widget.is_running
    widget.shutdown()
    assert not widget.is_running
    assert widget.engine.state.closed
    # painting after teardown is harmless
    widget.grab()

    widget.restart()
    assert widget.is_running
    assert not widget.engine.state.closed
    widget.shutdown()
    widget.deleteLater()


def test_close_tears_down(qapp, quick_config):
    widget = TreeViewWidget(config=quick_config, force_backend="raster")
    widget.show()
    qapp.processEvents()
    widget.close()
    assert not widget.is_running
    widget.deleteLater()


def test_zero_sized_surface_stops_frame_driver(qapp, quick_config, capsys):
    widget = TreeViewWidget(config=quick_config, force_backend="raster")
    try:
        widget.resize(0, 0)
        widget.show()
        qapp.processEvents()
        widget.grab()
        assert not widget.is_running
        assert widget.engine.state.closed
        assert "non-positive surface size" in capsys.readouterr().err
    finally:
        widget.shutdown()
        widget.deleteLater()


def test_hide_pauses_and_show_replays(qapp, quick_config):
    widget = TreeViewWidget(config=quick_config, force_backend="raster")
    try:
        widget.resize(240, 180)
        widget.show()
        qapp.processEvents()
        generation = widget.generation
        assert widget.is_running

        widget.hide()
        qapp.processEvents()
        assert not widget.is_running
        assert widget.engine.state.closed
        assert len(widget.engine.state.events) == 0

        widget.show()
        qapp.processEvents()
        assert widget.is_running
        assert widget.generation == generation + 1
    finally:
        widget.shutdown()
        widget.deleteLater()
