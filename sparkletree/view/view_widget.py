"""Qt widgets painting the simulated tree scene.

The widget owns a :class:`~sparkletree.simulator.TreeEngine` and a
``QTimer`` acting as the frame driver: every tick schedules a repaint and each
paint advances the simulation by exactly one frame. Painting itself is done by
:func:`paint_frame`, which only needs a ``QPainter`` and therefore also works
on a ``QImage`` for headless exports.

Two backends are available, like the rest of the Qt tooling in this project:
an OpenGL backed ``QOpenGLWidget`` and a plain raster ``QWidget``. The
factory :func:`TreeViewWidget` picks the best one.
"""

from __future__ import annotations

import math
import os
from typing import Callable, Dict, Optional, Tuple

from PyQt5 import QtCore, QtGui, QtWidgets

from ..colors import hex_to_rgb
from ..config import ENV_BACKEND, SceneConfig, frame_interval_ms
from ..diagnostics import debug, warn
from ..simulator import (
    ROLE_DISC,
    ROLE_GLYPH,
    ROLE_SNOW,
    ROLE_SPARK,
    ROLE_STAR,
    Frame,
    RenderItem,
    TreeEngine,
    star_rays,
)

__all__ = ["TreeViewWidget", "paint_frame", "render_to_image"]


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _qcolor(value: str, alpha: float = 1.0) -> QtGui.QColor:
    r, g, b = hex_to_rgb(value)
    color = QtGui.QColor(r, g, b)
    color.setAlphaF(clamp01(alpha))
    return color


# ---------------------------------------------------------------------------
# OpenGL helpers


def _create_opengl_functions() -> Tuple[Optional[object], Optional[BaseException]]:
    """Safely instantiate ``QOpenGLFunctions`` when available.

    Returns a tuple ``(functions, error)`` where ``functions`` is the
    initialised OpenGL function table or ``None`` when the binding is not
    present.
    """

    factory = getattr(QtGui, "QOpenGLFunctions", None)
    if factory is None:
        return None, AttributeError("PyQt5.QtGui has no attribute 'QOpenGLFunctions'")
    try:
        functions = factory()
    except Exception as exc:  # pragma: no cover - depends on bindings
        return None, exc
    try:
        functions.initializeOpenGLFunctions()
    except Exception as exc:  # pragma: no cover - depends on runtime GL state
        return None, exc
    return functions, None


# ---------------------------------------------------------------------------
# Painting


_FONT_CACHE: Dict[int, QtGui.QFont] = {}


def _mono_font(pixel_size: float) -> QtGui.QFont:
    key = max(1, int(round(pixel_size)))
    font = _FONT_CACHE.get(key)
    if font is None:
        font = QtGui.QFont("monospace")
        font.setStyleHint(QtGui.QFont.Monospace)
        font.setPixelSize(key)
        _FONT_CACHE[key] = font
    return font


def _draw_halo(painter: QtGui.QPainter, item: RenderItem) -> None:
    # QPainter has no shadow blur; a radial fade around the disc stands in.
    outer = item.r + item.glow
    if outer <= 0:
        return
    color = item.glow_color or item.color
    gradient = QtGui.QRadialGradient(QtCore.QPointF(item.sx, item.sy), outer)
    gradient.setColorAt(0.0, _qcolor(color, 0.8))
    gradient.setColorAt(clamp01(item.r / outer), _qcolor(color, 0.5))
    gradient.setColorAt(1.0, _qcolor(color, 0.0))
    painter.setPen(QtCore.Qt.NoPen)
    painter.setBrush(QtGui.QBrush(gradient))
    painter.drawEllipse(QtCore.QPointF(item.sx, item.sy), outer, outer)


def _draw_disc(painter: QtGui.QPainter, item: RenderItem) -> None:
    painter.setOpacity(clamp01(item.alpha))
    if item.glow > 0:
        _draw_halo(painter, item)
    if item.r > 0:
        painter.setPen(QtCore.Qt.NoPen)
        painter.setBrush(_qcolor(item.color))
        painter.drawEllipse(QtCore.QPointF(item.sx, item.sy), item.r, item.r)
    painter.setOpacity(1.0)


def _draw_glyph(painter: QtGui.QPainter, item: RenderItem) -> None:
    painter.setOpacity(clamp01(item.alpha))
    painter.setFont(_mono_font(item.r))
    painter.setPen(_qcolor(item.color))
    painter.drawText(QtCore.QPointF(item.sx, item.sy), item.text)
    painter.setOpacity(1.0)


def _draw_snowflake(painter: QtGui.QPainter, item: RenderItem) -> None:
    painter.save()
    painter.translate(item.sx, item.sy)
    painter.rotate(math.degrees(item.rotation))
    painter.setOpacity(clamp01(item.alpha))
    pen = QtGui.QPen(_qcolor(item.color), max(0.0, item.line_width))
    pen.setCapStyle(QtCore.Qt.RoundCap)
    painter.setPen(pen)
    size = item.r
    for _ in range(3):
        painter.drawLine(QtCore.QLineF(-size, 0.0, size, 0.0))
        painter.rotate(60.0)
    painter.setPen(QtCore.Qt.NoPen)
    painter.setBrush(QtGui.QColor("#FFFFFF"))
    painter.drawEllipse(QtCore.QPointF(0.0, 0.0), size * 0.3, size * 0.3)
    painter.restore()


def _draw_star_burst(painter: QtGui.QPainter, item: RenderItem) -> None:
    scale = item.scale
    painter.save()
    painter.translate(item.sx, item.sy)

    glow = QtGui.QRadialGradient(QtCore.QPointF(0.0, 0.0), 60.0 * scale)
    glow.setColorAt(0.0, QtGui.QColor(255, 255, 255, 255))
    glow.setColorAt(0.1, QtGui.QColor(255, 255, 200, 230))
    glow.setColorAt(0.4, QtGui.QColor(255, 215, 0, 102))
    glow.setColorAt(1.0, QtGui.QColor(255, 215, 0, 0))
    painter.setPen(QtCore.Qt.NoPen)
    painter.setBrush(QtGui.QBrush(glow))
    painter.drawEllipse(QtCore.QPointF(0.0, 0.0), 70.0 * scale, 70.0 * scale)

    for angle, length, width in star_rays(item.time_ms, scale):
        if length <= 0 or width <= 0:
            continue
        painter.save()
        painter.rotate(math.degrees(angle))
        ray = QtGui.QLinearGradient(0.0, 0.0, length, 0.0)
        ray.setColorAt(0.0, QtGui.QColor(255, 255, 240, 230))
        ray.setColorAt(0.4, QtGui.QColor(255, 215, 0, 128))
        ray.setColorAt(1.0, QtGui.QColor(255, 215, 0, 0))
        painter.fillRect(QtCore.QRectF(0.0, -width / 2.0, length, width), QtGui.QBrush(ray))
        painter.restore()

    painter.restore()


_PAINTERS: Dict[str, Callable[[QtGui.QPainter, RenderItem], None]] = {
    ROLE_GLYPH: _draw_glyph,
    ROLE_DISC: _draw_disc,
    ROLE_SPARK: _draw_disc,
    ROLE_SNOW: _draw_snowflake,
    ROLE_STAR: _draw_star_burst,
}


def paint_frame(painter: QtGui.QPainter, frame: Frame) -> None:
    """Paint ``frame`` in item order, after clearing to its background."""

    painter.setRenderHint(QtGui.QPainter.Antialiasing, True)
    painter.setCompositionMode(QtGui.QPainter.CompositionMode_SourceOver)
    painter.fillRect(QtCore.QRectF(0, 0, frame.width, frame.height), _qcolor(frame.background))
    for item in frame.items:
        draw = _PAINTERS.get(item.role)
        if draw is not None:
            draw(painter, item)
    painter.setOpacity(1.0)


def render_to_image(frame: Frame) -> QtGui.QImage:
    image = QtGui.QImage(frame.width, frame.height, QtGui.QImage.Format_ARGB32_Premultiplied)
    painter = QtGui.QPainter(image)
    try:
        paint_frame(painter, frame)
    finally:
        painter.end()
    return image


# ---------------------------------------------------------------------------
# Widgets


class _ViewWidgetBase:
    """Common behaviour shared by both the OpenGL and raster backends."""

    def _init_view_widget(self, config: Optional[SceneConfig], seed: Optional[int]) -> None:
        self.setAttribute(QtCore.Qt.WA_OpaquePaintEvent, True)
        self._gl: Optional[object] = None
        self._shut_down = False
        self._paused_by_hide = False
        self.engine = TreeEngine(
            max(1, self.width()),
            max(1, self.height()),
            config,
            seed=seed,
            on_complete=self._on_engine_complete,
        )
        self._timer = QtCore.QTimer(self)
        self._frame_interval_ms = 0
        self._timer.timeout.connect(self.update)
        self._apply_frame_interval(frame_interval_ms())

    def _on_engine_complete(self) -> None:
        self.animationComplete.emit()

    def _apply_frame_interval(self, interval_ms: int) -> None:
        """Update the refresh interval used by the frame timer."""

        interval_ms = max(int(interval_ms), 0)
        if interval_ms == self._frame_interval_ms and self._timer.isActive() == (
            interval_ms > 0
        ):
            return
        self._frame_interval_ms = interval_ms
        if interval_ms <= 0:
            if self._timer.isActive():
                self._timer.stop()
            return
        if self._timer.isActive():
            self._timer.setInterval(interval_ms)
        else:
            self._timer.start(interval_ms)

    # ------------------------------------------------------------------ API
    @property
    def generation(self) -> int:
        return self.engine.generation

    @property
    def is_running(self) -> bool:
        return self._timer.isActive()

    def restart(self) -> None:
        """Replay from scratch: new stores, new clock."""

        self.engine.restart(max(1, self.width()), max(1, self.height()))
        self._shut_down = False
        self._paused_by_hide = False
        self._apply_frame_interval(self._frame_interval_ms or frame_interval_ms())
        self.update()

    def shutdown(self) -> None:
        """Stop scheduling frames and drop pending delayed events."""

        if self._shut_down:
            return
        self._shut_down = True
        self._timer.stop()
        self.engine.shutdown()
        debug("frame driver stopped at generation %d" % self.engine.generation)

    def _surface_lost(self, reason: str) -> None:
        warn(f"drawing surface unavailable ({reason}); stopping the animation.")
        self.shutdown()

    def _sync_size(self, width: int, height: int) -> None:
        if self._shut_down:
            return
        if width <= 0 or height <= 0:
            self._surface_lost(f"non-positive surface size {width}x{height}")
            return
        if (width, height) != self.engine.size:
            self.engine.restart(width, height)

    def _on_hidden(self) -> None:
        if self._shut_down:
            return
        self.shutdown()
        self._paused_by_hide = True

    def _on_shown(self) -> None:
        if self._paused_by_hide:
            self.restart()

    # ------------------------------------------------------------------ OpenGL hooks
    def _apply_clear_color(self) -> None:
        if self._gl is None:
            return
        r, g, b = hex_to_rgb(self.engine.config.background)
        self._gl.glClearColor(r / 255.0, g / 255.0, b / 255.0, 1.0)

    # ------------------------------------------------------------------ Rendering helpers
    def _render_with_painter(self, painter: QtGui.QPainter) -> None:
        if not painter.isActive():
            self._surface_lost("painter could not be activated")
            return
        if self._shut_down:
            painter.fillRect(self.rect(), _qcolor(self.engine.config.background))
            return
        frame = self.engine.step()
        paint_frame(painter, frame)


class _OpenGLViewWidget(QtWidgets.QOpenGLWidget, _ViewWidgetBase):
    """OpenGL-backed renderer when the system can create a GL context."""

    animationComplete = QtCore.pyqtSignal()

    def __init__(
        self,
        parent: Optional[QtWidgets.QWidget] = None,
        config: Optional[SceneConfig] = None,
        seed: Optional[int] = None,
    ) -> None:
        QtWidgets.QOpenGLWidget.__init__(self, parent)
        self._init_view_widget(config, seed)

    def initializeGL(self) -> None:  # pragma: no cover - requires GUI context
        self._gl, error = _create_opengl_functions()
        if error is not None:  # pragma: no cover - depends on bindings/runtime
            warn(f"OpenGL initialisation failed: {error}. Falling back to raster clear handling.")
        self._apply_clear_color()

    def resizeGL(self, width: int, height: int) -> None:  # pragma: no cover - requires GUI context
        self._sync_size(width, height)

    def paintGL(self) -> None:  # pragma: no cover - requires GUI context
        if self._gl is not None:
            try:
                # GL_COLOR_BUFFER_BIT constant
                self._gl.glClear(0x00004000)
            except Exception as exc:
                warn(f"glClear failed: {exc}")
                self._gl = None
        painter = QtGui.QPainter(self)
        try:
            self._render_with_painter(painter)
        finally:
            if painter.isActive():
                painter.end()

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:  # type: ignore[override]
        self.shutdown()
        super().closeEvent(event)

    def hideEvent(self, event: QtGui.QHideEvent) -> None:  # type: ignore[override]
        super().hideEvent(event)
        self._on_hidden()

    def showEvent(self, event: QtGui.QShowEvent) -> None:  # type: ignore[override]
        super().showEvent(event)
        self._on_shown()


class _RasterViewWidget(QtWidgets.QWidget, _ViewWidgetBase):
    """Fallback renderer using the traditional raster ``QWidget`` backend."""

    animationComplete = QtCore.pyqtSignal()

    def __init__(
        self,
        parent: Optional[QtWidgets.QWidget] = None,
        config: Optional[SceneConfig] = None,
        seed: Optional[int] = None,
    ) -> None:
        QtWidgets.QWidget.__init__(self, parent)
        self._init_view_widget(config, seed)

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:  # type: ignore[override]
        del event
        painter = QtGui.QPainter(self)
        try:
            self._render_with_painter(painter)
        finally:
            if painter.isActive():
                painter.end()

    def resizeEvent(self, event: QtGui.QResizeEvent) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self._sync_size(event.size().width(), event.size().height())
        self.update()

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:  # type: ignore[override]
        self.shutdown()
        super().closeEvent(event)

    def hideEvent(self, event: QtGui.QHideEvent) -> None:  # type: ignore[override]
        super().hideEvent(event)
        self._on_hidden()

    def showEvent(self, event: QtGui.QShowEvent) -> None:  # type: ignore[override]
        super().showEvent(event)
        self._on_shown()


def _should_use_opengl(force_backend: Optional[str]) -> bool:
    if force_backend == "raster":
        return False
    if force_backend == "opengl":
        return True

    env_backend = os.environ.get(ENV_BACKEND, "").strip().lower()
    if env_backend == "raster":
        return False
    if env_backend == "opengl":
        return True
    return hasattr(QtWidgets, "QOpenGLWidget")


def TreeViewWidget(
    parent: Optional[QtWidgets.QWidget] = None,
    *,
    config: Optional[SceneConfig] = None,
    seed: Optional[int] = None,
    on_complete: Optional[Callable[[], None]] = None,
    force_backend: Optional[str] = None,
) -> QtWidgets.QWidget:
    """Factory returning the best available renderer widget.

    Parameters
    ----------
    parent:
        Parent widget used by Qt for ownership.
    config:
        Scene constants; defaults to :class:`~sparkletree.config.SceneConfig`.
    seed:
        Seed of the random source, ``None`` for a fresh scene every run.
    on_complete:
        Called once per run when the tree has fully risen.
    force_backend:
        ``"opengl"`` forces the OpenGL widget while ``"raster"`` selects the
        pure QWidget implementation.
    """

    widget: Optional[QtWidgets.QWidget] = None
    if _should_use_opengl(force_backend):
        try:
            widget = _OpenGLViewWidget(parent, config, seed)
            setattr(widget, "backend_name", "opengl")
        except Exception as exc:
            warn(f"Unable to initialise OpenGL backend ({exc!r}). Using raster widget instead.")
            widget = None
    if widget is None:
        widget = _RasterViewWidget(parent, config, seed)
        setattr(widget, "backend_name", "raster")
    if on_complete is not None:
        widget.animationComplete.connect(on_complete)
    return widget
