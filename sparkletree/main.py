# -*- coding: utf-8 -*-
import argparse
import sys
from pathlib import Path
from typing import List, NoReturn, Optional


def _handle_qt_import_error(exc: ImportError) -> NoReturn:
    """Exit with a helpful message when the Qt bindings cannot be imported."""

    details = str(exc)
    message_lines = [
        "Unable to start SparkleTree: importing PyQt5 failed.",
        "Check that PyQt5 is installed and that the OpenGL libraries it needs are available.",
    ]
    if "libGL.so.1" in details:
        message_lines.append(
            "Hint: the system library libGL.so.1 is missing. Install the Mesa/OpenGL packages for your platform."
        )
    message_lines.append(f"Original error: {details}")
    raise SystemExit("\n".join(message_lines)) from exc


try:
    from PyQt5 import QtCore, QtWidgets, QtGui
    from PyQt5.QtCore import Qt
    from PyQt5.QtGui import QSurfaceFormat
except ImportError as exc:  # pragma: no cover - environment dependent
    _handle_qt_import_error(exc)

# --- allow running this file directly ---
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

try:
    from .config import ENV_DEBUG, SceneConfig, env_flag, env_seed
    from .diagnostics import debug, install_debug_silencer, remove_debug_silencer
    from .view import TreeViewWidget
except ImportError:  # pragma: no cover - direct execution
    from sparkletree.config import ENV_DEBUG, SceneConfig, env_flag, env_seed  # type: ignore
    from sparkletree.diagnostics import debug, install_debug_silencer, remove_debug_silencer  # type: ignore
    from sparkletree.view import TreeViewWidget  # type: ignore

WINDOW_TITLE = "SparkleTree"
REVEALED_TITLE = "SparkleTree - Merry Christmas"


def _fail_fast_verify(config: Optional[SceneConfig] = None) -> SceneConfig:
    try:
        config = config or SceneConfig.from_mapping(None)
        config.validate()
    except ValueError as exc:
        raise SystemExit(f"FATAL: invalid scene configuration: {exc}") from exc
    return config


class ViewWindow(QtWidgets.QMainWindow):
    """Top-level window hosting the tree view."""

    revealed = QtCore.pyqtSignal()

    def __init__(
        self,
        screen: QtGui.QScreen,
        config: Optional[SceneConfig] = None,
        *,
        seed: Optional[int] = None,
        backend: Optional[str] = None,
        size: Optional[tuple] = None,
    ):
        super().__init__(None)
        self._target_screen = screen
        self._requested_size = size
        self.setWindowTitle(WINDOW_TITLE)
        self.view = TreeViewWidget(
            self,
            config=config,
            seed=seed,
            on_complete=self._on_revealed,
            force_backend=backend,
        )
        self.setCentralWidget(self.view)

        self._apply_screen_geometry(screen)
        QtWidgets.QShortcut(Qt.Key_Escape, self, activated=self.close)
        QtWidgets.QShortcut(Qt.Key_R, self, activated=self.replay)

    def _apply_screen_geometry(self, screen: QtGui.QScreen):
        if window_handle := self.windowHandle():
            window_handle.setScreen(screen)
        geometry = screen.geometry()
        if self._requested_size:
            width, height = self._requested_size
        else:
            width = int(geometry.width() * 0.8)
            height = int(geometry.height() * 0.8)
        left = geometry.left() + (geometry.width() - width) // 2
        top = geometry.top() + (geometry.height() - height) // 2
        self.setGeometry(left, top, width, height)

    def _on_revealed(self) -> None:
        self.setWindowTitle(REVEALED_TITLE)
        self.revealed.emit()

    def replay(self) -> None:
        self.setWindowTitle(WINDOW_TITLE)
        self.view.restart()

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:  # type: ignore[override]
        self.view.shutdown()
        super().closeEvent(event)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sparkletree", description="Rising golden tree animation.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible scene.")
    parser.add_argument(
        "--backend",
        choices=("opengl", "raster"),
        default=None,
        help="Force the rendering backend.",
    )
    parser.add_argument("--width", type=int, default=None, help="Window width in pixels.")
    parser.add_argument("--height", type=int, default=None, help="Window height in pixels.")
    parser.add_argument(
        "--density",
        type=float,
        default=1.0,
        help="Multiplier applied to every particle count (lower is faster).",
    )
    parser.add_argument("--debug", action="store_true", help="Print lifecycle diagnostics.")
    return parser


def main(headless: bool = False, argv: Optional[List[str]] = None) -> int:
    """Start the application and return the exit code.

    When ``headless`` is True the function performs the configuration checks
    and returns 0 without instantiating any Qt objects.
    """
    args = build_parser().parse_args(argv if argv is not None else [])
    config = _fail_fast_verify()
    if args.density != 1.0:
        config = config.scaled(max(0.0, args.density))
    if args.debug or env_flag(ENV_DEBUG):
        remove_debug_silencer()
    else:
        install_debug_silencer()
    if headless:
        return 0

    # Unhandled exceptions raised inside the Qt event loop would otherwise be
    # lost; write them to <repo>/run_exception.txt as well.
    def _write_unhandled(exc_type, exc_value, exc_tb):
        try:
            out_path = ROOT / "run_exception.txt"
            import traceback as _tb

            with out_path.open("w", encoding="utf-8") as f:
                _tb.print_exception(exc_type, exc_value, exc_tb, file=f)
        except OSError:
            pass
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = _write_unhandled

    fmt = QSurfaceFormat()
    fmt.setSamples(4)
    QSurfaceFormat.setDefaultFormat(fmt)
    QtWidgets.QApplication.setAttribute(QtCore.Qt.AA_EnableHighDpiScaling, True)
    QtWidgets.QApplication.setAttribute(QtCore.Qt.AA_UseHighDpiPixmaps, True)
    app = QtWidgets.QApplication(sys.argv[:1])
    screen = QtGui.QGuiApplication.primaryScreen()

    size = None
    if args.width and args.height:
        size = (max(1, args.width), max(1, args.height))
    seed = args.seed if args.seed is not None else env_seed()
    window = ViewWindow(screen, config, seed=seed, backend=args.backend, size=size)
    window.revealed.connect(lambda: debug("completion callback received by the host window"))
    window.show()

    # Return the exit code instead of calling sys.exit so callers (tests,
    # importers) can invoke main() without raising SystemExit.
    return app.exec_()


def cli() -> None:
    sys.exit(main(argv=sys.argv[1:]))


if __name__ == "__main__":
    cli()
