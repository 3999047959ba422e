#!/usr/bin/env python3
"""Render frames of the animation to PNG files without opening a window."""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt5 import QtWidgets  # noqa: E402

from sparkletree.config import SceneConfig  # noqa: E402
from sparkletree.simulator import create_state, step, teardown  # noqa: E402
from sparkletree.view import render_to_image  # noqa: E402


def render_sequence(
    out_dir: Path,
    *,
    width: int,
    height: int,
    frames: int,
    frame_ms: float,
    every: int,
    seed: int,
    density: float,
) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    config = SceneConfig()
    if density != 1.0:
        config = config.scaled(density)
    completed: list[int] = []
    state = create_state(width, height, config, seed=seed, on_complete=lambda: completed.append(state.frame_index))
    written: list[Path] = []
    try:
        for index in range(frames):
            frame = step(state, index * frame_ms)
            if index % every:
                continue
            path = out_dir / f"frame_{index:05d}.png"
            if not render_to_image(frame).save(str(path)):
                raise SystemExit(f"could not write {path}")
            written.append(path)
    finally:
        teardown(state)
    if completed:
        print(f"tree revealed at frame {completed[0]}")
    return written


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--out", type=Path, default=ROOT / "artifacts" / "frames", help="Output directory.")
    parser.add_argument("--width", type=int, default=960)
    parser.add_argument("--height", type=int, default=540)
    parser.add_argument("--frames", type=int, default=420, help="Number of simulated frames.")
    parser.add_argument("--frame-ms", type=float, default=1000.0 / 60.0, help="Simulated time per frame.")
    parser.add_argument("--every", type=int, default=30, help="Save one frame out of this many.")
    parser.add_argument("--seed", type=int, default=2024)
    parser.add_argument("--density", type=float, default=1.0)
    args = parser.parse_args()

    # QImage text rendering needs a live application object.
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication(sys.argv[:1])
    written = render_sequence(
        args.out,
        width=max(1, args.width),
        height=max(1, args.height),
        frames=max(0, args.frames),
        frame_ms=args.frame_ms,
        every=max(1, args.every),
        seed=args.seed,
        density=max(0.0, args.density),
    )
    for path in written:
        print(f"wrote {path.relative_to(ROOT) if path.is_relative_to(ROOT) else path}")


if __name__ == "__main__":
    main()
