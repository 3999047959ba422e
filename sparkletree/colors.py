"""Colour helpers working on ``#RRGGBB`` strings."""

from __future__ import annotations

from typing import Tuple

__all__ = ["hex_to_rgb", "rgb_to_hex", "hsl_to_rgb", "hsl_to_hex"]


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    value = value.strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    try:
        number = int(value[:6], 16)
    except ValueError:
        return 0, 0, 0
    return (number >> 16) & 255, (number >> 8) & 255, number & 255


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02X}{g:02X}{b:02X}"


def hsl_to_rgb(h: float, s: float, l: float) -> Tuple[int, int, int]:
    """Convert HSL components in ``[0, 1]`` to 8-bit RGB."""

    def _hue(p: float, q: float, t: float) -> float:
        if t < 0:
            t += 1
        if t > 1:
            t -= 1
        if t < 1 / 6:
            return p + (q - p) * 6 * t
        if t < 1 / 2:
            return q
        if t < 2 / 3:
            return p + (q - p) * (2 / 3 - t) * 6
        return p

    if s == 0:
        v = int(round(l * 255))
        return v, v, v
    q = l * (1 + s) if l < 0.5 else l + s - l * s
    p = 2 * l - q
    r = _hue(p, q, h + 1 / 3)
    g = _hue(p, q, h)
    b = _hue(p, q, h - 1 / 3)
    return int(round(r * 255)), int(round(g * 255)), int(round(b * 255))


def hsl_to_hex(hue_deg: float, saturation_pct: float, lightness_pct: float) -> str:
    """CSS style ``hsl()`` to hex; hue in degrees, the rest in percent."""

    r, g, b = hsl_to_rgb((hue_deg % 360.0) / 360.0, saturation_pct / 100.0, lightness_pct / 100.0)
    return rgb_to_hex(r, g, b)
