"""
render.py — Sub-Cell Renderer
==============================
Turns the continuous W x H density grid into a cols x rows grid of
terminal cells, each showing an sx x sy dot pattern (2 x 4 for Braille).

Two-level quantization per cell:
  1. SHAPE — every sub-dot samples the field (bilinear, via Field.sample)
     at its own fractional grid position and is either on or off.
  2. COLOUR — the average over the cell's sub-dots (density or speed)
     is bucketed into one of the theme's palette bands.

So a 40 x 16 simulation can paint a 160 x 64 dot image on an 80 x 16
character window.

Values are normalized by an exposure (auto: 1 / max density) and
saturated to [0, 1] here; the solver never clamps anything.
"""

from dataclasses import dataclass

import numpy as np

from .glyphs import BRAILLE, GlyphSet
from .grid import MIN_SIZE, Field
from .params import SimParams
from .themes import COLOR_BACKGROUND, COLOR_EMITTER, Theme, get_theme


COLOR_BY_DENSITY = "density"
COLOR_BY_SPEED = "speed"

# Below this speed a debug cell is drawn blank
STILL_SPEED = 1e-9


@dataclass(frozen=True)
class DisplayCell:
    glyph: str
    color: int


@dataclass
class Frame:
    """
    One rendered frame, row-major (rows x cols).

    chars  : one-character strings
    colors : palette indices into theme.palette
    masks  : dot bitmasks (all 0 in debug mode)
    peak   : the value the frame was normalized by
    """

    chars: np.ndarray
    colors: np.ndarray
    masks: np.ndarray
    theme: Theme
    debug: bool = False
    peak: float = 0.0

    @property
    def rows(self) -> int:
        return self.chars.shape[0]

    @property
    def cols(self) -> int:
        return self.chars.shape[1]

    def cell(self, row: int, col: int) -> DisplayCell:
        return DisplayCell(str(self.chars[row, col]), int(self.colors[row, col]))

    def cells(self) -> list[list[DisplayCell]]:
        return [[self.cell(r, c) for c in range(self.cols)] for r in range(self.rows)]

    def lines(self) -> list[str]:
        return ["".join(row) for row in self.chars]

    def __str__(self):
        return "\n".join(self.lines())


def grid_size_for(cols: int, rows: int, glyphs: GlyphSet = BRAILLE,
                  downsample: int = 1) -> tuple[int, int]:
    """
    Simulation grid for a cols x rows character area: the dot resolution
    divided by `downsample`, never finer than what the terminal can show.
    """
    if downsample < 1:
        raise ValueError(f"downsample must be >= 1, got {downsample}")
    width = max(MIN_SIZE, cols * glyphs.sx // downsample)
    height = max(MIN_SIZE, rows * glyphs.sy // downsample)
    return width, height


def _finite_peak(values: np.ndarray) -> float:
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return 0.0
    return max(float(finite.max()), 0.0)


class Renderer:
    """
    Usage:
        renderer = Renderer()
        frame = renderer.render(field, params, cols=80, rows=24)
        print(frame)
    """

    def __init__(self, glyphs: GlyphSet = BRAILLE, color_source: str = COLOR_BY_DENSITY,
                 exposure: float = None):
        """
        Args:
            glyphs       : Dot layout + character table
            color_source : COLOR_BY_DENSITY or COLOR_BY_SPEED
            exposure     : Fixed density scale; None = auto (1 / max density)
        """
        if color_source not in (COLOR_BY_DENSITY, COLOR_BY_SPEED):
            raise ValueError(
                f"Unknown color source: {color_source}. "
                f"Use '{COLOR_BY_DENSITY}' or '{COLOR_BY_SPEED}'."
            )
        self.glyphs = glyphs
        self.color_source = color_source
        self.exposure = exposure
        self._chars = np.array(list(glyphs.chars))

    def render(self, field: Field, params: SimParams, cols: int, rows: int,
               emitter=None) -> Frame:
        """
        Render the field into a cols x rows frame. Reads the field only.

        Args:
            emitter : Optional Emitter; its cell is drawn as a full glyph
        """
        if cols < 1 or rows < 1:
            raise ValueError(f"Frame must be at least 1x1, got {cols}x{rows}")

        theme = get_theme(params.theme_index)
        if params.debug:
            return self._render_debug(field, theme, cols, rows)

        gs = self.glyphs
        X, Y = _sample_positions(field, cols * gs.sx, rows * gs.sy)

        # ── Level 1: per-dot shape ─────────────────────────────────────────
        density = np.nan_to_num(field.sample(X, Y), nan=0.0, posinf=0.0, neginf=0.0)
        peak = _finite_peak(field.density)
        if self.exposure is not None:
            scale = self.exposure
        else:
            scale = 1.0 / peak if peak > 0.0 else 1.0
        value = np.clip(density * scale * theme.gain, 0.0, 1.0)

        dots = (value >= theme.dot_threshold).reshape(cols, gs.sx, rows, gs.sy)
        masks = np.einsum("axby,xy->ab", dots.astype(np.int64), gs.bit_grid()).T

        # ── Level 2: per-cell colour ───────────────────────────────────────
        if self.color_source == COLOR_BY_SPEED:
            speed = np.nan_to_num(field.sample_speed(X, Y), nan=0.0, posinf=0.0, neginf=0.0)
            speed_peak = _finite_peak(field.speed())
            level = speed / speed_peak if speed_peak > 0.0 else np.zeros_like(speed)
            level = np.clip(level, 0.0, 1.0)
        else:
            level = value
        average = level.reshape(cols, gs.sx, rows, gs.sy).mean(axis=(1, 3)).T

        colors = _band_colors(theme, average)
        colors[masks == 0] = COLOR_BACKGROUND
        chars = self._chars[masks]

        if emitter is not None:
            col, row = _cell_of(field, emitter.x, emitter.y, cols, rows)
            masks[row, col] = gs.full_mask
            chars[row, col] = gs.glyph(gs.full_mask)
            colors[row, col] = COLOR_EMITTER

        return Frame(chars=chars, colors=colors, masks=masks, theme=theme, peak=peak)

    def _render_debug(self, field: Field, theme: Theme, cols: int, rows: int) -> Frame:
        """
        Raw numeric overlay: each cell shows the velocity magnitude at its
        center as a digit 0-9 (relative to the fastest cell), blank if still.
        """
        X, Y = _sample_positions(field, cols, rows)
        speed = np.nan_to_num(field.sample_speed(X, Y), nan=0.0, posinf=0.0, neginf=0.0).T
        peak = _finite_peak(field.speed())
        level = np.clip(speed / peak, 0.0, 1.0) if peak > 0.0 else np.zeros_like(speed)

        digits = np.minimum(np.rint(level * 9).astype(np.int64), 9)
        chars = np.array(list("0123456789"))[digits]
        colors = _band_colors(theme, level)

        still = speed <= STILL_SPEED
        chars[still] = " "
        colors[still] = COLOR_BACKGROUND

        masks = np.zeros((rows, cols), dtype=np.int64)
        return Frame(chars=chars, colors=colors, masks=masks, theme=theme,
                     debug=True, peak=peak)


def _sample_positions(field: Field, nx: int, ny: int) -> tuple[np.ndarray, np.ndarray]:
    """
    Fractional grid coordinates of an nx x ny lattice of sample points,
    spread evenly over the field (sample centers aligned with cell centers).
    """
    px = (np.arange(nx) + 0.5) * field.width / nx - 0.5
    py = (np.arange(ny) + 0.5) * field.height / ny - 0.5
    return np.meshgrid(px, py, indexing="ij")


def _band_colors(theme: Theme, level: np.ndarray) -> np.ndarray:
    """Palette index 1..5 for values in [0, 1], using the theme's band edges."""
    return np.searchsorted(np.asarray(theme.band_edges), level, side="right") + 1


def _cell_of(field: Field, x: float, y: float, cols: int, rows: int) -> tuple[int, int]:
    col = int((x + 0.5) * cols / field.width)
    row = int((y + 0.5) * rows / field.height)
    return min(max(col, 0), cols - 1), min(max(row, 0), rows - 1)
