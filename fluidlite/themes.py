"""
themes.py — Colour Themes
=========================
A theme decides how continuous values become discrete colours:

  value = clip(density * exposure * gain, 0, 1)
  dot on    ⇔ value >= dot_threshold
  colour    = palette index of the band the cell's average falls in

Palette layout (shared by every theme):
  0        → background (empty cell)
  1 .. 5   → intensity bands, dim → bright
  6        → emitter marker

Colours are plain RGB triples; turning them into terminal escape codes or
matplotlib colours is the presentation layer's job.
"""

from dataclasses import dataclass


COLOR_BACKGROUND = 0
COLOR_EMITTER = 6
INTENSITY_COLORS = (1, 2, 3, 4, 5)


@dataclass(frozen=True)
class Theme:
    name: str
    palette: tuple                 # 7 RGB triples, see module docstring
    panel_fg: tuple = (255, 255, 255)
    panel_bg: tuple = (0, 0, 0)
    gain: float = 1.4
    dot_threshold: float = 0.10
    band_edges: tuple = (0.15, 0.35, 0.55, 0.75)

    def __post_init__(self):
        if len(self.palette) != COLOR_EMITTER + 1:
            raise ValueError(f"Theme '{self.name}' needs {COLOR_EMITTER + 1} colours, got {len(self.palette)}")
        if len(self.band_edges) != len(INTENSITY_COLORS) - 1:
            raise ValueError(f"Theme '{self.name}' needs {len(INTENSITY_COLORS) - 1} band edges")

    def rgb(self, index: int) -> tuple:
        return self.palette[index]


THEMES = (
    Theme(
        name="Amber",
        palette=(
            (16, 12, 0),
            (80, 68, 0), (130, 110, 0), (180, 150, 10), (220, 185, 40), (255, 220, 90),
            (255, 240, 180),
        ),
        panel_fg=(255, 226, 140),
        panel_bg=(20, 16, 0),
    ),
    Theme(
        name="Ice",
        palette=(
            (0, 10, 16),
            (20, 80, 110), (40, 120, 160), (80, 170, 210), (140, 220, 240), (210, 250, 255),
            (220, 250, 255),
        ),
        panel_fg=(190, 230, 255),
        panel_bg=(0, 14, 22),
    ),
    Theme(
        name="Mono",
        palette=(
            (0, 0, 0),
            (88, 88, 88), (170, 170, 170), (255, 255, 255), (255, 255, 255), (255, 255, 255),
            (255, 255, 255),
        ),
    ),
)


def get_theme(index: int) -> Theme:
    """Theme for any index; wraps around."""
    return THEMES[index % len(THEMES)]
