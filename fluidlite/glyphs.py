"""
glyphs.py — Sub-Cell Glyph Tables
==================================
A terminal cell can show more than one "pixel" if we pick the right
character. A GlyphSet describes one such encoding:

  - sx, sy : dots per cell (columns x rows)
  - bits   : bits[row][col] = the mask bit of that dot
  - chars  : chars[mask] = the character showing exactly those dots

Braille (U+2800..U+28FF), 2 columns x 4 rows. Unicode numbers the dots

    1 4          bit 0  bit 3
    2 5    →     bit 1  bit 4
    3 6          bit 2  bit 5
    7 8          bit 6  bit 7

so the character for a mask is simply chr(0x2800 + mask). Mask 0 is
drawn as a plain space so empty cells clear properly.

Quadrant blocks, 2 x 2, for fonts without Braille coverage.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class GlyphSet:
    """A fixed dot-pattern → character table."""

    name: str
    bits: tuple   # bits[row][col]
    chars: str    # chars[mask]

    @property
    def sx(self) -> int:
        return len(self.bits[0])

    @property
    def sy(self) -> int:
        return len(self.bits)

    @property
    def full_mask(self) -> int:
        return sum(b for row in self.bits for b in row)

    def bit_grid(self) -> np.ndarray:
        """Mask bits as an (sx, sy) array, indexed [col, row] like the field."""
        return np.asarray(self.bits, dtype=np.int64).T

    def glyph(self, mask: int) -> str:
        return self.chars[mask]

    def glyph_for(self, dots) -> str:
        """Character for a boolean (sx, sy) dot pattern."""
        mask = int((np.asarray(dots, dtype=bool) * self.bit_grid()).sum())
        return self.chars[mask]


BRAILLE_BASE = 0x2800

BRAILLE = GlyphSet(
    name="braille",
    bits=(
        (0x01, 0x08),
        (0x02, 0x10),
        (0x04, 0x20),
        (0x40, 0x80),
    ),
    chars=" " + "".join(chr(BRAILLE_BASE + m) for m in range(1, 256)),
)

# bit 1 = top-left, 2 = top-right, 4 = bottom-left, 8 = bottom-right
QUADRANT = GlyphSet(
    name="quadrant",
    bits=(
        (1, 2),
        (4, 8),
    ),
    chars=" ▘▝▀▖▌▞▛▗▚▐▜▄▙▟█",
)

GLYPH_SETS = {g.name: g for g in (BRAILLE, QUADRANT)}
