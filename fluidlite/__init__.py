"""
fluidlite/ — Grid Fluid on Braille
===================================
Exports the interfaces the front-ends use.

main.py (terminal / headless / benchmark) imports: SimulationLoop, Renderer, Command
visualizer.py (matplotlib) imports: SimulationLoop, Command, MoveEmitter
"""

from .forces import EMIT_DIRECTIONAL, EMIT_RADIAL, Emitter
from .glyphs import BRAILLE, QUADRANT, GlyphSet
from .grid import Field, FieldDimensionError
from .params import SimParams
from .render import DisplayCell, Frame, Renderer, grid_size_for
from .simulation import Command, LoopState, MoveEmitter, SimulationLoop
from .solver import Solver, project
from .themes import THEMES, Theme

__all__ = [
    "Field", "FieldDimensionError",
    "SimParams", "Solver", "project",
    "Emitter", "EMIT_DIRECTIONAL", "EMIT_RADIAL",
    "Renderer", "Frame", "DisplayCell", "grid_size_for",
    "GlyphSet", "BRAILLE", "QUADRANT",
    "Theme", "THEMES",
    "SimulationLoop", "Command", "MoveEmitter", "LoopState",
]
