"""
simulation.py — Frame Loop and Controls
========================================
One frame = apply input → zero-or-one solver step → render.

State machine:

    RUNNING ──TOGGLE_PAUSE──▶ PAUSED ──STEP_ONCE──▶ STEP_PENDING
       ▲                        │  ▲                     │
       └──────TOGGLE_PAUSE──────┘  └────── next tick ─────┘

RUNNING advances the solver once per tick with dt = base dt * speed.
There is no sub-stepping or catch-up: the fluid is synchronized to
frames, not to wall-clock time.

Commands only touch SimParams and the Emitter; RESET is the only one that
reaches into the Field. INJECT_ONCE queues a pulse that the next tick
applies, paused or not.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .forces import Emitter, seed_vortex_ring
from .grid import Field
from .params import SPEED_MAX, SPEED_MIN, SimParams
from .render import Frame, Renderer
from .solver import Solver
from .themes import THEMES, get_theme


logger = logging.getLogger(__name__)

SPEED_FACTOR = 1.25


class Command(Enum):
    TOGGLE_PAUSE = "toggle_pause"
    STEP_ONCE = "step_once"
    TOGGLE_VORTICITY = "toggle_vorticity"
    TOGGLE_CONTINUOUS_EMIT = "toggle_continuous_emit"
    TOGGLE_DEBUG = "toggle_debug"
    NEXT_THEME = "next_theme"
    RESET = "reset"
    INJECT_ONCE = "inject_once"
    SPEED_UP = "speed_up"
    SPEED_DOWN = "speed_down"


@dataclass(frozen=True)
class MoveEmitter:
    """Shift the emitter by (dx, dy) grid cells."""
    dx: float
    dy: float


class LoopState(Enum):
    RUNNING = "running"
    PAUSED = "paused"
    STEP_PENDING = "step_pending"


class SimulationLoop:
    """
    Owns the Field, SimParams and Emitter, and sequences solver and renderer.

    Usage:
        loop = SimulationLoop(64, 32)
        loop.apply(Command.INJECT_ONCE)
        frame = loop.frame(Renderer(), cols=32, rows=8)
    """

    def __init__(self, width: int, height: int, params: SimParams = None,
                 emitter: Emitter = None, seed: int = 0,
                 seed_ring: bool = False, random_direction: bool = False):
        """
        Args:
            width, height    : Simulation grid size
            params           : Run parameters (default: SimParams())
            emitter          : Dye source (default: centered, one-shot)
            seed             : Seed of the loop's random generator
            seed_ring        : Re-create the spinning dye ring on every reset
            random_direction : Give every pulse a random push direction
        """
        self.field = Field(width, height)
        self.params = params if params is not None else SimParams()
        self.emitter = emitter if emitter is not None else Emitter(width * 0.5, height * 0.5)
        self.emitter.clamp(width, height)
        self.solver = Solver()

        self.seed = seed
        self.seed_ring = seed_ring
        self.random_direction = random_direction
        self.rng = np.random.default_rng(seed)

        self.frame_count = 0
        self.steps = 0
        self.pulses_pending = 0
        self.last_metrics = None

        self.reset()

    # ── State ──────────────────────────────────────────────────────────────

    @property
    def state(self) -> LoopState:
        if not self.params.paused:
            return LoopState.RUNNING
        if self.params.step_pending:
            return LoopState.STEP_PENDING
        return LoopState.PAUSED

    @property
    def theme(self):
        return get_theme(self.params.theme_index)

    # ── Controls ───────────────────────────────────────────────────────────

    def apply(self, command):
        """Apply one input command (a Command or a MoveEmitter)."""
        p = self.params

        if isinstance(command, MoveEmitter):
            self.emitter.move(command.dx, command.dy, self.field.width, self.field.height)
        elif command is Command.TOGGLE_PAUSE:
            p.paused = not p.paused
            p.step_pending = False
        elif command is Command.STEP_ONCE:
            # Only meaningful while paused; a running loop steps anyway
            p.step_pending = p.paused
        elif command is Command.TOGGLE_VORTICITY:
            p.vorticity = not p.vorticity
        elif command is Command.TOGGLE_CONTINUOUS_EMIT:
            self.emitter.continuous = not self.emitter.continuous
        elif command is Command.TOGGLE_DEBUG:
            p.debug = not p.debug
        elif command is Command.NEXT_THEME:
            p.theme_index = (p.theme_index + 1) % len(THEMES)
        elif command is Command.RESET:
            self.reset()
        elif command is Command.INJECT_ONCE:
            self.pulses_pending += 1
        elif command is Command.SPEED_UP:
            p.speed = min(p.speed * SPEED_FACTOR, SPEED_MAX)
        elif command is Command.SPEED_DOWN:
            p.speed = max(p.speed / SPEED_FACTOR, SPEED_MIN)
        else:
            raise ValueError(f"Unknown command: {command!r}")

        logger.debug("Applied %s → %s", command, self.state.value)

    def reset(self):
        """Zero the field, reseed the generator, re-create the start pattern."""
        self.field.clear()
        self.rng = np.random.default_rng(self.seed)
        self.pulses_pending = 0
        self.steps = 0
        if self.seed_ring:
            seed_vortex_ring(self.field)
        logger.info("Simulation reset (%dx%d, seed=%d)", self.field.width, self.field.height, self.seed)

    def _pulse_angle(self):
        if self.random_direction:
            return float(self.rng.uniform(0.0, 2.0 * math.pi))
        return None

    # ── Frame ──────────────────────────────────────────────────────────────

    def tick(self) -> dict:
        """
        Run one frame's worth of simulation.

        Returns:
            Solver metrics if the field advanced, else None
        """
        self.frame_count += 1

        # ── Input phase: queued pulses land even while paused ──────────────
        while self.pulses_pending:
            self.emitter.inject(self.field, self._pulse_angle())
            self.pulses_pending -= 1

        if self.params.paused:
            if not self.params.step_pending:
                return None
            self.params.step_pending = False

        if self.emitter.continuous:
            self.emitter.update(self.field, self._pulse_angle())

        metrics = self.solver.step(self.field, self.params, self.params.step_dt)
        self.steps += 1
        metrics["frame"] = self.frame_count
        metrics["step"] = self.steps
        self.last_metrics = metrics
        return metrics

    def render(self, renderer: Renderer, cols: int, rows: int) -> Frame:
        return renderer.render(self.field, self.params, cols, rows, emitter=self.emitter)

    def frame(self, renderer: Renderer, cols: int, rows: int) -> Frame:
        """tick() then render()."""
        self.tick()
        return self.render(renderer, cols, rows)

    def stats(self) -> dict:
        """Numbers a HUD might show."""
        p = self.params
        return {
            "frame": self.frame_count,
            "step": self.steps,
            "state": self.state.value,
            "max_density": float(np.nanmax(self.field.density)),
            "total_density": self.field.total_density(),
            "max_speed": float(np.nanmax(self.field.speed())),
            "dt": p.step_dt,
            "speed": p.speed,
            "vorticity": p.vorticity,
            "continuous": self.emitter.continuous,
            "theme": self.theme.name,
            "emitter": self.emitter.position,
        }
