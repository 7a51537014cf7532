"""
params.py — Run Parameters
==========================
One explicit, mutable parameter record. SimulationLoop owns it, the
control layer mutates it, and Solver/Renderer read it once per frame.
"""

from dataclasses import dataclass


# ── Relaxation budgets ────────────────────────────────────────────────────────
# Fixed sweep counts trade accuracy for a bounded frame cost. Tests raise them
# to probe convergence.
DIFFUSE_ITERATIONS = 20
PRESSURE_ITERATIONS = 25

# ── Defaults ──────────────────────────────────────────────────────────────────
DEFAULT_DT = 0.1
DEFAULT_VISCOSITY = 0.0001
DEFAULT_DIFFUSION = 0.0001
DEFAULT_VORTICITY_STRENGTH = 5.0

SPEED_MIN = 0.125
SPEED_MAX = 8.0


@dataclass
class SimParams:
    """Process-wide simulation and display parameters."""

    vorticity: bool = True                    # vorticity confinement on/off
    vorticity_strength: float = DEFAULT_VORTICITY_STRENGTH
    viscosity: float = DEFAULT_VISCOSITY      # velocity diffusion rate
    diffusion: float = DEFAULT_DIFFUSION      # dye diffusion rate
    dt: float = DEFAULT_DT                    # base timestep
    speed: float = 1.0                        # timestep multiplier
    paused: bool = False
    step_pending: bool = False                # one queued step while paused
    theme_index: int = 0
    debug: bool = False
    diffuse_iterations: int = DIFFUSE_ITERATIONS
    pressure_iterations: int = PRESSURE_ITERATIONS
    dye_fade: float = 0.0                     # fraction of dye lost per step

    def __post_init__(self):
        if self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.speed <= 0:
            raise ValueError(f"speed must be positive, got {self.speed}")
        if not 0.0 <= self.dye_fade < 1.0:
            raise ValueError(f"dye_fade must be in [0, 1), got {self.dye_fade}")

    @property
    def step_dt(self) -> float:
        """Timestep of one advance: base dt scaled by the speed multiplier."""
        return self.dt * self.speed
