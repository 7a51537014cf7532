"""
grid.py — Collocated 2D Simulation Field
=========================================
The single source of truth the solver advances and the renderer reads.

Layout (every array has shape (W, H) and is indexed [x, y]):
  - density, density_prev   → dye concentration at cell centers
  - u, u_prev               → X-velocity, in cells per unit time
  - v, v_prev               → Y-velocity (Y grows downwards, like terminal rows)
  - pressure, divergence,
    curl                    → scratch grids owned by the solver

The outer ring of cells is the WALL layer. The solver never integrates
velocity there; it writes it with the boundary policy instead:

  - normal component      = 0            (fluid can't pass through the wall)
  - tangential component  = interior     (free-slip mirror)

"current" and "previous" are double buffers. A pass reads current,
writes previous, then calls swap(): a reference exchange, never a copy.
"""

import numpy as np


DTYPE = np.float64

# Smallest grid with at least two interior cells along each axis
MIN_SIZE = 4


class FieldDimensionError(ValueError):
    """The grids of a Field no longer share one shape (or the shape is unusable)."""


def bilinear_sample(grid: np.ndarray, x, y):
    """
    Bilinear interpolation of a 2D grid at fractional positions.

    Query points are edge-clamped to [0, W-1] x [0, H-1]; a NaN query
    point reads as coordinate 0. At integer coordinates the result is the
    raw cell value, bit for bit.

    Args:
        grid : (W, H) array
        x, y : Query positions (scalars or arrays of the same shape)

    Returns:
        Interpolated values, same shape as x/y
    """
    W, H = grid.shape

    x = np.clip(np.nan_to_num(np.asarray(x, dtype=DTYPE), nan=0.0), 0.0, W - 1)
    y = np.clip(np.nan_to_num(np.asarray(y, dtype=DTYPE), nan=0.0), 0.0, H - 1)

    x0 = np.floor(x).astype(np.intp)
    y0 = np.floor(y).astype(np.intp)
    x1 = np.minimum(x0 + 1, W - 1)
    y1 = np.minimum(y0 + 1, H - 1)

    tx = x - x0
    ty = y - y0

    c00 = grid[x0, y0]
    c10 = grid[x1, y0]
    c01 = grid[x0, y1]
    c11 = grid[x1, y1]

    c0 = c00 * (1.0 - tx) + c10 * tx
    c1 = c01 * (1.0 - tx) + c11 * tx
    return c0 * (1.0 - ty) + c1 * ty


def set_velocity_boundary(u: np.ndarray, v: np.ndarray):
    """
    Solid-wall boundary on the outer ring of a velocity field.

    Tangential components are mirrored first so the corners end up with
    both components zeroed by the normal pass.
    """
    # ── Tangential: mirror interior neighbor ──────────────────────────────
    v[0, :] = v[1, :]
    v[-1, :] = v[-2, :]
    u[:, 0] = u[:, 1]
    u[:, -1] = u[:, -2]

    # ── Normal: no flow through the wall ──────────────────────────────────
    u[0, :] = 0.0
    u[-1, :] = 0.0
    v[:, 0] = 0.0
    v[:, -1] = 0.0


class Field:
    """
    W x H fluid state: density, velocity and the solver's scratch grids.

    Usage:
        field = Field(32, 16)
        field.density[16, 8] = 1.0
        field.sample(15.5, 8.0)   # → 0.5
    """

    def __init__(self, width: int, height: int):
        """
        Args:
            width  : Cells along X (W)
            height : Cells along Y (H)
        """
        if width < MIN_SIZE or height < MIN_SIZE:
            raise FieldDimensionError(
                f"Field must be at least {MIN_SIZE}x{MIN_SIZE}, got {width}x{height}"
            )
        self.width = int(width)
        self.height = int(height)
        shape = (self.width, self.height)

        # ── Scalar fields ──────────────────────────────────────────────────
        self.density = np.zeros(shape, dtype=DTYPE)
        self.density_prev = np.zeros(shape, dtype=DTYPE)

        # ── Velocity components ────────────────────────────────────────────
        self.u = np.zeros(shape, dtype=DTYPE)
        self.v = np.zeros(shape, dtype=DTYPE)
        self.u_prev = np.zeros(shape, dtype=DTYPE)
        self.v_prev = np.zeros(shape, dtype=DTYPE)

        # ── Solver scratch ─────────────────────────────────────────────────
        self.pressure = np.zeros(shape, dtype=DTYPE)
        self.divergence = np.zeros(shape, dtype=DTYPE)
        self.curl = np.zeros(shape, dtype=DTYPE)

    @property
    def shape(self) -> tuple[int, int]:
        return (self.width, self.height)

    def grids(self) -> dict:
        """All arrays owned by the field, by attribute name."""
        return {
            "density": self.density,
            "density_prev": self.density_prev,
            "u": self.u,
            "v": self.v,
            "u_prev": self.u_prev,
            "v_prev": self.v_prev,
            "pressure": self.pressure,
            "divergence": self.divergence,
            "curl": self.curl,
        }

    def check_dimensions(self):
        """Raise FieldDimensionError unless every grid is exactly (W, H)."""
        for name, arr in self.grids().items():
            if arr.shape != self.shape:
                raise FieldDimensionError(
                    f"grid '{name}' has shape {arr.shape}, field is {self.shape}"
                )

    # ── Double buffering ───────────────────────────────────────────────────

    def swap_density(self):
        self.density, self.density_prev = self.density_prev, self.density

    def swap_velocity(self):
        self.u, self.u_prev = self.u_prev, self.u
        self.v, self.v_prev = self.v_prev, self.v

    def swap(self):
        """Exchange current and previous buffers of every double-buffered grid."""
        self.swap_density()
        self.swap_velocity()

    # ── Sampling ───────────────────────────────────────────────────────────

    def sample(self, x, y):
        """Bilinearly interpolated density at (x, y), edge-clamped."""
        return _scalar_or_array(bilinear_sample(self.density, x, y))

    def sample_velocity(self, x, y):
        """Bilinearly interpolated (u, v) at (x, y), edge-clamped."""
        return (
            _scalar_or_array(bilinear_sample(self.u, x, y)),
            _scalar_or_array(bilinear_sample(self.v, x, y)),
        )

    def sample_speed(self, x, y):
        su, sv = self.sample_velocity(x, y)
        return np.hypot(su, sv)

    # ── Diagnostics ────────────────────────────────────────────────────────

    def set_boundary(self):
        set_velocity_boundary(self.u, self.v)

    def speed(self) -> np.ndarray:
        return np.hypot(self.u, self.v)

    def total_density(self) -> float:
        return float(self.density.sum())

    def compute_divergence(self, out: np.ndarray = None) -> np.ndarray:
        """
        Central-difference divergence of the current velocity.

        div = (u[x+1] - u[x-1]) / 2 + (v[y+1] - v[y-1]) / 2

        Defined on interior cells; the wall ring reads 0. The projection
        step drives this to ~0, so it doubles as the solver's health check.
        """
        if out is None:
            out = np.zeros(self.shape, dtype=DTYPE)
        else:
            out[:] = 0.0
        u, v = self.u, self.v
        out[1:-1, 1:-1] = 0.5 * (
            u[2:, 1:-1] - u[:-2, 1:-1] +
            v[1:-1, 2:] - v[1:-1, :-2]
        )
        return out

    def compute_curl(self, out: np.ndarray = None) -> np.ndarray:
        """
        Scalar curl (z-vorticity) dv/dx - du/dy on interior cells.
        Positive = counter-clockwise in (x, y) index space.
        """
        if out is None:
            out = np.zeros(self.shape, dtype=DTYPE)
        else:
            out[:] = 0.0
        u, v = self.u, self.v
        out[1:-1, 1:-1] = (
            0.5 * (v[2:, 1:-1] - v[:-2, 1:-1]) -
            0.5 * (u[1:-1, 2:] - u[1:-1, :-2])
        )
        return out

    def clear(self):
        """Zero out all grids. Used by reset."""
        for arr in self.grids().values():
            arr[:] = 0.0

    def __repr__(self):
        max_div = np.abs(self.compute_divergence()).max()
        return (
            f"Field({self.width}x{self.height})\n"
            f"  density   : max={self.density.max():.4f}, sum={self.density.sum():.2f}\n"
            f"  velocity  : max_speed={self.speed().max():.4f}\n"
            f"  divergence: max={max_div:.6f} (target: ~0)"
        )


def _scalar_or_array(value):
    if np.ndim(value) == 0:
        return float(value)
    return value
