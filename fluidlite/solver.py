"""
solver.py — Pressure Projection and the Step Pipeline
======================================================
The pressure projection step enforces INCOMPRESSIBILITY:
  div(v) = 0 everywhere

After advection and confinement, the velocity field is generally NOT
divergence-free (fluid "piles up" in some cells, shows up as sinks or
blow-up). We fix this by:
  1. Computing divergence of the current velocity field
  2. Solving the Poisson equation for pressure: D(G p) = div(v)
  3. Subtracting the pressure gradient from velocity: v = v - G p

D and G are the central-difference divergence and gradient on a unit
grid. Using their exact composition as the Poisson operator (a "wide"
5-point stencil with neighbours 2 cells away) means a converged solve
leaves ZERO discrete divergence, not just a small one. The wide stencil
couples (x, y) only with (x±2, y) and (x, y±2), so the red-black
colouring is taken on the 2x2-block index: colour = (x//2 + y//2) % 2.

Pressure is held at 0 on the wall ring. With that, G = -Dᵀ, the system
is symmetric positive semi-definite and always consistent, so Gauss-Seidel
converges whatever the input.
"""

import time

import numpy as np

from .advect import advect_density, advect_velocity
from .diffuse import diffuse_density, diffuse_velocity
from .forces import vorticity_confinement
from .grid import Field
from .params import PRESSURE_ITERATIONS, SimParams


# Dye below this is zeroed when fading, so faded trails end cleanly
DENSITY_FLOOR = 1e-3


def _pressure_stencil(shape: tuple) -> tuple:
    """
    Wide-stencil neighbour indicators, neighbour counts and colour masks.

    A neighbour 2 cells away contributes only if the velocity cell in
    between is an interior cell (wall velocities never move).
    """
    W, H = shape
    i, j = np.indices(shape)
    interior = (i >= 1) & (i <= W - 2) & (j >= 1) & (j <= H - 2)

    has_xp = (interior & (i <= W - 3)).astype(float)
    has_xm = (interior & (i >= 2)).astype(float)
    has_yp = (interior & (j <= H - 3)).astype(float)
    has_ym = (interior & (j >= 2)).astype(float)
    counts = has_xp + has_xm + has_yp + has_ym

    red = interior & ((i // 2 + j // 2) % 2 == 0)
    black = interior & ~red
    return (has_xp, has_xm, has_yp, has_ym), counts, red, black


def _wide_neighbor_sum(p: np.ndarray, has: tuple) -> np.ndarray:
    has_xp, has_xm, has_yp, has_ym = has
    s = np.zeros_like(p)
    s[:-2, :] += has_xp[:-2, :] * p[2:, :]
    s[2:, :] += has_xm[2:, :] * p[:-2, :]
    s[:, :-2] += has_yp[:, :-2] * p[:, 2:]
    s[:, 2:] += has_ym[:, 2:] * p[:, :-2]
    return s


def project(field: Field, iterations: int = PRESSURE_ITERATIONS) -> dict:
    """
    Pressure projection: make the velocity field (near) divergence-free.

    Args:
        field      : The Field to modify in-place
        iterations : Red+black Gauss-Seidel sweeps (more = more accurate, slower)

    Returns:
        dict with timing and divergence metrics
    """
    t_start = time.perf_counter()

    # Wall normals must be 0 before measuring divergence
    field.set_boundary()

    div = field.compute_divergence(out=field.divergence)
    div_before = float(np.abs(div).max())

    p = field.pressure
    p[:] = 0.0
    has, counts, red, black = _pressure_stencil(field.shape)

    # D(G p) = 0.25 * (wide_sum - n * p) = div   →   p = (wide_sum - 4 div) / n
    for _ in range(iterations):
        for mask in (red, black):
            s = _wide_neighbor_sum(p, has)
            p[mask] = (s[mask] - 4.0 * div[mask]) / counts[mask]

    _subtract_pressure_gradient(field)
    field.set_boundary()

    div_after = field.compute_divergence(out=field.divergence)

    return {
        "time_ms": (time.perf_counter() - t_start) * 1000,
        "iterations": iterations,
        "divergence_before_max": div_before,
        "divergence_after_max": float(np.abs(div_after).max()),
        "divergence_after_mean": float(np.abs(div_after[1:-1, 1:-1]).mean()),
    }


def _subtract_pressure_gradient(field: Field):
    """
    v_new = v_old - G p, central differences, interior cells only.
    The wall ring of p is 0, so cells next to the wall see a one-sided pull.
    """
    p = field.pressure
    field.u[1:-1, 1:-1] -= 0.5 * (p[2:, 1:-1] - p[:-2, 1:-1])
    field.v[1:-1, 1:-1] -= 0.5 * (p[1:-1, 2:] - p[1:-1, :-2])


def fade_density(field: Field, fade: float):
    """Lose `fade` of the dye per step; zero what falls below DENSITY_FLOOR."""
    if fade <= 0.0:
        return
    field.density *= (1.0 - fade)
    field.density[field.density < DENSITY_FLOOR] = 0.0


class Solver:
    """
    Advances a Field by one timestep. Holds no state of its own: the result
    depends only on (field, params, dt).

    Pipeline per step:
      1. Diffuse velocity (viscosity)
      2. Project (so self-advection traces a divergence-free field)
      3. Advect velocity (self-advection)
      4. Vorticity confinement (if enabled)
      5. Project (clean up advection + confinement divergence)
      6. Diffuse density
      7. Advect density through the projected velocity
      8. Fade density (if configured)

    Preconditions: dt and the coefficients in params are bounded. Nothing
    here guards against NaN/overflow from pathological values; a NaN in
    the velocity does not raise, it spreads through the following steps.
    """

    def step(self, field: Field, params: SimParams, dt: float) -> dict:
        """
        Advance `field` by `dt`.

        Returns:
            dict with per-stage timings (ms) and divergence/density diagnostics
        """
        field.check_dimensions()
        t_total_start = time.perf_counter()

        # ── Step 1: Diffuse velocity ───────────────────────────────────────
        t0 = time.perf_counter()
        diffuse_velocity(field, params.viscosity, dt, params.diffuse_iterations)
        t_diffuse_vel = (time.perf_counter() - t0) * 1000

        # ── Step 2: Project ────────────────────────────────────────────────
        proj1 = project(field, params.pressure_iterations)

        # ── Step 3: Advect velocity ────────────────────────────────────────
        t0 = time.perf_counter()
        advect_velocity(field, dt)
        t_advect_vel = (time.perf_counter() - t0) * 1000

        # ── Step 4: Vorticity confinement ──────────────────────────────────
        t0 = time.perf_counter()
        if params.vorticity:
            vorticity_confinement(field, params.vorticity_strength, dt)
        t_vorticity = (time.perf_counter() - t0) * 1000

        # ── Step 5: Project again ──────────────────────────────────────────
        proj2 = project(field, params.pressure_iterations)

        # ── Step 6: Diffuse density ────────────────────────────────────────
        t0 = time.perf_counter()
        diffuse_density(field, params.diffusion, dt, params.diffuse_iterations)
        t_diffuse_den = (time.perf_counter() - t0) * 1000

        # ── Step 7: Advect density ─────────────────────────────────────────
        t0 = time.perf_counter()
        advect_density(field, dt)
        fade_density(field, params.dye_fade)
        t_advect_den = (time.perf_counter() - t0) * 1000

        t_total = (time.perf_counter() - t_total_start) * 1000

        return {
            "dt"               : dt,
            "total_ms"         : t_total,
            "diffuse_vel_ms"   : t_diffuse_vel,
            "project1_ms"      : proj1["time_ms"],
            "advect_vel_ms"    : t_advect_vel,
            "vorticity_ms"     : t_vorticity,
            "project2_ms"      : proj2["time_ms"],
            "diffuse_den_ms"   : t_diffuse_den,
            "advect_den_ms"    : t_advect_den,
            "divergence_before": proj2["divergence_before_max"],
            "divergence_max"   : proj2["divergence_after_max"],
            "divergence_mean"  : proj2["divergence_after_mean"],
            "density_total"    : field.total_density(),
        }
