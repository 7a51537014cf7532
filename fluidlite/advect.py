"""
advect.py — Semi-Lagrangian Advection
======================================
This is what makes the fluid look like it's *actually flowing*.

The algorithm (per cell):
  1. Take the cell center position (x, y).
  2. Trace BACKWARD along the velocity field by one timestep:
       source = (x, y) - dt * (u, v)
     → "Where did the stuff in this cell come FROM?"
  3. Bilinearly sample the old field at that source point
     (it'll land between cells; sampling is edge-clamped).
  4. That sampled value becomes the new value for this cell.

Unconditionally stable: the result is always an interpolation of old
values, whatever dt is. The price is some numerical smoothing, which
vorticity confinement wins back.

Key reference: Jos Stam, "Stable Fluids" (SIGGRAPH 1999)
"""

import numpy as np

from .grid import DTYPE, Field, bilinear_sample


def _back_trace(field: Field, dt: float) -> tuple[np.ndarray, np.ndarray]:
    """Source positions of every cell, traced back through the current velocity."""
    i, j = np.indices(field.shape, dtype=DTYPE)
    return i - dt * field.u, j - dt * field.v


def advect_velocity(field: Field, dt: float):
    """
    Self-advection: u and v are carried along by (u, v) itself.

    Both components are traced with the SAME velocity (the current one)
    and written into the previous buffers, then swapped in, so no cell
    reads a value already updated in this pass.
    """
    x_back, y_back = _back_trace(field, dt)

    field.u_prev[:] = bilinear_sample(field.u, x_back, y_back)
    field.v_prev[:] = bilinear_sample(field.v, x_back, y_back)
    field.swap_velocity()

    field.set_boundary()


def advect_density(field: Field, dt: float):
    """Carry the dye along the current velocity field."""
    x_back, y_back = _back_trace(field, dt)

    field.density_prev[:] = bilinear_sample(field.density, x_back, y_back)
    field.swap_density()
