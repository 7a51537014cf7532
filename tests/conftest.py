"""
Pytest configuration and shared fixtures.
"""

import os

os.environ.setdefault("MPLBACKEND", "Agg")

import numpy as np
import pytest


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(seed=42)


@pytest.fixture
def field():
    """The 32x16 grid used by the pulse and vorticity scenarios."""
    from fluidlite import Field
    return Field(32, 16)


@pytest.fixture
def still_params():
    """Parameters with vorticity off and the scenario diffusion/dt."""
    from fluidlite import SimParams
    return SimParams(vorticity=False, diffusion=0.0001, dt=0.1)


@pytest.fixture
def random_velocity_field(rng):
    """A 16x16 field with a noisy velocity and walls already applied."""
    from fluidlite import Field
    f = Field(16, 16)
    f.u[:] = rng.normal(size=f.shape)
    f.v[:] = rng.normal(size=f.shape)
    f.set_boundary()
    return f


@pytest.fixture
def is_blank():
    """Predicate: every grid of a Field is exactly zero."""
    def check(f):
        return all(not np.any(arr) for arr in f.grids().values())
    return check
