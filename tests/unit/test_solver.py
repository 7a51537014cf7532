"""Tests for the pressure projection and the full step pipeline."""

import numpy as np
import pytest

from fluidlite import Command, Emitter, Field, FieldDimensionError, SimParams, SimulationLoop, Solver, project
from fluidlite.forces import EMIT_RADIAL
from fluidlite.solver import DENSITY_FLOOR, fade_density


class TestProjection:
    """Incompressibility enforcement."""

    @pytest.mark.parametrize("scale", [1.0, 1e3])
    def test_converged_projection_removes_divergence(self, rng, scale):
        f = Field(16, 16)
        f.u[:] = scale * rng.normal(size=f.shape)
        f.v[:] = scale * rng.normal(size=f.shape)
        f.set_boundary()
        before = np.abs(f.compute_divergence()).max()

        project(f, iterations=500)

        after = np.abs(f.compute_divergence()).max()
        assert before > 0.0
        assert after <= 1e-3 * before

    def test_default_budget_reduces_divergence(self, random_velocity_field):
        metrics = project(random_velocity_field)
        assert metrics["divergence_after_max"] < metrics["divergence_before_max"]

    def test_metrics_keys(self, random_velocity_field):
        metrics = project(random_velocity_field, iterations=3)
        assert set(metrics) == {
            "time_ms", "iterations", "divergence_before_max",
            "divergence_after_max", "divergence_after_mean",
        }
        assert metrics["iterations"] == 3

    def test_still_fluid_stays_still(self):
        f = Field(12, 12)
        project(f)
        assert not np.any(f.u) and not np.any(f.v) and not np.any(f.pressure)

    def test_walls_hold_after_projection(self, random_velocity_field):
        f = random_velocity_field
        project(f)
        assert not np.any(f.u[0, :]) and not np.any(f.u[-1, :])
        assert not np.any(f.v[:, 0]) and not np.any(f.v[:, -1])


class TestFade:

    def test_fade_scales_and_floors(self):
        f = Field(8, 8)
        f.density[:] = 1.0
        f.density[2, 2] = DENSITY_FLOOR
        fade_density(f, 0.1)
        assert f.density[0, 0] == pytest.approx(0.9)
        assert f.density[2, 2] == 0.0

    def test_zero_fade_is_identity(self, rng):
        f = Field(8, 8)
        f.density[:] = rng.uniform(size=f.shape)
        before = f.density.copy()
        fade_density(f, 0.0)
        assert np.array_equal(f.density, before)


class TestSolverStep:
    """Pipeline-level properties."""

    def test_metrics_keys(self, field, still_params):
        metrics = Solver().step(field, still_params, still_params.dt)
        for key in ("dt", "total_ms", "diffuse_vel_ms", "project1_ms", "advect_vel_ms",
                    "vorticity_ms", "project2_ms", "diffuse_den_ms", "advect_den_ms",
                    "divergence_before", "divergence_max", "divergence_mean", "density_total"):
            assert key in metrics
        assert metrics["dt"] == still_params.dt

    def test_dimension_mismatch_fails_fast(self, field, still_params):
        field.density_prev = np.zeros((5, 5))
        with pytest.raises(FieldDimensionError):
            Solver().step(field, still_params, still_params.dt)

    def test_diffusion_conserves_mass_in_still_fluid(self, rng):
        f = Field(20, 14)
        f.density[:] = rng.uniform(0, 2, size=f.shape)
        total = f.total_density()
        params = SimParams(diffusion=0.2, dt=0.1)

        for _ in range(5):
            Solver().step(f, params, params.dt)

        assert f.total_density() == pytest.approx(total, rel=1e-9)

    @pytest.mark.parametrize("diffusion,viscosity", [(0.0, 0.0), (-1.0, -0.5)])
    def test_non_positive_coefficients_mean_no_diffusion(self, rng, diffusion, viscosity):
        f = Field(16, 16)
        f.density[:] = rng.uniform(size=f.shape)
        before = f.density.copy()
        params = SimParams(diffusion=diffusion, viscosity=viscosity)

        Solver().step(f, params, params.dt)

        assert np.array_equal(f.density, before)

    def test_nan_velocity_does_not_raise(self, field, still_params):
        field.u[10, 5] = np.nan
        Solver().step(field, still_params, still_params.dt)
        assert field.u.shape == (32, 16)

    def test_walls_hold_over_many_steps(self):
        f = Field(24, 16)
        params = SimParams()
        corner = Emitter(1.0, 1.0, strength=5.0, force=10.0, radius=3.0, mode=EMIT_RADIAL)
        edge = Emitter(23.0, 8.0, strength=5.0, force=10.0, radius=3.0, angle=0.0)
        solver = Solver()

        for _ in range(40):
            corner.inject(f)
            edge.inject(f)
            solver.step(f, params, params.dt)

            assert not np.any(f.u[0, :]) and not np.any(f.u[-1, :])
            assert not np.any(f.v[:, 0]) and not np.any(f.v[:, -1])

        assert np.all(np.isfinite(f.u)) and np.all(np.isfinite(f.density))


class TestScenarios:
    """End-to-end behaviour on the 32x16 grid."""

    def test_single_pulse(self, field, still_params):
        strength = 10.0
        Emitter(16, 8, strength=strength, radius=3.0).inject(field)

        solver = Solver()
        for _ in range(10):
            solver.step(field, still_params, still_params.dt)

        for x, y in [(15, 8), (17, 8), (16, 7), (16, 9)]:
            assert field.density[x, y] > 0.0
        assert abs(field.total_density() - strength) <= 0.05 * strength

    def test_vorticity_confinement_keeps_swirl(self):
        totals = {}
        for enabled in (True, False):
            f = Field(32, 16)
            params = SimParams(vorticity=enabled, diffusion=0.0001, dt=0.1)
            Emitter(16, 8, strength=10.0, force=4.0, radius=3.0, angle=0.0).inject(f)

            solver = Solver()
            for _ in range(20):
                solver.step(f, params, params.dt)

            totals[enabled] = np.abs(f.compute_curl()).sum()

        assert np.isfinite(totals[True])
        assert totals[True] > totals[False]

    def test_reset_is_idempotent(self, is_blank):
        loop = SimulationLoop(32, 16)
        loop.apply(Command.INJECT_ONCE)
        for _ in range(5):
            loop.tick()
        assert not is_blank(loop.field)

        loop.apply(Command.RESET)
        for _ in range(10):
            loop.tick()

        assert is_blank(loop.field)
