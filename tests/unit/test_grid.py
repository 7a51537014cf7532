"""Unit tests for Field, bilinear sampling and the wall policy."""

import numpy as np
import pytest

from fluidlite.grid import (
    MIN_SIZE,
    Field,
    FieldDimensionError,
    bilinear_sample,
    set_velocity_boundary,
)


class TestFieldCreation:
    """Tests for construction and dimension checks."""

    def test_all_grids_share_shape(self):
        f = Field(32, 16)
        assert f.shape == (32, 16)
        for name, arr in f.grids().items():
            assert arr.shape == (32, 16), name
            assert not np.any(arr), name

    @pytest.mark.parametrize("w,h", [(3, 16), (16, 3), (0, 0)])
    def test_too_small_fails_fast(self, w, h):
        with pytest.raises(FieldDimensionError):
            Field(w, h)

    def test_min_size_is_accepted(self):
        f = Field(MIN_SIZE, MIN_SIZE)
        assert f.shape == (MIN_SIZE, MIN_SIZE)

    def test_check_dimensions_detects_mismatch(self):
        f = Field(8, 8)
        f.check_dimensions()
        f.v_prev = np.zeros((8, 7))
        with pytest.raises(FieldDimensionError, match="v_prev"):
            f.check_dimensions()

    def test_dimension_error_is_value_error(self):
        assert issubclass(FieldDimensionError, ValueError)


class TestSwap:
    """Swapping exchanges references, never copies."""

    def test_swap_density(self):
        f = Field(8, 8)
        cur, prev = f.density, f.density_prev
        f.swap_density()
        assert f.density is prev
        assert f.density_prev is cur

    def test_swap_velocity(self):
        f = Field(8, 8)
        u, v, u0, v0 = f.u, f.v, f.u_prev, f.v_prev
        f.swap_velocity()
        assert f.u is u0 and f.v is v0
        assert f.u_prev is u and f.v_prev is v

    def test_swap_twice_restores(self):
        f = Field(8, 8)
        d, u = f.density, f.u
        f.swap()
        f.swap()
        assert f.density is d
        assert f.u is u


class TestSample:
    """Bilinear sampling contract."""

    def test_exact_at_cell_centers(self, rng):
        f = Field(12, 9)
        f.density[:] = rng.uniform(-5, 5, size=f.shape)
        for x in range(12):
            for y in range(9):
                assert f.sample(x, y) == f.density[x, y]

    def test_exact_at_cell_centers_vectorized(self, rng):
        f = Field(12, 9)
        f.density[:] = rng.normal(size=f.shape)
        xs, ys = np.indices(f.shape)
        assert np.array_equal(f.sample(xs.astype(float), ys.astype(float)), f.density)

    def test_midpoint_is_average(self):
        f = Field(8, 8)
        f.density[2, 3] = 1.0
        f.density[3, 3] = 3.0
        assert f.sample(2.5, 3.0) == pytest.approx(2.0)

    def test_bilinear_weights(self):
        f = Field(8, 8)
        f.density[1, 1] = 4.0
        assert f.sample(1.25, 1.5) == pytest.approx(4.0 * 0.75 * 0.5)

    def test_edge_clamp(self, rng):
        f = Field(8, 6)
        f.density[:] = rng.normal(size=f.shape)
        assert f.sample(-10.0, -3.0) == f.density[0, 0]
        assert f.sample(100.0, 100.0) == f.density[7, 5]
        assert f.sample(3.0, -1.0) == f.density[3, 0]

    def test_returns_float_for_scalars(self):
        f = Field(8, 8)
        assert isinstance(f.sample(1.5, 2.5), float)

    def test_sample_velocity(self):
        f = Field(8, 8)
        f.u[4, 4] = 2.0
        f.v[4, 4] = -1.0
        u, v = f.sample_velocity(4.0, 4.0)
        assert (u, v) == (2.0, -1.0)
        assert f.sample_speed(4.0, 4.0) == pytest.approx(np.sqrt(5.0))

    def test_bilinear_sample_shape(self):
        grid = np.arange(20, dtype=float).reshape(5, 4)
        x = np.full((3, 2), 1.5)
        y = np.full((3, 2), 2.0)
        out = bilinear_sample(grid, x, y)
        assert out.shape == (3, 2)
        assert np.allclose(out, 0.5 * (grid[1, 2] + grid[2, 2]))

    def test_nan_position_reads_first_cell(self):
        grid = np.arange(12, dtype=float).reshape(4, 3)
        assert bilinear_sample(grid, np.nan, 2.0) == grid[0, 2]
        out = bilinear_sample(grid, np.array([np.nan, 1.0]), np.array([0.0, np.nan]))
        assert np.array_equal(out, [grid[0, 0], grid[1, 0]])


class TestBoundary:
    """Solid-wall policy."""

    def test_normal_zero_tangential_mirrored(self, rng):
        u = rng.normal(size=(10, 8))
        v = rng.normal(size=(10, 8))
        set_velocity_boundary(u, v)

        assert not np.any(u[0, :]) and not np.any(u[-1, :])
        assert not np.any(v[:, 0]) and not np.any(v[:, -1])
        assert np.array_equal(v[0, 1:-1], v[1, 1:-1])
        assert np.array_equal(v[-1, 1:-1], v[-2, 1:-1])
        assert np.array_equal(u[1:-1, 0], u[1:-1, 1])
        assert np.array_equal(u[1:-1, -1], u[1:-1, -2])

    def test_corners_fully_zero(self, rng):
        u = rng.normal(size=(6, 6))
        v = rng.normal(size=(6, 6))
        set_velocity_boundary(u, v)
        for x, y in [(0, 0), (0, 5), (5, 0), (5, 5)]:
            assert u[x, y] == 0.0 and v[x, y] == 0.0


class TestDiagnostics:
    """Divergence, curl and housekeeping."""

    def test_divergence_of_linear_flow(self):
        f = Field(10, 10)
        f.u[:] = np.arange(10, dtype=float)[:, None]
        div = f.compute_divergence()
        assert np.allclose(div[1:-1, 1:-1], 1.0)
        assert not np.any(div[0, :]) and not np.any(div[:, -1])

    def test_curl_of_rigid_rotation(self):
        f = Field(12, 12)
        x, y = np.indices(f.shape, dtype=float)
        f.u[:] = -(y - 6.0)
        f.v[:] = x - 6.0
        curl = f.compute_curl()
        assert np.allclose(curl[1:-1, 1:-1], 2.0)

    def test_out_buffer_is_reused(self):
        f = Field(8, 8)
        out = f.compute_curl(out=f.curl)
        assert out is f.curl

    def test_clear(self, rng):
        f = Field(8, 8)
        for arr in f.grids().values():
            arr[:] = rng.normal(size=f.shape)
        f.clear()
        for arr in f.grids().values():
            assert not np.any(arr)

    def test_repr(self):
        assert "Field(8x8)" in repr(Field(8, 8))
