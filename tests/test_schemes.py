"""
Unit test: advection schemes.

Covers the maximum principle, semi-Lagrangian stability against a diverging
raw upwind step, pulse translation, accuracy ordering and worker-thread
determinism.
Run: pytest tests/test_schemes.py -v
"""

import numpy as np
import pytest

from advectsim.boundary import BoundaryConditions, Clamped, Fixed, Periodic
from advectsim.errors import InvalidTimeStep, OutOfDomain, ShapeMismatch
from advectsim.grid import Grid
from advectsim.limiters import LIMITERS, get_limiter, minmod
from advectsim.schemes import (
    SCHEMES,
    LaxFriedrichsScheme,
    LaxWendroffScheme,
    SemiLagrangianScheme,
    UpwindScheme,
    create_scheme,
)


def _square_pulse_grid(n: int = 64) -> Grid:
    grid = Grid((n,))
    values = np.zeros(n)
    values[n // 4: n // 2] = 1.0
    grid.add_field("phi", initial=values)
    return grid


def _blob_grid(n: int = 32, boundary=None) -> Grid:
    grid = Grid((n, n), cell_size=1.0 / n, boundary=boundary)
    x, y = grid.cell_centers()
    grid.add_field("phi", initial=np.where((abs(x - 0.4) < 0.15) & (abs(y - 0.5) < 0.2), 1.0, 0.0))
    return grid


def _run(scheme, grid: Grid, velocity: np.ndarray, dt: float, n_steps: int) -> list[np.ndarray]:
    field = grid.field()
    history = []
    for _ in range(n_steps):
        scheme.advect(grid, velocity, dt, out=field.next)
        grid.step_swap()
        history.append(field.current.copy())
    return history


def _rotation(grid: Grid) -> np.ndarray:
    x, y = grid.cell_centers()
    return np.stack([-(y - 0.5), x - 0.5], axis=-1) * 2.0 * np.pi


# ---------------------------------------------------------------------------
# Maximum principle
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "scheme",
    [UpwindScheme()]
    + [LaxWendroffScheme(limiter=name) for name in sorted(LIMITERS)]
    + [LaxWendroffScheme(limiter="clamp"), LaxFriedrichsScheme()],
    ids=repr,
)
@pytest.mark.parametrize("speed", [0.7, -0.45])
def test_maximum_principle_1d(scheme, speed: float):
    grid = _square_pulse_grid()
    velocity = np.full((64, 1), speed)
    dt = 0.9 / abs(speed)
    if isinstance(scheme, LaxFriedrichsScheme):
        dt = 0.5 / abs(speed)

    for values in _run(scheme, grid, velocity, dt, 150):
        assert values.max() <= 1.0 + 1e-12
        assert values.min() >= -1e-12


@pytest.mark.parametrize(
    "scheme",
    [LaxWendroffScheme(limiter="minmod"), LaxWendroffScheme(limiter="mc"),
     LaxWendroffScheme(limiter="clamp")],
    ids=repr,
)
def test_maximum_principle_2d_limited(scheme):
    grid = _blob_grid()
    velocity = np.broadcast_to([0.6, -0.3], (32, 32, 2))
    dt = 0.5 / (0.6 * 32 + 0.3 * 32)

    for values in _run(scheme, grid, velocity, dt, 60):
        assert values.max() <= 1.0 + 1e-12
        assert values.min() >= -1e-12


def test_maximum_principle_upwind_rotation():
    """Divergence-free but non-uniform velocity."""
    grid = _blob_grid()
    velocity = _rotation(grid)
    rate = UpwindScheme().courant_rate(velocity, grid.spacing)

    for values in _run(UpwindScheme(), grid, velocity, 0.95 / rate, 80):
        assert values.max() <= 1.0 + 1e-12
        assert values.min() >= -1e-12


def test_unlimited_lax_wendroff_overshoots():
    grid = _square_pulse_grid()
    history = _run(LaxWendroffScheme(limiter=None), grid, np.full((64, 1), 1.0), 0.5, 20)
    assert history[-1].max() > 1.0 + 1e-3


# ---------------------------------------------------------------------------
# Stability contrast
# ---------------------------------------------------------------------------

def _sine_grid(n: int = 64) -> Grid:
    grid = Grid((n,))
    (x,) = grid.cell_centers()
    grid.add_field("phi", initial=np.sin(2.0 * np.pi * x / n))
    return grid


def test_semi_lagrangian_stable_at_ten_times_cfl():
    grid = _sine_grid()
    velocity = np.full((64, 1), 0.73)
    # Ten times the stable step at Courant number 0.37
    dt = 10.0 * 0.37 / UpwindScheme().courant_rate(velocity, grid.spacing)
    lo, hi = grid.field().current.min(), grid.field().current.max()

    for values in _run(SemiLagrangianScheme(), grid, velocity, dt, 40):
        assert values.max() <= hi + 1e-12
        assert values.min() >= lo - 1e-12


def test_raw_upwind_diverges_at_ten_times_cfl():
    grid = _sine_grid()
    velocity = np.full((64, 1), 0.73)
    dt = 10.0 / UpwindScheme().courant_rate(velocity, grid.spacing)

    history = _run(UpwindScheme(), grid, velocity, dt, 40)
    assert not np.all(np.isfinite(history[-1])) or np.abs(history[-1]).max() > 1e3


def test_semi_lagrangian_rotation_stays_bounded():
    grid = _blob_grid(boundary=BoundaryConditions.uniform(Clamped(), 2))
    velocity = _rotation(grid)
    scheme = SemiLagrangianScheme(order=2, substeps=3)
    for values in _run(scheme, grid, velocity, 0.05, 20):
        assert values.max() <= 1.0 + 1e-12
        assert values.min() >= -1e-12


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------

def _impulse_grid() -> Grid:
    grid = Grid((100,))
    values = np.zeros(100)
    values[10] = 1.0
    grid.add_field("phi", initial=values)
    return grid


def test_upwind_exact_shift_at_unit_courant():
    grid = _impulse_grid()
    final = _run(UpwindScheme(), grid, np.ones((100, 1)), 1.0, 10)[-1]
    assert np.argmax(final) == 20
    assert final[20] == 1.0
    assert final.sum() == 1.0


def test_upwind_smeared_peak_centred():
    grid = _impulse_grid()
    final = _run(UpwindScheme(), grid, np.ones((100, 1)), 0.5, 20)[-1]
    assert np.argmax(final) == 20
    assert final[20] < 0.5
    assert final.sum() == pytest.approx(1.0)


@pytest.mark.parametrize("dt, n_steps", [(1.0, 10), (2.5, 4)])
def test_semi_lagrangian_translation(dt: float, n_steps: int):
    grid = _impulse_grid()
    final = _run(SemiLagrangianScheme(), grid, np.ones((100, 1)), dt, n_steps)[-1]
    assert np.argmax(final) == 20
    if dt == 1.0:
        assert final[20] == 1.0


def test_vector_field_components_move_together():
    grid = Grid((6, 5))
    values = np.random.default_rng(3).random((6, 5, 2))
    grid.add_field("v", components=2, initial=values)
    velocity = np.broadcast_to([1.0, 0.0], (6, 5, 2))
    out = UpwindScheme().advect(grid, velocity, 1.0, name="v")
    np.testing.assert_allclose(out, np.roll(values, 1, axis=0), rtol=0, atol=1e-14)


# ---------------------------------------------------------------------------
# Accuracy
# ---------------------------------------------------------------------------

def test_lax_wendroff_more_accurate_than_upwind():
    n, speed, dt, n_steps = 64, 1.0, 0.5, 64
    exact = np.sin(2.0 * np.pi * (np.arange(n) + 0.5 - speed * dt * n_steps) / n)
    errors = {}
    for scheme in (UpwindScheme(), LaxWendroffScheme(limiter=None)):
        grid = _sine_grid(n)
        final = _run(scheme, grid, np.full((n, 1), speed), dt, n_steps)[-1]
        errors[scheme.name] = np.abs(final - exact).max()
    assert errors["lax-wendroff"] < 0.2 * errors["upwind"]


def test_semi_lagrangian_order_and_substeps_agree_for_uniform_flow():
    velocity = np.broadcast_to([0.3, -0.2], (32, 32, 2))
    results = []
    for scheme in (SemiLagrangianScheme(), SemiLagrangianScheme(order=2),
                   SemiLagrangianScheme(substeps=4)):
        grid = _blob_grid()
        results.append(scheme.advect(grid, velocity, 0.07))
    np.testing.assert_allclose(results[1], results[0], atol=1e-12)
    np.testing.assert_allclose(results[2], results[0], atol=1e-12)


# ---------------------------------------------------------------------------
# Contract and errors
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("name", sorted(SCHEMES))
@pytest.mark.parametrize("dt", [0.0, -0.1, float("nan"), float("inf")])
def test_invalid_time_step(name: str, dt: float):
    grid = _square_pulse_grid()
    with pytest.raises(InvalidTimeStep):
        create_scheme(name).advect(grid, np.ones((64, 1)), dt)


@pytest.mark.parametrize("name", sorted(SCHEMES))
def test_velocity_shape_mismatch(name: str):
    grid = _square_pulse_grid()
    with pytest.raises(ShapeMismatch):
        create_scheme(name).advect(grid, np.ones((32, 1)), 0.1)
    with pytest.raises(ShapeMismatch):
        create_scheme(name).advect(grid, np.ones((64, 2)), 0.1)


@pytest.mark.parametrize("name", sorted(SCHEMES))
def test_advect_does_not_mutate_current(name: str):
    grid = _blob_grid()
    before = grid.field().current.copy()
    out = create_scheme(name).advect(grid, _rotation(grid), 0.01)
    np.testing.assert_array_equal(grid.field().current, before)
    assert not np.shares_memory(out, grid.field().current)


def test_output_buffer_checks():
    grid = _square_pulse_grid()
    scheme = UpwindScheme()
    with pytest.raises(ShapeMismatch):
        scheme.advect(grid, np.ones((64, 1)), 0.1, out=np.empty(10))
    with pytest.raises(ValueError):
        scheme.advect(grid, np.ones((64, 1)), 0.1, out=grid.field().current)


def test_strict_boundary_refuses_finite_differences():
    grid = Grid((8,), boundary=BoundaryConditions([Fixed(0.0, strict=True)]))
    grid.add_field("phi", initial=np.ones(8))
    with pytest.raises(OutOfDomain):
        UpwindScheme().advect(grid, np.ones((8, 1)), 0.1)
    # Interior backtraces never leave the grid
    out = SemiLagrangianScheme().advect(grid, np.zeros((8, 1)), 0.1)
    np.testing.assert_array_equal(out, np.ones(8))


@pytest.mark.parametrize("name", sorted(SCHEMES))
def test_workers_are_bit_identical(name: str):
    velocity = None
    results = []
    for workers in (1, 3, 8):
        grid = _blob_grid(boundary=BoundaryConditions([Periodic(), Fixed(0.25)]))
        velocity = _rotation(grid)
        results.append(create_scheme(name, workers=workers).advect(grid, velocity, 0.004))
    np.testing.assert_array_equal(results[1], results[0])
    np.testing.assert_array_equal(results[2], results[0])


def test_courant_rates():
    velocity = np.zeros((4, 4, 2))
    velocity[1, 2] = [2.0, -1.0]
    velocity[3, 3] = [0.0, 3.0]
    spacing = (0.5, 1.0)
    assert UpwindScheme().courant_rate(velocity, spacing) == 5.0
    assert LaxFriedrichsScheme().courant_rate(velocity, spacing) == 8.0
    assert not SemiLagrangianScheme().cfl_limited
    assert UpwindScheme().cfl_limited


def test_unknown_names():
    with pytest.raises(KeyError):
        create_scheme("spectral")
    with pytest.raises(KeyError):
        get_limiter("koren")
    with pytest.raises(KeyError):
        LaxWendroffScheme(limiter="koren")
    with pytest.raises(ValueError):
        SemiLagrangianScheme(order=3)
    with pytest.raises(ValueError):
        UpwindScheme(workers=0)


def test_limiters_in_tvd_region():
    r = np.linspace(-2.0, 6.0, 81)
    for name, phi in LIMITERS.items():
        values = phi(r)
        assert np.all(values >= 0.0), name
        assert np.all(values <= np.maximum(0.0, np.minimum(2.0 * r, 2.0)) + 1e-12), name
        assert phi(np.array([1.0]))[0] == pytest.approx(1.0), name
    np.testing.assert_array_equal(minmod(np.array([1.0, -2.0, 3.0]), np.array([2.0, 1.0, -1.0])),
                                  [1.0, 0.0, 0.0])
