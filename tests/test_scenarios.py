"""
Integration test: run shipped scenarios end to end through the runner.

Run: pytest tests/test_scenarios.py -v
"""

import tempfile
from pathlib import Path

import numpy as np
import pytest

SCENARIO_DIR = Path(__file__).resolve().parent.parent / "scenarios"


def _load_snapshot(path: Path) -> tuple[list[str], np.ndarray]:
    """Return (column names, data) of a txt monitor snapshot."""
    with open(path) as f:
        f.readline()
        columns = f.readline().lstrip("#").split()
    return columns, np.loadtxt(path, comments="#", ndmin=2)


def test_impulse_translation_scenario():
    """The unit impulse at cell 10 reaches cell 20 after 10 unit steps."""
    from advectsim.config import load_config
    from advectsim.runner import run_simulation

    config = load_config(SCENARIO_DIR / "impulse_translation_1d.yaml")
    with tempfile.TemporaryDirectory() as tmpdir:
        config.output.directory = tmpdir
        fields = run_simulation(config)

        phi = fields["phi"].current
        assert np.argmax(phi) == 20
        assert phi[20] == 1.0

        txt_dir = Path(tmpdir) / "txt"
        assert (txt_dir / "snapshot_00000.txt").exists()
        assert (txt_dir / "snapshot_00001.txt").exists()

        columns, data = _load_snapshot(txt_dir / "snapshot_00001.txt")
        assert columns == ["x", "phi"]
        assert data.shape == (100, 2)
        assert data[np.argmax(data[:, 1]), 0] == pytest.approx(20.5)


def test_square_pulse_limited_stays_bounded():
    from advectsim.config import load_config
    from advectsim.runner import run_simulation

    config = load_config(SCENARIO_DIR / "square_pulse_limited_1d.yaml")
    config.output.monitors = []
    config.time.n_steps = 200
    with tempfile.TemporaryDirectory() as tmpdir:
        config.output.directory = tmpdir
        u = run_simulation(config)["u"].current

    assert u.max() <= 10.0 + 1e-9
    assert u.min() >= -1e-9
    # Pulse started on [0.5, 1.0) and moved 200 * 0.01666 * 0.5 = 1.666
    x = 0.05 * (np.arange(200) + 0.5)
    centre = np.sum(x * u) / np.sum(u)
    assert centre == pytest.approx(0.75 + 1.666, abs=0.1)


def test_build_integrator_is_ready():
    from advectsim.config import load_config
    from advectsim.integrator import IntegratorState
    from advectsim.runner import build_integrator

    config = load_config(SCENARIO_DIR / "rotating_2d.yaml")
    integrator = build_integrator(config)
    assert integrator.state is IntegratorState.READY
    assert integrator.grid.shape == (128, 128)
    assert integrator.scheme.workers == 4
    assert integrator.clock.cfl == config.time.cfl


@pytest.mark.parametrize(
    "name, n_steps",
    [("rotating_2d", 3), ("burgers_1d", 20), ("shear_3d", 2), ("square_pulse_1d", 5)],
)
def test_scenarios_run_with_image_output(name: str, n_steps: int):
    from advectsim.config import load_config
    from advectsim.runner import run_simulation

    config = load_config(SCENARIO_DIR / f"{name}.yaml")
    config.time.n_steps = n_steps
    config.output.monitors = [m for m in config.output.monitors if m.type != "console"]
    with tempfile.TemporaryDirectory() as tmpdir:
        config.output.directory = tmpdir
        fields = run_simulation(config)

        for field in fields.values():
            assert np.all(np.isfinite(field.current))
        images = [p for p in Path(tmpdir).iterdir() if p.suffix in (".png", ".pdf", ".svg")]
        assert images, f"no image written for {name}"


def test_txt_monitor_writes_vector_components():
    from advectsim.config import SimulationConfig
    from advectsim.runner import run_simulation

    with tempfile.TemporaryDirectory() as tmpdir:
        config = SimulationConfig.model_validate({
            "grid": {"shape": [6, 4], "cell_size": 0.25},
            "scheme": {"type": "semi-lagrangian"},
            "velocity": {"type": "self", "field": "v"},
            "fields": [{"name": "v", "initial_condition": ["0.1", "-0.1"]}],
            "time": {"n_steps": 2, "dt": 0.5},
            "output": {
                "directory": tmpdir,
                "monitors": [{"type": "txt", "every_n_steps": 1}],
            },
        })
        run_simulation(config)

        files = sorted((Path(tmpdir) / "txt").glob("snapshot_*.txt"))
        assert len(files) == 3
        columns, data = _load_snapshot(files[-1])
        assert columns == ["x", "y", "v_0", "v_1"]
        assert data.shape == (24, 4)
        np.testing.assert_allclose(data[:, 2], 0.1)
        np.testing.assert_allclose(data[:, 3], -0.1)
