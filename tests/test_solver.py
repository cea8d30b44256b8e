import numpy as np
import numpy.testing as npt
import pytest

from spherescat.config import SolverConfig
from spherescat.distributed import SerialWorkerGroup
from spherescat.electromagnetic import ElectroMagnetic
from spherescat.errors import ConfigurationError, LinearSolveError
from spherescat.excitation import PlaneWave
from spherescat.geometry import Geometry
from spherescat.harmonics import block_size
from spherescat.scatterer import Scatterer
from spherescat.solver import Result, Solver, State

GLASS = ElectroMagnetic.from_refractive_index(1.5, chi2=0.3)
SILICON = ElectroMagnetic.from_refractive_index(3.5 + 0.01j, chi2=1.0)


def _cluster(n_max=3):
    positions = [[0.0, 0.0, 0.0], [0.32, 0.0, 0.05], [0.1, 0.3, -0.1], [-0.25, 0.15, 0.2]]
    materials = [GLASS, SILICON, GLASS, SILICON]
    return Geometry([Scatterer(p, e, 0.12, n_max) for p, e in zip(positions, materials)])


@pytest.fixture
def wave():
    return PlaneWave.from_wavelength(1.0, polar_angle=0.5, azimuthal_angle=-0.4, polarization="TM")


def test_direct_and_indirect_solutions_agree(wave):
    geometry = _cluster()
    direct = Solver(geometry, wave, SolverConfig(method="direct")).solve()
    indirect = Solver(geometry, wave, SolverConfig(method="indirect")).solve()
    npt.assert_allclose(indirect.scattered, direct.scattered, rtol=1e-8, atol=1e-10)
    npt.assert_allclose(indirect.internal, direct.internal, rtol=1e-8, atol=1e-10)


@pytest.mark.parametrize("backend", ["gmres", "lgmres", "bicgstab"])
def test_krylov_backends_agree_with_dense(wave, backend):
    geometry = _cluster()
    dense = Solver(geometry, wave, SolverConfig(method="indirect")).solve()
    krylov = Solver(geometry, wave, SolverConfig(method="indirect", backend=backend, tolerance=1e-11)).solve()
    npt.assert_allclose(krylov.scattered, dense.scattered, rtol=1e-6, atol=1e-8)


@pytest.mark.parametrize("method", ["direct", "indirect"])
def test_distributed_backend_agrees_with_serial(wave, method):
    geometry = _cluster()
    config = SolverConfig(method=method)
    serial = Solver(geometry, wave, config).solve()

    distributed_config = SolverConfig(method=method, block_size=4, grid=(2, 2))
    solver = Solver(geometry, wave, distributed_config, workers=SerialWorkerGroup(4))
    distributed = solver.solve()
    npt.assert_allclose(distributed.scattered, serial.scattered, rtol=1e-9, atol=1e-10)
    npt.assert_allclose(distributed.internal, serial.internal, rtol=1e-9, atol=1e-10)


@pytest.mark.smoke
def test_single_sphere_is_its_mie_solution(wave):
    geometry = Geometry([Scatterer([0.2, -0.1, 0.3], SILICON, 0.15, 4)])
    result = Solver(geometry, wave).solve()
    t = geometry.local_operator_diagonal(wave.omega, 0, 4)
    npt.assert_allclose(result.scattered, t * wave.incoming_local(geometry.objects[0].position, 4))


def test_distant_spheres_approach_isolated_mie(wave):
    def error(distance):
        geometry = Geometry(
            [Scatterer([0.0, 0.0, 0.0], GLASS, 0.1, 1), Scatterer([distance, 0.0, 0.0], GLASS, 0.1, 1)]
        )
        result = Solver(geometry, wave).solve()
        width = 2 * block_size(1)
        isolated = geometry.local_operator_diagonal(wave.omega, 0, 1) * wave.incoming_local(np.zeros(3), 1)
        return np.linalg.norm(result.scattered[:width] - isolated) / np.linalg.norm(isolated)

    near, far = error(10.0), error(200.0)
    assert far < near
    assert far < 1e-2


def test_zero_scatterers(wave):
    solver = Solver(Geometry(), wave)
    result = solver.solve()
    assert result.scattered.shape == (0,)
    assert result.internal.shape == (0,)
    assert solver.state == State.SOLVED


def test_mismatched_degrees_raise_before_assembly(wave):
    geometry = Geometry([Scatterer([0, 0, 0], GLASS, 0.1, 2), Scatterer([0, 0, 0.5], GLASS, 0.1, 3)])
    with pytest.raises(ConfigurationError, match="same number of harmonics"):
        Solver(geometry, wave)


def test_state_transitions(wave):
    solver = Solver(_cluster(2), wave)
    assert solver.state == State.POPULATED
    system = solver.system

    first = solver.solve()
    assert solver.state == State.SOLVED
    assert solver.system is system
    second = solver.solve()
    npt.assert_array_equal(first.scattered, second.scattered)

    solver.update(excitation=wave.harmonic(2))
    assert solver.state == State.POPULATED
    assert solver.system is not system


def test_result_per_scatterer(wave):
    result = Solver(_cluster(2), wave).solve()
    scattered, internal = result.per_scatterer()
    assert scattered.shape == (4, 2, block_size(2))
    npt.assert_array_equal(scattered[1, 1], result.scattered[2 * 8 + 8 : 2 * 16])
    assert internal.shape == scattered.shape


def test_sh_repopulates_only_for_a_new_result(wave):
    geometry = _cluster(2)
    fundamental = Solver(geometry, wave).solve()

    solver = Solver(geometry, wave.harmonic(2), harmonic=fundamental)
    system = solver.system
    assert solver.harmonic is fundamental

    solver.sh(fundamental)
    assert solver.system is system

    other = Result(fundamental.scattered, 2 * fundamental.internal, fundamental.n_max, fundamental.omega)
    solver.sh(other)
    assert solver.system is not system
    npt.assert_allclose(solver.system.vector, 2 * system.vector)

    solver.sh(None)
    assert solver.harmonic is None


def test_update_drops_the_harmonic_input(wave):
    geometry = _cluster(2)
    fundamental = Solver(geometry, wave).solve()
    solver = Solver(geometry, wave.harmonic(2), harmonic=fundamental)
    solver.update()
    assert solver.harmonic is None


def test_second_harmonic_without_susceptibility_is_dark(wave):
    material = ElectroMagnetic.from_refractive_index(1.5)
    geometry = Geometry([Scatterer([0, 0, 0], material, 0.1, 2), Scatterer([0.3, 0, 0], material, 0.1, 2)])
    fundamental = Solver(geometry, wave).solve()
    assert np.abs(fundamental.scattered).max() > 0

    second = Solver(geometry, wave.harmonic(2), harmonic=fundamental).solve()
    npt.assert_array_equal(second.scattered, 0)
    npt.assert_array_equal(second.internal, 0)


def test_second_harmonic_direct_and_indirect_agree(wave):
    geometry = _cluster(2)
    fundamental = Solver(geometry, wave).solve()
    sh_wave = wave.harmonic(2)
    direct = Solver(geometry, sh_wave, SolverConfig(method="direct"), harmonic=fundamental).solve()
    indirect = Solver(geometry, sh_wave, SolverConfig(method="indirect"), harmonic=fundamental).solve()
    assert np.abs(direct.scattered).max() > 0
    npt.assert_allclose(indirect.scattered, direct.scattered, rtol=1e-8, atol=1e-10)
    assert direct.omega == pytest.approx(2 * fundamental.omega)


def test_harmonic_degree_must_match(wave):
    fundamental = Solver(_cluster(2), wave).solve()
    with pytest.raises(ValueError, match="n_max"):
        Solver(_cluster(3), wave.harmonic(2), harmonic=fundamental)


def test_krylov_failure_raises(wave):
    config = SolverConfig(method="indirect", backend="gmres", tolerance=1e-14, max_iter=1, restart=1)
    solver = Solver(_cluster(), wave, config)
    with pytest.raises(LinearSolveError) as error:
        solver.solve()
    assert error.value.backend == "gmres"
    assert error.value.status > 0


def test_process_grid_larger_than_group_is_rejected(wave):
    config = SolverConfig(grid=(3, 3))
    with pytest.raises(ConfigurationError, match="needs 9 workers"):
        Solver(_cluster(2), wave, config, workers=SerialWorkerGroup(4))
