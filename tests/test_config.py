import json

import numpy as np
import numpy.testing as npt
import pytest
import yaml
from pydantic import ValidationError

from spherescat.assembly import Method
from spherescat.config import SceneConfig, SolverConfig, load_scene

SCENE = {
    "scale": 1.0e-6,
    "background": {"epsilon_r": 1.7689},
    "materials": {"glass": {"refractive_index": 1.5, "chi2": 0.1}},
    "scatterers": [
        {"position": [0.0, 0.0, 0.0], "radius": 0.1, "material": "glass", "n_max": 2},
        {"position": [0.0, 0.0, 0.4], "radius": 0.1, "material": {"epsilon_r": 4.0}, "n_max": 2},
    ],
    "excitation": {"wavelength": 0.75, "polarization": "TM", "polar_angle": 0.2},
    "solver": {"method": "indirect", "backend": "GMRES", "tolerance": 1.0e-8},
}


@pytest.mark.parametrize("suffix", [".yaml", ".yml", ".json"])
def test_load_scene(tmp_path, suffix):
    path = tmp_path / f"scene{suffix}"
    with open(path, "w") as f:
        if suffix == ".json":
            json.dump(SCENE, f)
        else:
            yaml.safe_dump(SCENE, f)

    scene = load_scene(path)
    assert scene.solver.method == Method.INDIRECT
    assert scene.solver.backend == "gmres"
    assert scene.materials["glass"].refractive_index == 1.5


def test_build_scales_lengths():
    geometry, excitation, solver = SceneConfig.model_validate(SCENE).build()

    assert len(geometry) == 2
    npt.assert_allclose(geometry.objects[1].position, [0.0, 0.0, 0.4e-6])
    npt.assert_allclose(geometry.objects[0].radius, 0.1e-6)
    npt.assert_allclose(geometry.objects[0].elmag.refractive_index, 1.5)
    npt.assert_allclose(geometry.objects[0].elmag.chi2, 0.1)
    npt.assert_allclose(geometry.objects[1].elmag.epsilon_r, 4.0)
    npt.assert_allclose(geometry.background.refractive_index, 1.33)

    npt.assert_allclose(excitation.wavelength, 0.75e-6)
    npt.assert_allclose(excitation.wavenumber, 2 * np.pi / 0.75e-6 * 1.33)
    assert excitation.polar_angle == 0.2
    assert solver.tolerance == 1e-8


def test_unknown_extension(tmp_path):
    path = tmp_path / "scene.toml"
    path.write_text("")
    with pytest.raises(ValueError, match="Unknown file extension"):
        load_scene(path)


def test_empty_file(tmp_path):
    path = tmp_path / "scene.yaml"
    path.write_text("")
    with pytest.raises(ValueError, match="Could not read"):
        load_scene(path)


def test_unknown_backend():
    with pytest.raises(ValidationError):
        SolverConfig(backend="cholesky")


def test_solver_config_is_frozen():
    config = SolverConfig()
    assert config.method == Method.DIRECT
    assert config.backend == "direct"
    with pytest.raises(ValidationError):
        config.tolerance = 1.0


def test_undefined_material():
    scene = dict(SCENE, scatterers=[{"position": [0, 0, 0], "radius": 0.1, "material": "gold", "n_max": 2}])
    with pytest.raises(ValidationError, match="undefined material"):
        SceneConfig.model_validate(scene)


def test_invalid_scatterer():
    scene = dict(SCENE, scatterers=[{"position": [0, 0], "radius": 0.1, "material": "glass", "n_max": 2}])
    with pytest.raises(ValidationError):
        SceneConfig.model_validate(scene)
