"""Configuration models.

A scene file (JSON or YAML) describes the background, the materials, the
spheres, the incident plane wave and the solver settings::

    scale: 1.0e-6
    background: {epsilon_r: 1.0}
    materials:
      glass: {refractive_index: 1.5}
    scatterers:
      - {position: [0, 0, 0], radius: 0.5, material: glass, n_max: 4}
      - {position: [0, 0, 1.5], radius: 0.5, material: glass, n_max: 4}
    excitation: {wavelength: 0.75, polarization: TE}
    solver: {method: indirect, backend: gmres, tolerance: 1.0e-8}

Lengths are multiplied by ``scale``.
"""

from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing_extensions import Self

from spherescat.assembly import Method
from spherescat.electromagnetic import ElectroMagnetic
from spherescat.excitation import PlaneWave
from spherescat.geometry import Geometry
from spherescat.scatterer import Scatterer

BACKENDS = ("direct", "gmres", "lgmres", "bicgstab")


class SolverConfig(BaseModel):
    """Settings of the assembly formulation and the linear-system backend."""

    model_config = ConfigDict(frozen=True)

    method: Method = Field(default=Method.DIRECT)
    backend: str = Field(default="direct")
    tolerance: float = Field(default=1e-6, gt=0)
    max_iter: int = Field(default=1000, ge=1)
    restart: int = Field(default=100, ge=1)
    block_size: int = Field(default=64, ge=1)
    grid: tuple[int, int] | None = Field(default=None)

    @field_validator("backend")
    @classmethod
    def known_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}, got {value!r}")
        return value


class MaterialConfig(BaseModel):
    epsilon_r: complex = Field(default=1.0)
    mu_r: complex = Field(default=1.0)
    chi2: complex = Field(default=0.0)
    refractive_index: complex | None = Field(default=None)

    def build(self) -> ElectroMagnetic:
        if self.refractive_index is not None:
            return ElectroMagnetic.from_refractive_index(self.refractive_index, self.mu_r, self.chi2)
        return ElectroMagnetic(self.epsilon_r, self.mu_r, self.chi2)


class ScattererConfig(BaseModel):
    position: list[float] = Field(min_length=3, max_length=3)
    radius: float = Field(gt=0)
    material: str | MaterialConfig
    n_max: int = Field(ge=1)


class PlaneWaveConfig(BaseModel):
    wavelength: float = Field(gt=0)
    polar_angle: float = Field(default=0.0)
    azimuthal_angle: float = Field(default=0.0)
    polarization: str = Field(default="TE", pattern=r"^(TE|TM)$")
    amplitude: complex = Field(default=1.0)


class SceneConfig(BaseModel):
    scale: float = Field(default=1.0, gt=0)
    background: MaterialConfig = Field(default_factory=MaterialConfig)
    materials: dict[str, MaterialConfig] = Field(default_factory=dict)
    scatterers: list[ScattererConfig] = Field(default_factory=list)
    excitation: PlaneWaveConfig
    solver: SolverConfig = Field(default_factory=SolverConfig)

    @model_validator(mode="after")
    def materials_defined(self) -> Self:
        for index, scatterer in enumerate(self.scatterers):
            if isinstance(scatterer.material, str) and scatterer.material not in self.materials:
                raise ValueError(f"Scatterer {index} uses undefined material {scatterer.material!r}")
        return self

    def build(self) -> tuple[Geometry, PlaneWave, SolverConfig]:
        """Geometry, excitation and solver settings described by the scene."""
        background = self.background.build()
        materials = {name: material.build() for name, material in self.materials.items()}

        geometry = Geometry(background=background)
        for scatterer in self.scatterers:
            if isinstance(scatterer.material, str):
                elmag = materials[scatterer.material]
            else:
                elmag = scatterer.material.build()
            geometry.push_object(
                Scatterer(
                    [self.scale * x for x in scatterer.position],
                    elmag,
                    self.scale * scatterer.radius,
                    scatterer.n_max,
                )
            )

        excitation = PlaneWave.from_wavelength(
            self.scale * self.excitation.wavelength,
            polar_angle=self.excitation.polar_angle,
            azimuthal_angle=self.excitation.azimuthal_angle,
            polarization=self.excitation.polarization,
            amplitude=self.excitation.amplitude,
            background=background,
        )
        return geometry, excitation, self.solver


def load_scene(path: str | Path) -> SceneConfig:
    """Read a scene from a JSON or YAML file."""
    path = Path(path)
    match path.suffix:
        case ".json":
            with open(path) as data:
                content = json.load(data)
        case ".yaml" | ".yml":
            with open(path) as data:
                content = yaml.safe_load(data)
        case _:
            raise ValueError(f"Unknown file extension {path.suffix}, use json or yaml")
    if content is None:
        raise ValueError(f"Could not read scene file {path}")
    return SceneConfig.model_validate(content)
