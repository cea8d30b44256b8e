import logging

import click
import numpy as np

from spherescat import log
from spherescat.config import load_scene
from spherescat.solver import Solver


@click.group()
@click.option("--verbose", "-v", count=True, help="Increase verbosity (-v info, -vv numerics).")
def cli(verbose: int) -> None:
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, log.NUMERICS)
    log.scattering_logger("spherescat", level=level)


@cli.command()
@click.option(
    "--config",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Specify the path to the scene file (json or yaml).",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    default=None,
    help="Save the scattered and internal coefficients to this .npz file.",
)
def solve(config: str, output: str | None) -> None:
    geometry, excitation, solver_config = load_scene(config).build()
    result = Solver(geometry, excitation, solver_config).solve()

    scattered, internal = result.per_scatterer()
    for index in range(scattered.shape[0]):
        click.echo(
            f"scatterer {index}: |scattered| = {np.linalg.norm(scattered[index]):.6e}, "
            f"|internal| = {np.linalg.norm(internal[index]):.6e}"
        )

    if output is not None:
        np.savez(
            output,
            scattered=result.scattered,
            internal=result.internal,
            n_max=result.n_max,
            omega=result.omega,
        )
        click.echo(f"saved coefficients to {output}")
