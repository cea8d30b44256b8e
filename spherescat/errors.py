"""Exceptions raised by the assembly and solve pipeline."""


class ConfigurationError(ValueError):
    """Inconsistent set-up detected before assembly or solve.

    Raised for scatterers with differing maximum degrees, overlapping
    spheres or spheres of the background material, an excitation in another
    medium than the scatterers, unknown backends and process grids that do
    not fit the worker group. The caller has to fix the configuration and
    start over.
    """


class LinearSolveError(RuntimeError):
    """A linear-system backend reported a non-zero status."""

    def __init__(self, backend: str, status: int, message: str | None = None):
        self.backend = backend
        self.status = int(status)
        if message is None:
            message = (
                f"Error encountered while solving the linear system "
                f"(backend={backend}, status={self.status})"
            )
        super().__init__(message)
