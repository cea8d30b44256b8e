"""Logging helpers.

The package logs through the standard :mod:`logging` module. On top of the
usual levels a ``NUMERICS`` level sits between ``DEBUG`` and ``INFO``; it is
used for per-iteration output of the linear solvers, which is too chatty for
``INFO`` but more useful than general debug output.
"""

import logging

NUMERICS = 15
_FORMAT = "%(levelname)-8s - %(name)-30s - %(message)s"

logging.addLevelName(NUMERICS, "NUMERICS")


def _numerics(self, message, *args, **kwargs):
    if self.isEnabledFor(NUMERICS):
        self._log(NUMERICS, message, args, **kwargs)


logging.Logger.numerics = _numerics


def scattering_logger(name: str, level: int | None = None) -> logging.Logger:
    """Return the logger for ``name`` with the package handler attached.

    Parameters
    ----------
    name : str
        Logger name, usually ``__name__`` of the calling module.
    level : int, optional
        Level to set on the logger. The logger level is left untouched when
        not given.

    Returns
    -------
    logging.Logger
        The configured logger.
    """
    root = logging.getLogger(name.split(".")[0])
    if not any(getattr(h, "_spherescat", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._spherescat = True
        root.addHandler(handler)

    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger
