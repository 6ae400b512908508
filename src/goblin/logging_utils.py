from __future__ import annotations

import logging
import os
import sys

_CONFIGURED_ATTR = "_goblin_configured"


def configure_logging(*, verbose: bool = False) -> int:
    """
    Attach a single stderr handler to the ``goblin`` logger.

    The level comes from ``--verbose`` (DEBUG), then ``GOBLIN_LOG_LEVEL``,
    then WARNING. Calling this more than once only adjusts the level.
    Returns the effective level.
    """
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif env := os.getenv("GOBLIN_LOG_LEVEL"):
        resolved = logging.getLevelName(env.strip().upper())
        if isinstance(resolved, int):
            level = resolved

    logger = logging.getLogger("goblin")
    logger.setLevel(level)
    if getattr(logger, _CONFIGURED_ATTR, False):
        return level

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    )
    logger.addHandler(handler)
    logger.propagate = False
    setattr(logger, _CONFIGURED_ATTR, True)
    return level
