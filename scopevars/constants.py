"""Shared constant values for the scopevars runtime."""

import os

ENV_VAR = "SCOPEVARS_ENV"

DEVELOPMENT_ENVIRONMENTS = ("development", "dev", "test")
PRODUCTION_ENVIRONMENTS = ("production", "prod")


def _detect_development_mode(environ=None):
    """Resolve the development flag from the environment, then ``__debug__``."""

    environ = os.environ if environ is None else environ
    value = (environ.get(ENV_VAR) or "").strip().lower()
    if value in DEVELOPMENT_ENVIRONMENTS:
        return True
    if value in PRODUCTION_ENVIRONMENTS:
        return False
    return __debug__


DEVELOPMENT_MODE = _detect_development_mode()

TABLE_KINDS = ("self", "gateway")

VISIBILITY_PRIVATE = "private"
VISIBILITY_PUBLIC = "public"
VISIBILITY_ALIASED = "aliased"

CELL_COLORS = {
    "value": "#8BC34A",
    "computed": "#FFEB3B",
    "inherited": "#90CAF9",
}

PRIVATE_COLOR = "#B0BEC5"

__all__ = [
    "CELL_COLORS",
    "DEVELOPMENT_ENVIRONMENTS",
    "DEVELOPMENT_MODE",
    "ENV_VAR",
    "PRIVATE_COLOR",
    "PRODUCTION_ENVIRONMENTS",
    "TABLE_KINDS",
    "VISIBILITY_ALIASED",
    "VISIBILITY_PRIVATE",
    "VISIBILITY_PUBLIC",
]
