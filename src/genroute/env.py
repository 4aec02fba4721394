"""Runtime environment introspection for diagnostic headers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version
import logging
import platform

log = logging.getLogger(__name__)

DIST_NAME = "genroute"
LIBRARY_NAME = "genroute-py"


@dataclass(frozen=True)
class RuntimeEnvironment:
    """Name/version facts about the running library and interpreter."""

    library: str
    library_version: str
    runtime: str = "python"
    runtime_version: str = ""


@lru_cache(maxsize=1)
def get_runtime_environment() -> RuntimeEnvironment | None:
    """Return the library/version pair, or None when it cannot be determined."""
    try:
        library_version = version(DIST_NAME)
    except PackageNotFoundError:
        log.debug("Distribution %r not installed; runtime environment unknown", DIST_NAME)
        return None
    return RuntimeEnvironment(
        library=LIBRARY_NAME,
        library_version=library_version,
        runtime_version=platform.python_version(),
    )
