"""Version tokens for the resource verbs."""
import time
from typing import Optional

from .models import NONE_VERSION, Version
from .protocols import IClock


def system_clock() -> float:
    return time.time()


def synthesize_version(clock: Optional[IClock] = None) -> Version:
    """
    Stamp a version from the current Unix time in whole seconds.

    The token orders publishes; it says nothing about content. Two
    invocations within the same second get the same token.
    """
    now = (clock or system_clock)()
    return Version(timestamp=str(max(int(now), 0)))


def resolve_in_version(version: Optional[Version]) -> Version:
    """Echo the requested version, or the ``none`` placeholder."""
    if version is None or version.is_empty:
        return Version(timestamp=NONE_VERSION)
    return version
