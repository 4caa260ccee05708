"""
Recheck policy: decides whether an injected torrent should start paused
so the daemon can verify the data before seeding.
"""

from enum import Enum
from typing import Callable, Optional

from .config import get_runtime_config
from .models import Searchee


class Decision(Enum):
    """Match decisions that lead to an injection."""
    MATCH = "MATCH"
    MATCH_SIZE_ONLY = "MATCH_SIZE_ONLY"
    MATCH_PARTIAL = "MATCH_PARTIAL"


RecheckPolicy = Callable[[Searchee, Decision], bool]


def should_recheck(
    searchee: Searchee,
    decision: Decision,
    skip_recheck: Optional[bool] = None,
) -> bool:
    """
    Return True if the new torrent should be added paused for a recheck.

    Partial and size-only matches, and searchees built from data on disk
    (no info hash), are never trusted without verification.
    """
    if skip_recheck is None:
        skip_recheck = get_runtime_config().skip_recheck
    if not skip_recheck:
        return True
    if decision in (Decision.MATCH_SIZE_ONLY, Decision.MATCH_PARTIAL):
        return True
    if not searchee.info_hash:
        return True
    return False
