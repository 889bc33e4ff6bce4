"""Session-scoped single-flight gate for item identifiers."""

from __future__ import annotations

from feedfilter.core.logging import get_logger

logger = get_logger(__name__)


class DedupTracker:
    """Set of identifiers already submitted for evaluation this session.

    try_claim() does its check and insert with no suspension point in
    between, so on a single event loop two overlapping mutation callbacks
    for the same identifier cannot both win.
    """

    def __init__(self) -> None:
        self._claimed: set[str] = set()

    def try_claim(self, identifier: str) -> bool:
        """Claim an identifier.

        Returns:
            True on the first claim, False on every later one
        """
        if identifier in self._claimed:
            return False
        self._claimed.add(identifier)
        return True

    def release(self, identifier: str) -> bool:
        """Drop one claim so the identifier can be claimed again.

        Returns:
            True if the identifier was claimed
        """
        if identifier not in self._claimed:
            return False
        self._claimed.discard(identifier)
        return True

    def reset(self) -> int:
        """Forget all claims.

        Returns:
            Number of claims dropped
        """
        count = len(self._claimed)
        self._claimed.clear()
        if count:
            logger.debug("dedup_tracker_reset", dropped=count)
        return count

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._claimed

    def __len__(self) -> int:
        return len(self._claimed)
