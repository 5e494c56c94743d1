"""First-resolver-wins result slot for the strategy race."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from .candidate_filter import is_video_candidate

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Candidate:
    """A URL proposed by one strategy."""

    url: str
    strategy: str


class RaceSlot:
    """Holds the committed winner of one race.

    Only the first candidate passing *accept* is committed; every later
    commit is a logged no-op, so a late resolution can never overwrite the
    winner.
    """

    def __init__(self, accept: Callable[[str], bool] = is_video_candidate) -> None:
        self._accept = accept
        self._winner: Candidate | None = None
        self.discarded: list[Candidate] = []

    @property
    def settled(self) -> bool:
        return self._winner is not None

    @property
    def winner(self) -> Candidate | None:
        return self._winner

    def commit(self, candidate: Candidate | None) -> bool:
        """Try to commit *candidate*. Returns True only for the winner."""
        if candidate is None:
            return False
        if self._winner is not None:
            self.discarded.append(candidate)
            log.debug(
                "race_result_discarded",
                strategy=candidate.strategy,
                winner=self._winner.strategy,
            )
            return False
        if not self._accept(candidate.url):
            log.debug(
                "race_candidate_rejected",
                strategy=candidate.strategy,
                url=candidate.url[:120],
            )
            return False
        self._winner = candidate
        return True
