from typing import Callable, Dict, Iterable, Optional


class QuorumMonitor:
    """Countdown plus quorum watcher for one voting round.

    ``tick()`` is driven once per second by the scheduler; ``observe()`` is
    fed the ids of users who have voted, either pushed right after a vote is
    accepted or re-read by the polling fallback.

    - all participants voted -> ``on_all_voted`` fires once and the
      countdown stops. It does not reveal or complete the round.
    - countdown reaches zero first -> ``on_time_up`` fires once.
    """

    def __init__(
        self,
        story_id: int,
        time_limit_minutes: int,
        participant_ids: Iterable[int],
        on_all_voted: Optional[Callable[['QuorumMonitor'], None]] = None,
        on_time_up: Optional[Callable[['QuorumMonitor'], None]] = None,
        remaining: Optional[int] = None,
    ):
        self.story_id = story_id
        self.participant_ids = frozenset(int(p) for p in participant_ids)
        self.remaining = int(time_limit_minutes) * 60 if remaining is None else max(0, int(remaining))
        self.voted = set()
        self.all_voted = False
        self.expired = False
        self.cancelled = False
        self._on_all_voted = on_all_voted
        self._on_time_up = on_time_up

    @property
    def running(self) -> bool:
        return not (self.all_voted or self.expired or self.cancelled)

    def statuses(self) -> Dict[int, bool]:
        return {pid: pid in self.voted for pid in sorted(self.participant_ids)}

    def observe(self, voter_ids: Iterable[int]) -> Dict[int, bool]:
        """Recompute per-participant ``has_voted`` from the current vote list."""
        self.voted = {int(v) for v in voter_ids} & self.participant_ids
        if (
            not self.all_voted
            and not self.expired
            and not self.cancelled
            and self.participant_ids
            and self.voted == self.participant_ids
        ):
            self.all_voted = True
            if self._on_all_voted:
                self._on_all_voted(self)
        return self.statuses()

    def tick(self, seconds: int = 1) -> int:
        if not self.running:
            return self.remaining
        self.remaining = max(0, self.remaining - int(seconds))
        if self.remaining == 0:
            self.expired = True
            if self._on_time_up:
                self._on_time_up(self)
        return self.remaining

    def cancel(self) -> None:
        self.cancelled = True
