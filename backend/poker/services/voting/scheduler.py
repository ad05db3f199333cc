import time
from typing import Dict, Iterable

from poker import socketio
from poker.models import Story, STORY_VOTING
from .errors import VotingError
from .monitor import QuorumMonitor
from .rounds import broadcast, directory, expire_round, votes


_active_monitors: Dict[int, QuorumMonitor] = {}


def get_monitor(story_id: int):
    return _active_monitors.get(int(story_id))


def schedule_round_timer(app, story_id: int) -> None:
    """Start the countdown/quorum monitor for a story that just entered voting.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Ensures a single monitor per story
    - Ticks every TICK_INTERVAL_SEC and re-reads the vote list every
      POLL_INTERVAL_SEC as a fallback to pushed votes
    - Expires the round when the countdown hits zero before quorum
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return

    with app.app_context():
        story = Story.query.filter_by(id=story_id).first()
        if not story or story.status != STORY_VOTING:
            return

        if story.id in _active_monitors:
            app.logger.info(f"[timer-skip] story={story.id} already scheduled")
            return

        remaining = None
        if story.voting_deadline is not None:
            remaining = int(round(story.voting_deadline - time.time()))

        def _all_voted(mon: QuorumMonitor) -> None:
            app.logger.info(f"[quorum] story={mon.story_id} participants={len(mon.participant_ids)}")
            broadcast('all_voted', mon.story_id, {'participants': sorted(mon.participant_ids)})

        def _time_up(mon: QuorumMonitor) -> None:
            app.logger.info(f"[timer-fire] story={mon.story_id} voted={len(mon.voted)}/{len(mon.participant_ids)}")
            try:
                expire_round(mon.story_id, check_deadline=False)
            except VotingError as exc:
                app.logger.info(f"[timer-abort] story={mon.story_id} reason={exc.message}")

        monitor = QuorumMonitor(
            story.id,
            story.time_limit_minutes,
            [u.id for u in directory.for_story(story)],
            on_all_voted=_all_voted,
            on_time_up=_time_up,
            remaining=remaining,
        )
        _active_monitors[story.id] = monitor
        monitor.observe(v.user_id for v in votes.list_by_story(story.id))
        app.logger.info(
            f"[timer-set] story={story.id} remaining={monitor.remaining}s participants={len(monitor.participant_ids)}"
        )

    def _worker(sid: int, mon: QuorumMonitor):
        tick = max(1, int(app.config.get('TICK_INTERVAL_SEC', 1)))
        poll_every = max(1, int(app.config.get('POLL_INTERVAL_SEC', 5)))
        try:
            hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0))
        except (TypeError, ValueError):
            hb = 0
        elapsed = 0
        try:
            while mon.running:
                socketio.sleep(tick)
                elapsed += tick
                with app.app_context():
                    if elapsed % poll_every < tick:
                        s = Story.query.filter_by(id=sid).first()
                        if not s or s.status != STORY_VOTING:
                            app.logger.info(f"[timer-abort] story={sid} no longer voting")
                            mon.cancel()
                            break
                        mon.observe(v.user_id for v in votes.list_by_story(sid))
                    if not mon.running:
                        break
                    mon.tick(tick)
                    if hb > 0 and elapsed % hb < tick:
                        app.logger.info(f"[timer-heartbeat] story={sid} remaining={mon.remaining}s")
        finally:
            if _active_monitors.get(sid) is mon:
                _active_monitors.pop(sid, None)

    if app.config.get('TESTING'):
        _worker(story_id, monitor)
    else:
        socketio.start_background_task(_worker, story_id, monitor)


def publish_votes(story_id: int, voter_ids: Iterable[int]) -> None:
    """Push path: hand the latest voter ids to the round's monitor, if any."""
    monitor = _active_monitors.get(int(story_id))
    if monitor is not None:
        monitor.observe(voter_ids)


def stop_round_timer(story_id: int) -> None:
    monitor = _active_monitors.pop(int(story_id), None)
    if monitor is not None:
        monitor.cancel()
