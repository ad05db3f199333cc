"""Voting round state machine: pending -> voting -> completed.

There is no transition out of ``completed`` and none that skips
``voting``. Every status change goes through ``StoryStore.set_status`` so
it is version checked against concurrent writers.
"""

import time
from typing import List, Optional, Tuple

from flask import current_app

from poker import socketio
from poker.models import (
    Story,
    Vote,
    FIBONACCI_VALUES,
    STORY_PENDING,
    STORY_VOTING,
    STORY_COMPLETED,
)
from .context import Caller
from .errors import AlreadyVoted, Forbidden, RoundStateError, ValidationError
from .estimates import final_estimate, summarize
from .stores import ParticipantDirectory, StoryStore, VoteStore

stories = StoryStore()
votes = VoteStore()
directory = ParticipantDirectory()


def story_room(story_id) -> str:
    return f"story:{story_id}"


def broadcast(event: str, story_id, payload: Optional[dict] = None) -> None:
    data = {'story_id': story_id}
    data.update(payload or {})
    socketio.emit(event, data, to=story_room(story_id), namespace='/ws')


def _require_story_id(story_id):
    if story_id in (None, ''):
        raise ValidationError('Story id is required')
    try:
        return int(story_id)
    except (TypeError, ValueError):
        raise ValidationError('Story id must be an integer')


def _parse_vote_value(value) -> int:
    # Whole numbers only; 3.7 must not become a vote of 3
    if value is None or value == '':
        raise ValidationError('Vote value is required')
    if isinstance(value, bool):
        raise ValidationError('Vote value must be an integer')
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError('Vote value must be an integer')


def _everyone_voted(story: Story) -> bool:
    developer_ids = {u.id for u in directory.for_story(story)}
    if not developer_ids:
        return False
    voter_ids = {v.user_id for v in votes.list_by_story(story.id)}
    return developer_ids <= voter_ids


def start_voting(caller: Caller, story_id, now: Optional[float] = None) -> Story:
    story = stories.get(_require_story_id(story_id))
    caller.require_facilitator('start voting')
    if story.status != STORY_PENDING:
        raise RoundStateError(f'Voting can only start on a pending story (status is {story.status})')

    started_at = time.time() if now is None else now
    stories.set_status(story, STORY_VOTING, voting_started_at=started_at)
    current_app.logger.info(
        f"[round-start] story={story.id} by={caller.user_id} limit={story.time_limit_minutes}m deadline={story.voting_deadline}"
    )
    broadcast('round_update', story.id, {'status': story.status, 'voting_deadline': story.voting_deadline})
    return story


def submit_vote(caller: Caller, story_id, value, comment: Optional[str] = None) -> Vote:
    story = stories.get(_require_story_id(story_id))

    if not caller.is_developer:
        raise Forbidden('Only developers may vote')
    session = story.session
    if session is None or caller.user_id not in session.participant_ids:
        raise Forbidden('You are not a participant of this session')

    # One vote per participant per story
    if votes.find_by_story_and_user(story.id, caller.user_id) is not None:
        raise AlreadyVoted('You have already voted on this story')

    value = _parse_vote_value(value)
    if value not in FIBONACCI_VALUES:
        raise ValidationError(f'Vote value must be one of {list(FIBONACCI_VALUES)}')

    if story.status != STORY_VOTING:
        raise RoundStateError('Votes are only accepted while voting is open')

    vote = Vote(story_id=story.id, user_id=caller.user_id, value=value, comment=(comment or None))
    votes.insert(vote, story)
    current_app.logger.info(f"[vote-cast] story={story.id} user={caller.user_id}")
    # Blind round: never broadcast the value
    broadcast('vote_cast', story.id, {'user_id': caller.user_id})
    return vote


def reveal(caller: Caller, story_id) -> Tuple[Story, List[Vote]]:
    """Close the round and persist the rounded mean as the final estimate.

    A second call after completion is rejected by the status check rather
    than recomputing the estimate from whatever votes exist by then.
    """
    story = stories.get(_require_story_id(story_id))
    caller.require_facilitator('reveal votes')
    if story.status != STORY_VOTING:
        raise RoundStateError(f'Only a story in voting can be revealed (status is {story.status})')

    round_votes = votes.list_by_story(story.id)
    if not round_votes:
        raise RoundStateError('Cannot reveal a round without votes')

    estimate = final_estimate(v.value for v in round_votes)
    stories.set_status(story, STORY_COMPLETED, final_estimate=estimate)
    current_app.logger.info(
        f"[round-reveal] story={story.id} by={caller.user_id} votes={len(round_votes)} estimate={estimate}"
    )
    broadcast('round_completed', story.id, {
        'status': story.status,
        'final_estimate': story.final_estimate,
        'reason': 'revealed',
        'votes': [v.to_dict() for v in round_votes],
    })
    return story, round_votes


def expire_round(story_id, now: Optional[float] = None, check_deadline: bool = True) -> Story:
    """Complete a round whose time limit elapsed, without an estimate.

    The round monitor passes ``check_deadline=False``: its own countdown
    already reached zero. HTTP callers are held to the persisted deadline,
    and a round in which every participant has voted no longer times out.
    """
    story = stories.get(_require_story_id(story_id))
    if story.status != STORY_VOTING:
        raise RoundStateError(f'Only a story in voting can expire (status is {story.status})')
    now = time.time() if now is None else now
    deadline = story.voting_deadline
    if check_deadline and deadline is not None and now < deadline:
        raise RoundStateError('The time limit has not been reached yet')
    if check_deadline and _everyone_voted(story):
        raise RoundStateError('Every participant has voted; the round can no longer time out')

    stories.set_status(story, STORY_COMPLETED)
    current_app.logger.info(f"[round-expire] story={story.id} deadline={deadline}")
    broadcast('round_completed', story.id, {
        'status': story.status,
        'final_estimate': None,
        'reason': 'time_expired',
    })
    return story


def delete_story(caller: Caller, story_id) -> None:
    story = stories.get(_require_story_id(story_id))
    caller.require_facilitator('delete stories')
    stories.delete(story)
    current_app.logger.info(f"[story-delete] story={story_id} by={caller.user_id}")
    broadcast('round_update', int(story_id), {'status': 'deleted'})


def participant_status(story_id) -> dict:
    """Per-developer ``has_voted`` for a story, recomputed from the vote list.

    Values and comments are only included once the story is completed.
    """
    story = stories.get(_require_story_id(story_id))
    developers = directory.for_story(story)
    by_user = {v.user_id: v for v in votes.list_by_story(story.id)}
    show_votes = story.status == STORY_COMPLETED

    participants = []
    for dev in developers:
        entry = dev.to_dict()
        vote = by_user.get(dev.id)
        entry['has_voted'] = vote is not None
        if show_votes and vote is not None:
            entry['vote'] = vote.value
            entry['comment'] = vote.comment
        participants.append(entry)

    voted_count = sum(1 for p in participants if p['has_voted'])
    payload = {
        'story_id': story.id,
        'status': story.status,
        'voting_deadline': story.voting_deadline,
        'participants': participants,
        'voted_count': voted_count,
        'total': len(participants),
        'all_voted': bool(participants) and voted_count == len(participants),
    }
    if show_votes:
        payload['summary'] = summarize(v.value for v in by_user.values())
        payload['final_estimate'] = story.final_estimate
    return payload
