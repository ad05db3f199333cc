from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from poker import db
from poker.models import PlanningSession, Story, STORY_PENDING
from poker.services.voting import Caller, NotFound, ValidationError
from poker.services.voting import rounds
from poker.services.voting.estimates import summarize
from poker.services.voting.scheduler import schedule_round_timer, stop_round_timer
from poker.services.voting.stores import commit

stories = Blueprint('stories', __name__)


def _optional_int(data, key):
    value = data.get(key)
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be an integer')


@stories.route('', methods=['GET'])
@login_required
def list_stories():
    session_id = request.args.get('session_id', type=int)
    if not session_id:
        raise ValidationError('session_id is required')
    found = Story.query.filter_by(session_id=session_id).order_by(Story.created_at, Story.id).all()
    return jsonify({'success': True, 'stories': [s.to_dict() for s in found]})


@stories.route('', methods=['POST'])
@login_required
def create_story():
    caller = Caller.from_user(current_user)
    caller.require_facilitator('create stories')

    data = request.get_json(silent=True) or {}
    session_id = _optional_int(data, 'session_id')
    title = (data.get('title') or '').strip()
    if not session_id or not title:
        raise ValidationError('session_id and title are required')
    if db.session.get(PlanningSession, session_id) is None:
        raise NotFound('Session not found')

    cfg = current_app.config
    time_limit = _optional_int(data, 'time_limit_minutes')
    if time_limit is None:
        time_limit = int(cfg.get('DEFAULT_TIME_LIMIT_MINUTES', 5))
    max_limit = int(cfg.get('MAX_TIME_LIMIT_MINUTES', 60))
    if not 1 <= time_limit <= max_limit:
        raise ValidationError(f'time_limit_minutes must be between 1 and {max_limit}')

    new_story = Story(
        session_id=session_id,
        title=title,
        description=data.get('description'),
        status=STORY_PENDING,
        time_limit_minutes=time_limit,
        initial_estimate=_optional_int(data, 'initial_estimate'),
        version=1,
    )
    db.session.add(new_story)
    commit('create story')
    current_app.logger.info(f"[story-create] story={new_story.id} session={session_id} by={caller.user_id}")
    return jsonify({'success': True, 'story': new_story.to_dict()}), 201


@stories.route('/<int:story_id>', methods=['GET'])
@login_required
def get_story(story_id):
    return jsonify({'success': True, 'story': rounds.stories.get(story_id).to_dict()})


@stories.route('/<int:story_id>', methods=['DELETE'])
@login_required
def delete_story(story_id):
    rounds.delete_story(Caller.from_user(current_user), story_id)
    stop_round_timer(story_id)
    return jsonify({'success': True, 'message': 'Story deleted'})


@stories.route('/<int:story_id>/start', methods=['POST'])
@login_required
def start_voting(story_id):
    story = rounds.start_voting(Caller.from_user(current_user), story_id)
    schedule_round_timer(current_app._get_current_object(), story.id)
    return jsonify({'success': True, 'story': story.to_dict()})


@stories.route('/<int:story_id>/reveal', methods=['POST'])
@login_required
def reveal(story_id):
    story, round_votes = rounds.reveal(Caller.from_user(current_user), story_id)
    stop_round_timer(story.id)
    return jsonify({
        'success': True,
        'story': story.to_dict(),
        'votes': [v.to_dict() for v in round_votes],
        'summary': summarize(v.value for v in round_votes),
    })


@stories.route('/<int:story_id>/expire', methods=['POST'])
@login_required
def expire(story_id):
    """Fallback for clients that run their own countdown.

    Only succeeds once the persisted deadline has passed.
    """
    story = rounds.expire_round(story_id)
    stop_round_timer(story.id)
    return jsonify({'success': True, 'story': story.to_dict()})


@stories.route('/<int:story_id>/participants', methods=['GET'])
@login_required
def participants(story_id):
    payload = rounds.participant_status(story_id)
    payload['success'] = True
    return jsonify(payload)
