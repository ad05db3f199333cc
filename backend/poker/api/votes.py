from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from poker.models import STORY_COMPLETED
from poker.services.voting import Caller, ValidationError
from poker.services.voting import rounds
from poker.services.voting.scheduler import publish_votes

votes = Blueprint('votes', __name__)


def _story_id_arg():
    story_id = request.args.get('story_id', type=int)
    if not story_id:
        raise ValidationError('story_id is required')
    return story_id


@votes.route('', methods=['GET'])
@login_required
def list_votes():
    """Votes of a story. Values stay hidden until the round is completed."""
    story = rounds.stories.get(_story_id_arg())
    show_values = story.status == STORY_COMPLETED
    found = rounds.votes.list_by_story(story.id)
    return jsonify({'success': True, 'votes': [v.to_dict(include_value=show_values) for v in found]})


@votes.route('/mine', methods=['GET'])
@login_required
def my_vote():
    story = rounds.stories.get(_story_id_arg())
    vote = rounds.votes.find_by_story_and_user(story.id, current_user.id)
    return jsonify({'success': True, 'vote': vote.to_dict() if vote else None})


@votes.route('', methods=['POST'])
@login_required
def submit_vote():
    data = request.get_json(silent=True) or {}
    vote = rounds.submit_vote(
        Caller.from_user(current_user),
        data.get('story_id'),
        data.get('value'),
        data.get('comment'),
    )
    publish_votes(vote.story_id, (v.user_id for v in rounds.votes.list_by_story(vote.story_id)))
    return jsonify({'success': True, 'message': 'Vote recorded', 'vote': vote.to_dict()}), 201
