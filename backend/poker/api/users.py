from flask import Blueprint, jsonify, request
from flask_login import login_required

from poker.models import User, ROLE_DEVELOPER
from poker.services.voting import ValidationError
from poker.services.voting.stores import ParticipantDirectory

users = Blueprint('users', __name__)
directory = ParticipantDirectory()


@users.route('/developers', methods=['GET'])
@login_required
def list_developers():
    developers = User.query.filter_by(role=ROLE_DEVELOPER).order_by(User.name).all()
    return jsonify({'success': True, 'users': [u.to_dict() for u in developers]})


@users.route('/details', methods=['POST'])
@login_required
def user_details():
    data = request.get_json(silent=True) or {}
    user_ids = data.get('user_ids')
    if not isinstance(user_ids, list):
        raise ValidationError('user_ids must be a list')
    try:
        ids = [int(u) for u in user_ids]
    except (TypeError, ValueError):
        raise ValidationError('user_ids must contain integers')
    if data.get('developers_only'):
        found = directory.resolve(ids)
    else:
        found = User.query.filter(User.id.in_(ids)).order_by(User.id).all() if ids else []
    return jsonify({'success': True, 'users': [u.to_dict() for u in found]})
