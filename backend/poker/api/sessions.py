from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from poker import db
from poker.models import PlanningSession, User
from poker.services.voting import Caller, NotFound, ValidationError
from poker.services.voting.stores import commit

sessions = Blueprint('sessions', __name__)


@sessions.route('', methods=['GET'])
@login_required
def list_sessions():
    """Active sessions, newest first."""
    active = (
        PlanningSession.query.filter_by(status='active')
        .order_by(PlanningSession.created_at.desc(), PlanningSession.id.desc())
        .all()
    )
    return jsonify({'success': True, 'sessions': [s.to_dict() for s in active]})


@sessions.route('', methods=['POST'])
@login_required
def create_session():
    caller = Caller.from_user(current_user)
    caller.require_facilitator('create sessions')

    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError('Session name is required')
    raw_ids = data.get('participants') or []
    if not isinstance(raw_ids, list):
        raise ValidationError('participants must be a list of user ids')
    try:
        participant_ids = {int(p) for p in raw_ids}
    except (TypeError, ValueError):
        raise ValidationError('participants must be a list of user ids')
    # The facilitator always takes part in their own session
    participant_ids.add(caller.user_id)

    participants = User.query.filter(User.id.in_(participant_ids)).all()
    missing = participant_ids - {u.id for u in participants}
    if missing:
        raise ValidationError(f'Unknown participants: {sorted(missing)}')

    new_session = PlanningSession(
        name=name,
        description=data.get('description'),
        created_by=caller.user_id,
        status='active',
    )
    new_session.participants = participants
    db.session.add(new_session)
    commit('create session')
    current_app.logger.info(
        f"[session-create] session={new_session.id} by={caller.user_id} participants={len(participants)}"
    )
    return jsonify({'success': True, 'session': new_session.to_dict()}), 201


@sessions.route('/<int:session_id>', methods=['GET'])
@login_required
def get_session(session_id):
    session = db.session.get(PlanningSession, session_id)
    if session is None:
        raise NotFound('Session not found')
    return jsonify({'success': True, 'session': session.to_dict()})
