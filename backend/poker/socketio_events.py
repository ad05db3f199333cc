from flask import current_app
from flask_socketio import join_room, leave_room, emit

from poker import socketio
from poker.services.voting import VotingError
from poker.services.voting.rounds import participant_status, story_room


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_story(data):
    """Subscribe to a story's live updates and receive a snapshot right away."""
    story_id = (data or {}).get('story_id')
    if not story_id:
        emit('error', {'message': 'story_id is required'})
        return
    room = story_room(story_id)
    join_room(room)
    emit('joined', {'room': room})
    try:
        emit('participant_status', participant_status(story_id))
    except VotingError as exc:
        current_app.logger.info(f"[ws-snapshot] story={story_id} code={exc.code}")
        emit('error', exc.to_dict())


def handle_leave_story(data):
    story_id = (data or {}).get('story_id')
    if not story_id:
        emit('error', {'message': 'story_id is required'})
        return
    room = story_room(story_id)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'join_story': handle_join_story,
        'leave_story': handle_leave_story,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
