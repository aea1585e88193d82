from flask_socketio import join_room, leave_room, emit
from flask import current_app
from landgrab import get_game_service, socketio
from landgrab.errors import LandgrabError
from landgrab.services.territory.feed import WORLD_ROOM


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_world(data=None):
    join_room(WORLD_ROOM)
    emit('joined', {'room': WORLD_ROOM})


def handle_leave_world(data=None):
    leave_room(WORLD_ROOM)
    emit('left', {'room': WORLD_ROOM})


def handle_position(data):
    """A position sample streamed by a client: {player_id, lat, lng}."""
    data = data or {}
    player_id = data.get('player_id')
    if not isinstance(player_id, int) or isinstance(player_id, bool):
        emit('error', {'code': 'player_id_required', 'message': 'player_id is required'})
        return
    try:
        result = get_game_service().append_position(player_id, data)
    except LandgrabError as exc:
        current_app.logger.info(f"[ws-position] player={player_id} rejected: {exc}")
        emit('error', exc.to_dict())
        return
    payload = result.to_dict()
    payload['player_id'] = player_id
    emit('position_result', payload)


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'join_world': handle_join_world,
        'leave_world': handle_leave_world,
        'position': handle_position,
        'ping': handle_ping,
    }
    for event, handler in handlers.items():
        socketio.on_event(event, handler, namespace='/ws')

    if testing:
        # Test-only mirror on default namespace
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace='/')
