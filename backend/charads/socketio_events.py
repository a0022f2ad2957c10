from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from charads import sessions
from typing import Dict


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    # When the last socket watching a session goes away, discard the
    # session after a grace period so a page reload can pick it back up
    code = _sid_to_code.pop(_get_sid(), None)
    if not code:
        return
    _watchers[code] = max(0, _watchers.get(code, 0) - 1)
    if _watchers[code] == 0:
        _watchers.pop(code, None)
        if code not in sessions:
            return
        # In tests, discard immediately for determinism
        if current_app.config.get('TESTING'):
            sessions.discard(code)
            return
        sessions.schedule_discard(code)


def handle_join_session(data):
    code = ((data or {}).get('code') or '').upper()
    if not code:
        emit('error', {'message': 'code is required'})
        return
    if code not in sessions:
        emit('error', {'message': f'Session {code} not found'})
        return
    room = f"session:{code}"
    join_room(room)
    if _sid_to_code.get(_get_sid()) != code:
        _sid_to_code[_get_sid()] = code
        _watchers[code] = _watchers.get(code, 0) + 1
    sessions.cancel_discard(code)
    emit('joined', {'room': room})
    engine = sessions.get(code)
    emit('state_update', dict(engine.snapshot(), code=code))


def handle_leave_session(data):
    code = ((data or {}).get('code') or '').upper()
    if not code:
        emit('error', {'message': 'code is required'})
        return
    room = f"session:{code}"
    leave_room(room)
    emit('left', {'room': room})
    if _sid_to_code.get(_get_sid()) == code:
        _sid_to_code.pop(_get_sid(), None)
        _watchers[code] = max(0, _watchers.get(code, 0) - 1)


def handle_ping(data):
    emit('pong', data or {})

# ---- Session watcher bookkeeping ----

_sid_to_code: Dict[str, str] = {}
_watchers: Dict[str, int] = {}

def _get_sid() -> str:
    return request.sid  # type: ignore


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    _sid_to_code.clear()
    _watchers.clear()
    from charads import socketio

    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('disconnect', handle_disconnect, namespace='/ws')
    socketio.on_event('join_session', handle_join_session, namespace='/ws')
    socketio.on_event('leave_session', handle_leave_session, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')

    if testing:
        # Test-only mirror on default namespace
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('disconnect', handle_disconnect, namespace='/')
        socketio.on_event('join_session', handle_join_session, namespace='/')
        socketio.on_event('leave_session', handle_leave_session, namespace='/')
        socketio.on_event('ping', handle_ping, namespace='/')
