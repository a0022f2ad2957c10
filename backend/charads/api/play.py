from flask import Blueprint, jsonify, request
from charads import sessions

play = Blueprint('play', __name__)


def _state(engine, **extra):
    payload = engine.snapshot()
    payload['code'] = engine.code
    payload.update(extra)
    return payload


@play.route('/register', methods=['POST'])
def register():
    """
    Registers a participant and opens a play session for them.
    """
    data = request.get_json(silent=True) or {}
    secondary_id = data.get('secondaryId', data.get('studentId'))
    code, engine = sessions.create(data.get('name'), secondary_id)
    return jsonify(_state(engine)), 201


@play.route('/<string:code>/state', methods=['GET'])
def get_state(code):
    engine = sessions.get(code)
    # Polling clients drive the countdown too; ticks are deadline based
    engine.tick()
    return jsonify(_state(engine))


@play.route('/<string:code>/start', methods=['POST'])
def start(code):
    """
    Starts a new game, or a fresh one after game over.
    """
    engine = sessions.get(code)
    engine.start()
    return jsonify(_state(engine))


@play.route('/<string:code>/input', methods=['POST'])
def update_input(code):
    data = request.get_json(silent=True) or {}
    engine = sessions.get(code)
    engine.set_input(data.get('text'))
    return jsonify(_state(engine))


@play.route('/<string:code>/submit', methods=['POST'])
def submit(code):
    """
    Submits a term for the current round.

    A term with the wrong first letter does not end the round: the response
    carries ``inputError: true`` and ``submitted: null``.
    """
    data = request.get_json(silent=True) or {}
    engine = sessions.get(code)
    record = engine.submit(data.get('text'))
    return jsonify(_state(engine, submitted=record.to_dict() if record else None))


@play.route('/<string:code>/leave', methods=['POST'])
def leave(code):
    sessions.get(code)
    sessions.discard(code)
    return jsonify({'message': 'Session closed.'})
