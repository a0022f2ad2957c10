from flask import Blueprint, current_app, jsonify
from charads import login_manager
from charads.exceptions import CharadsError

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Tech Charads game server!'})

@main.route('/health')
def health():
    return jsonify({'status': 'healthy'})

@main.app_errorhandler(CharadsError)
def handle_game_error(exc):
    current_app.logger.info(f"[error] {type(exc).__name__}: {exc}")
    return jsonify({'error': str(exc)}), exc.status_code

@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Reviewer login required'}), 401
