from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from charads import review_store
from charads.exceptions import PersistenceError
from charads.models import Reviewer
from charads.services.review.batch import BatchMatcher

review = Blueprint('review', __name__)


@review.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    reviewer = Reviewer.query.filter_by(username=data.get('username')).first()
    if reviewer and reviewer.check_password(data.get('password') or ''):
        login_user(reviewer)
        return jsonify({'success': True, 'reviewer': reviewer.to_dict()})
    return jsonify({'success': False, 'error': 'Invalid username or password'}), 401


@review.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})


@review.route('/results', methods=['GET'])
@login_required
def list_results():
    """
    Returns every result, newest first, re-read from the store.
    """
    records = review_store.refresh()
    return jsonify([r.to_dict() for r in records])


@review.route('/results/<int:record_id>', methods=['GET'])
@login_required
def get_result(record_id):
    record = review_store.gateway.get(record_id)
    review_store.remember(record)
    return jsonify(record.to_dict())


@review.route('/results/<int:record_id>/rounds/<int:round_index>', methods=['POST'])
@login_required
def verify_round(record_id, round_index):
    """
    Accepts or rejects one round and returns the record with its new
    verified score. If saving fails the response is 503 and still carries
    the record as the reviewer now sees it.
    """
    data = request.get_json(silent=True) or {}
    try:
        record = review_store.set_verification(record_id, round_index, data.get('decision'))
    except PersistenceError as exc:
        cached = review_store.cached(record_id)
        return jsonify({
            'error': f'Failed to save verification: {exc}',
            'result': cached.to_dict() if cached else None,
        }), exc.status_code
    current_app.logger.info(f"[verify] reviewer={current_user.username} result={record_id} round={round_index}")
    return jsonify(record.to_dict())


@review.route('/batch', methods=['POST'])
@login_required
def batch_verify():
    """
    Accepts every pending or rejected round whose term is in the pasted
    approved list. Failures are listed per result and do not stop the rest.
    """
    data = request.get_json(silent=True) or {}
    terms = data.get('terms')
    if not terms:
        return jsonify({'error': 'Approved terms are required'}), 400
    report = BatchMatcher(review_store).run(terms)
    current_app.logger.info(
        f"[batch] reviewer={current_user.username} updated={report.updated_count} failed={len(report.failed)}"
    )
    return jsonify(report.to_dict())


@review.route('/export', methods=['GET'])
@login_required
def export_terms():
    """
    Unique terms that still need a decision, one per line, for pasting into
    an external checker.
    """
    review_store.refresh()
    terms = review_store.export_terms()
    return jsonify({'count': len(terms), 'terms': terms, 'text': '\n'.join(terms)})
