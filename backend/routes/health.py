from flask import Blueprint, jsonify, current_app
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from models import db, utcnow, Bid, BID_STATUSES
from services.date_utils import format_datetime

health_bp = Blueprint('health', __name__)

APP_NAME = 'Bid Marketplace API'
APP_VERSION = '1.0.0'
REQUIRED_BLUEPRINTS = ('auth', 'bids')


def _database_backend():
    url = str(current_app.config.get('SQLALCHEMY_DATABASE_URI') or '').lower()
    for prefix, label in (('sqlite', 'SQLite'), ('postgresql', 'PostgreSQL'), ('mysql', 'MySQL')):
        if url.startswith(prefix):
            return label
    return 'Unknown'


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Liveness probe for load balancers and the deploy pipeline.

    Returns 503 when the database cannot be reached; a missing blueprint only
    downgrades the status to 'degraded'.
    """
    report = {
        'status': 'healthy',
        'app': APP_NAME,
        'version': APP_VERSION,
        'timestamp': format_datetime(utcnow()),
        'checks': {},
    }

    try:
        db.session.execute(text('SELECT 1'))
        counts = dict(db.session.query(Bid.status, func.count(Bid.id)).group_by(Bid.status).all())
        report['checks']['database'] = {
            'connected': True,
            'backend': _database_backend(),
            'bids': {status: counts.get(status, 0) for status in BID_STATUSES},
        }
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Health check could not reach the database: {e}")
        report['status'] = 'unhealthy'
        report['checks']['database'] = {'connected': False, 'error': str(e)}
        return jsonify(report), 503

    missing = [name for name in REQUIRED_BLUEPRINTS if name not in current_app.blueprints]
    report['checks']['blueprints'] = {'registered': sorted(current_app.blueprints), 'missing': missing}
    if missing:
        current_app.logger.warning(f"Health check: blueprints not registered: {missing}")
        report['status'] = 'degraded'

    return jsonify(report), 200
