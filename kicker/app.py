import logging
import os

from flask import Flask, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .accounts import AccountRegistry
from .club_logos import ClubLogoResolver, load_overrides
from .config import config
from .errors import KickerError
from .models import db
from .tournament_registry import TournamentRegistry

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """Application factory for the league service."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))

    # Without a database every data route answers with a ConfigurationError
    database = None
    if app.config.get('SQLALCHEMY_DATABASE_URI'):
        db.init_app(app)
        with app.app_context():
            db.create_all()
        database = db
    else:
        logger.warning("DATABASE_URL is not set; data routes will fail until it is configured")

    # Data-access handles are passed explicitly, routes reach them via the app
    app.accounts = AccountRegistry(database, session_lifetime_days=app.config['SESSION_LIFETIME_DAYS'])
    app.registry = TournamentRegistry(database)
    app.club_logos = ClubLogoResolver(
        database,
        api_key=app.config['SPORTSDB_API_KEY'],
        base_url=app.config['SPORTSDB_BASE_URL'],
        cache_days=app.config['CLUB_LOGO_CACHE_DAYS'],
        overrides=load_overrides(app.config.get('CLUB_LOGOS_FILE'))
    )

    register_error_handlers(app)
    register_api_routes(app)

    from .routes import auth, tournaments
    app.register_blueprint(auth.bp)
    app.register_blueprint(tournaments.bp)

    return app


def register_error_handlers(app: Flask):
    """Render every domain error as {"error": message} with its status."""

    @app.errorhandler(KickerError)
    def handle_kicker_error(error: KickerError):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(error: SQLAlchemyError):
        if app.config.get('SQLALCHEMY_DATABASE_URI'):
            db.session.rollback()
        logger.error(f"Unhandled database error on {request.path}: {error}")
        return jsonify({'error': str(error)}), 500

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405


def register_api_routes(app: Flask):
    """Register service-level API routes."""

    @app.route('/api/club-logo', methods=['GET'])
    def api_club_logo():
        """Resolve a club badge URL."""
        result = app.club_logos.resolve_logo(request.args.get('name', ''))
        if result is None:
            return jsonify({'url': None}), 404

        url, source = result
        return jsonify({'url': url, 'source': source})

    @app.route('/health')
    def health_check():
        """Health check endpoint."""
        db_ok = False
        if app.config.get('SQLALCHEMY_DATABASE_URI'):
            try:
                db.session.execute(db.text('SELECT 1'))
                db_ok = True
            except SQLAlchemyError:
                db.session.rollback()

        status = 'healthy' if db_ok else 'unhealthy'
        code = 200 if db_ok else 503

        return jsonify({
            'status': status,
            'database': 'connected' if db_ok else 'disconnected'
        }), code
