from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

from charads.services.game.registry import SessionRegistry  # noqa: E402
from charads.services.review.verification import VerificationStore  # noqa: E402

sessions = SessionRegistry()
review_store = VerificationStore()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Game sessions and the review view both hang off the app
    sessions.init_app(flask_app)
    review_store.init_app(flask_app)

    from charads.main import main
    flask_app.register_blueprint(main)

    from charads.api.play import play
    flask_app.register_blueprint(play, url_prefix='/api/play')

    from charads.api.review import review
    flask_app.register_blueprint(review, url_prefix='/api/review')

    try:
        from charads.socketio_events import register_socketio_handlers
        register_socketio_handlers(testing=flask_app.config.get('TESTING', False))
    except Exception as exc:
        flask_app.logger.warning(f"SocketIO events not loaded: {exc}")

    from charads.models import Reviewer

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(Reviewer, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            reviewer = Reviewer(username=flask_app.config['REVIEWER_USERNAME'])
            reviewer.set_password(flask_app.config['REVIEWER_PASSWORD'])
            db.session.add(reviewer)
            db.session.commit()
            print('Database has been reset and seeded!')

    @click.command('create-reviewer')
    @click.argument('username')
    @click.password_option()
    def create_reviewer_command(username, password):
        """Adds a reviewer account."""
        with flask_app.app_context():
            if Reviewer.query.filter_by(username=username).first():
                raise click.ClickException(f'Reviewer {username} already exists')
            reviewer = Reviewer(username=username)
            reviewer.set_password(password)
            db.session.add(reviewer)
            db.session.commit()
            print(f'Reviewer {username} created.')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(create_reviewer_command)

    return flask_app
