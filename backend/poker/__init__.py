from flask import Flask, jsonify
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
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Import and register blueprints here
    from poker.main import main
    flask_app.register_blueprint(main, url_prefix='/api/auth')

    from poker.api.users import users
    flask_app.register_blueprint(users, url_prefix='/api/users')

    from poker.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from poker.api.stories import stories
    flask_app.register_blueprint(stories, url_prefix='/api/stories')

    from poker.api.votes import votes
    flask_app.register_blueprint(votes, url_prefix='/api/votes')

    from poker.api.errors import register_error_handlers
    register_error_handlers(flask_app)

    # Register Socket.IO event handlers
    from poker.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from poker.models import User
    from poker.services.voting.errors import Unauthenticated

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        exc = Unauthenticated('Authentication required')
        return jsonify(exc.to_dict()), exc.status_code

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from poker.models import User, ROLE_PROJECT_MANAGER, ROLE_DEVELOPER
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed one facilitator and a few developers
            seed = [('Paula PM', 'pm@example.com', ROLE_PROJECT_MANAGER)]
            seed += [(f'Developer {i}', f'dev{i}@example.com', ROLE_DEVELOPER) for i in (1, 2, 3)]
            for name, email, role in seed:
                user = User(name=name, email=email, role=role)
                user.set_password('password')
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
