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
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

ERROR_STATUS = {
    'IllegalMove': 400,
    'NotInRoom': 403,
    'RoomNotFound': 404,
    'NotYourTurn': 409,
    'GameFinished': 409,
    'InvalidTransition': 409,
}


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from unoreverse.main import main
    flask_app.register_blueprint(main)

    from unoreverse.api.uno import uno
    flask_app.register_blueprint(uno, url_prefix='/api/uno')

    from unoreverse.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    from unoreverse.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from unoreverse.services.uno.errors import UnoError

    @flask_app.errorhandler(UnoError)
    def handle_uno_error(exc):
        status = ERROR_STATUS.get(type(exc).__name__, 400)
        return jsonify({'error': str(exc)}), status

    from unoreverse.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            users = ['testuser1', 'testuser2', 'testuser3']
            for u in users:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
