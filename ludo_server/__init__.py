from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def _allowed_origins(value):
    if not value or value == '*':
        return '*'
    return [origin.strip() for origin in value.split(',') if origin.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = _allowed_origins(flask_app.config.get('CORS_ORIGINS', '*'))
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One registry and manager per app; handlers reach them through app.extensions
    from ludo_server.registry import RoomRegistry
    from ludo_server.rooms import RoomManager
    from ludo_server.socketio_events import ConnectionDirectory

    registry = RoomRegistry(code_length=flask_app.config.get('ROOM_CODE_LENGTH', 6))
    flask_app.extensions['ludo_rooms'] = RoomManager(
        registry,
        min_players=flask_app.config.get('MIN_PLAYERS', 2),
        max_players=flask_app.config.get('MAX_PLAYERS', 4),
        logger=flask_app.logger,
    )
    flask_app.extensions['ludo_connections'] = ConnectionDirectory()

    # Import and register blueprints here
    from ludo_server.main import main
    flask_app.register_blueprint(main)

    from ludo_server.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Register Socket.IO event handlers
    # Importing here ensures the handlers bind to the initialized socketio instance
    from ludo_server.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    return flask_app
