import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    PORT = int(os.environ.get('PORT', '3001'))
    # Comma separated list, or '*' for any origin
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Room sizing
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '4'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
