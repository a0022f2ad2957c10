import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///charads.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Round timing (seconds)
    ROUND_DURATION_SEC = float(os.environ.get('ROUND_DURATION_SEC', '45'))
    MAX_ROUNDS = int(os.environ.get('MAX_ROUNDS', '15'))
    # Countdown tick; remaining time is recomputed from the deadline on each tick
    TICK_INTERVAL_SEC = float(os.environ.get('TICK_INTERVAL_SEC', '0.1'))
    # Q, X, Y, Z left out
    LETTER_ALPHABET = os.environ.get('LETTER_ALPHABET', 'ABCDEFGHIJKLMNOPRSTUVW')
    # Optional newline separated word list merged into the built-in dictionary
    TERM_DICTIONARY_PATH = os.environ.get('TERM_DICTIONARY_PATH')
    # Parallel writes during batch verification. 1 runs inline.
    BATCH_MAX_WORKERS = int(os.environ.get('BATCH_MAX_WORKERS', '4'))
    # Discard a play session this long after its last socket disconnects
    SESSION_IDLE_GRACE_SEC = float(os.environ.get('SESSION_IDLE_GRACE_SEC', '30'))
    # Seed reviewer account used by `flask db-reset`
    REVIEWER_USERNAME = os.environ.get('REVIEWER_USERNAME', 'admin')
    REVIEWER_PASSWORD = os.environ.get('REVIEWER_PASSWORD', 'change-me')
