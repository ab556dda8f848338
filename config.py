# config.py
# Конфигурация приложения Flask

import os

class Config:
    # Абсолютный путь к базе данных
    BASE_DIR = os.path.abspath(os.path.dirname(__file__))
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        f'sqlite:///{os.path.join(BASE_DIR, "instance", "tasting.db")}'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Ни один запрос к базе не должен ждать бесконечно (timeout понимает только sqlite)
    SQLALCHEMY_ENGINE_OPTIONS = (
        {'connect_args': {'timeout': 15}} if SQLALCHEMY_DATABASE_URI.startswith('sqlite') else {'pool_timeout': 15}
    )
    SECRET_KEY = os.environ.get('SECRET_KEY', 'your-secret-key-change-me')  # Замени на случайный ключ в продакшене
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SECRET_KEY = 'test-secret'
    LOG_LEVEL = 'DEBUG'
