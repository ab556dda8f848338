# app.py
# Основной файл Flask-приложения с использованием паттерна Application Factory

import logging
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import Config
from errors import TastingError
from extensions import db, migrate
from notifier import ChannelNotifier

# Важно импортировать модели здесь, чтобы Alembic (Migrate) мог их видеть
from models import User, Questionnaire, Brand, Criterion, Response, Answer, BrandComment, ActivityLog


def register_error_handlers(app):
    @app.errorhandler(TastingError)
    def handle_tasting_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'message': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        # Детали остаются в логе, клиенту уходит общее сообщение
        app.logger.exception('Unhandled error: %s', error)
        db.session.rollback()
        return jsonify({'message': 'Произошла непредвиденная ошибка. Попробуйте позже.'}), 500


def create_app(config_class=Config, notifier=None):
    # Создаем экземпляр приложения
    app = Flask(__name__)
    app.config.from_object(config_class)
    os.makedirs(app.instance_path, exist_ok=True)
    log_level = app.config.get('LOG_LEVEL', 'INFO')
    app.logger.setLevel(log_level)
    for name in ('logic', 'notifier'):
        logging.getLogger(name).setLevel(log_level)

    # --- Инициализируем расширения С ПРИЛОЖЕНИЕМ ---
    db.init_app(app)
    migrate.init_app(app, db)

    # Каналы уведомлений живут вместе с приложением, а не в глобальной переменной
    app.extensions['notifier'] = notifier if notifier is not None else ChannelNotifier()

    # --- Регистрируем наши Blueprints (маршруты) ---
    from routes.auth import auth_bp
    from routes.questionnaires import questionnaires_bp
    from routes.responses import responses_bp
    from routes.activity_logs import activity_logs_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(questionnaires_bp)
    app.register_blueprint(responses_bp)
    app.register_blueprint(activity_logs_bp)

    register_error_handlers(app)

    @app.cli.command('seed')
    def seed_command():
        """Заполняет базу демонстрационными данными."""
        from seed_data import seed_demo_data
        seed_demo_data()

    return app
