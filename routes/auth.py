# routes/auth.py
# Привязка пользователя к запросу. Паролей и регистрации нет:
# участник входит по выданному организатором коду.

from functools import wraps

from flask import Blueprint, current_app, jsonify, request, session

from extensions import db
from logic import build_activity
from routes import request_info
from models.user import ROLE_ADMIN, User

auth_bp = Blueprint('auth', __name__)


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({'message': 'Для доступа необходимо войти в систему.'}), 401
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({'message': 'Для доступа необходимо войти в систему.'}), 401
        if session.get('user_role') != ROLE_ADMIN:
            return jsonify({'message': 'У вас нет прав для доступа к этой странице.'}), 403
        return f(*args, **kwargs)
    return decorated_function


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or request.form
    user_code = data.get('code')
    if not user_code:
        return jsonify({'message': 'Пожалуйста, введите ваш код.'}), 400

    user = User.query.filter_by(code=user_code).first()
    if user is None:
        current_app.logger.warning('Failed login attempt from %s', request.remote_addr)
        return jsonify({'message': 'Неверный код доступа. Попробуйте еще раз.'}), 401

    session.clear()  # Очищаем старую сессию для безопасности
    session['user_id'] = user.id
    session['user_role'] = user.role

    db.session.add(build_activity(user.id, 'LOGIN', 'USER', user.id, request_info=request_info()))
    db.session.commit()
    return jsonify({'message': 'Вход выполнен успешно!', 'user': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'message': 'Вы успешно вышли из системы.'})
