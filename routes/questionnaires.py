# routes/questionnaires.py
# Анкеты: просмотр для участников, создание/редактирование/закрытие и статистика для администратора

from flask import Blueprint, current_app, jsonify, request, session

from errors import Forbidden, NotFound
from logic import close_questionnaire, create_questionnaire, get_statistics, update_questionnaire
from models import Questionnaire
from models.questionnaire import STATUS_OPEN
from models.user import ROLE_ADMIN
from routes import get_notifier, get_repository, request_info
from routes.auth import admin_required, login_required

questionnaires_bp = Blueprint('questionnaires', __name__, url_prefix='/api/questionnaires')


@questionnaires_bp.route('', methods=['GET'])
@login_required
def list_questionnaires():
    query = Questionnaire.query
    if session.get('user_role') != ROLE_ADMIN:
        query = query.filter_by(status=STATUS_OPEN)
    questionnaires = query.order_by(Questionnaire.created_at.desc()).all()
    return jsonify([q.to_dict() for q in questionnaires])


@questionnaires_bp.route('', methods=['POST'])
@admin_required
def create():
    questionnaire = create_questionnaire(get_repository(), session['user_id'],
                                         request.get_json(silent=True), request_info())
    return jsonify(questionnaire.to_dict()), 201


@questionnaires_bp.route('/<int:questionnaire_id>', methods=['GET'])
@login_required
def get_questionnaire(questionnaire_id):
    questionnaire = get_repository().get_questionnaire(questionnaire_id)
    if questionnaire is None:
        raise NotFound('Анкета не найдена.')
    if session.get('user_role') != ROLE_ADMIN and questionnaire.status != STATUS_OPEN:
        raise Forbidden('Анкета закрыта.')
    return jsonify(questionnaire.to_dict())


@questionnaires_bp.route('/<int:questionnaire_id>', methods=['PUT'])
@admin_required
def update(questionnaire_id):
    questionnaire = update_questionnaire(get_repository(), get_notifier(), questionnaire_id,
                                         session['user_id'], request.get_json(silent=True), request_info())
    return jsonify(questionnaire.to_dict())


@questionnaires_bp.route('/<int:questionnaire_id>/close', methods=['PATCH'])
@admin_required
def close(questionnaire_id):
    questionnaire = close_questionnaire(get_repository(), get_notifier(), questionnaire_id,
                                        session['user_id'], request_info())
    return jsonify(questionnaire.to_dict())


@questionnaires_bp.route('/<int:questionnaire_id>/statistics', methods=['GET'])
@admin_required
def statistics(questionnaire_id):
    result = get_statistics(get_repository(), questionnaire_id, session['user_id'], request_info())
    current_app.logger.debug('Statistics for questionnaire %s over %s responses',
                             questionnaire_id, result['total_responses'])
    return jsonify(result)


@questionnaires_bp.route('/<int:questionnaire_id>/responses', methods=['GET'])
@admin_required
def submitted_responses(questionnaire_id):
    repository = get_repository()
    if repository.get_questionnaire(questionnaire_id) is None:
        raise NotFound('Анкета не найдена.')
    responses = repository.get_submitted_responses(questionnaire_id)
    return jsonify([r.to_dict() for r in responses])
