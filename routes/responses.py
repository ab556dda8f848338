# routes/responses.py
# Ответы участников: черновики и отправка

from flask import Blueprint, jsonify, request, session

from errors import NotFound
from logic import load_for_edit, save_response, update_response
from routes import get_notifier, get_repository, request_info
from routes.auth import login_required

responses_bp = Blueprint('responses', __name__, url_prefix='/api/responses')


def _read_payload():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    # По умолчанию сохраняем черновик, отправка - только явным as_draft=false
    as_draft = payload.pop('as_draft', True) is not False
    return payload, as_draft


@responses_bp.route('/mine', methods=['GET'])
@login_required
def my_responses():
    responses = get_repository().get_participant_responses(session['user_id'])
    return jsonify([
        dict(r.to_dict(), questionnaire={'id': r.questionnaire.id, 'title': r.questionnaire.title,
                                         'status': r.questionnaire.status})
        for r in responses
    ])


@responses_bp.route('/<int:questionnaire_id>/mine', methods=['GET'])
@login_required
def my_response(questionnaire_id):
    repository = get_repository()
    if repository.get_questionnaire(questionnaire_id) is None:
        raise NotFound('Анкета не найдена.')
    response = load_for_edit(repository, questionnaire_id, session['user_id'])
    # None значит "ответа еще нет" - клиент показывает пустой черновик
    return jsonify({'response': response.to_dict() if response else None})


@responses_bp.route('/<int:questionnaire_id>', methods=['POST'])
@login_required
def submit_or_save_draft(questionnaire_id):
    payload, as_draft = _read_payload()
    saved = save_response(get_repository(), get_notifier(), questionnaire_id, session['user_id'],
                          payload, as_draft, request_info())
    return jsonify(saved.response.to_dict()), 201 if saved.created else 200


@responses_bp.route('/<int:response_id>', methods=['PUT'])
@login_required
def update(response_id):
    payload, as_draft = _read_payload()
    saved = update_response(get_repository(), get_notifier(), response_id, session['user_id'],
                            payload, as_draft, request_info())
    return jsonify(saved.response.to_dict())
