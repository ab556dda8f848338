# logic.py
# Жизненный цикл ответа участника и управление анкетами.
# Роуты только разбирают запрос и вызывают эти функции; репозиторий и notifier
# передаются явно, чтобы их можно было подменить в тестах.

import logging
from collections import namedtuple
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from aggregation import calculate_statistics
from errors import DuplicateSubmission, Forbidden, NotFound, QuestionnaireClosed, ValidationFailed
from models import ActivityLog, Answer, Brand, BrandComment, Criterion, Questionnaire, Response
from models.questionnaire import STATUS_CLOSED
from models.response import STATUS_DRAFT, STATUS_SUBMITTED
from validation import check_completeness, normalize_id, validate_questionnaire, validate_response

logger = logging.getLogger(__name__)

SaveResult = namedtuple('SaveResult', ['response', 'created', 'submitted_now'])

# Одна повторная попытка: второй запрос того же участника успел создать ответ раньше нас
SAVE_ATTEMPTS = 2

EDITABLE_FIELDS = ('title', 'brands', 'criteria')


def build_activity(user_id, action, entity_type, entity_id, details=None, request_info=None):
    request_info = request_info or {}
    return ActivityLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
        ip_address=request_info.get('ip_address'),
        user_agent=request_info.get('user_agent'),
    )


def _get_questionnaire_or_404(repository, questionnaire_id):
    questionnaire = repository.get_questionnaire(questionnaire_id)
    if questionnaire is None:
        raise NotFound('Анкета не найдена.')
    return questionnaire


# --- Ответы участников ---

def load_for_edit(repository, questionnaire_id, participant_id):
    """Текущий ответ участника или None, если он еще ничего не сохранял."""
    return repository.get_response(questionnaire_id, participant_id)


def _merge_answers(response, answers):
    existing = response.answer_map()
    for item in answers:
        key = (normalize_id(item.get('brand_id')), item.get('criterion'))
        answer = existing.get(key)
        if answer is None:
            answer = Answer(brand_id=key[0], criterion=key[1])
            response.answers.append(answer)
            existing[key] = answer
        # Поля, которых нет в запросе, остаются как были
        if 'rating' in item:
            answer.rating = item['rating']
        if 'comment' in item:
            answer.comment = item['comment']


def _merge_brand_comments(response, brand_comments):
    existing = {c.brand_id: c for c in response.brand_comments}
    for item in brand_comments:
        brand_id = normalize_id(item.get('brand_id'))
        comment = existing.get(brand_id)
        if comment is None:
            comment = BrandComment(brand_id=brand_id)
            response.brand_comments.append(comment)
            existing[brand_id] = comment
        comment.comment = item.get('comment')


def _merge_evaluation(response, evaluation):
    if 'preferred_brand_id' in evaluation:
        response.preferred_brand_id = normalize_id(evaluation['preferred_brand_id'])
    if 'comments' in evaluation:
        response.comparative_comments = evaluation['comments']


def _persist(repository, questionnaire, participant_id, payload, target_status, request_info):
    response = repository.get_response(questionnaire.id, participant_id)
    created = response is None
    if created:
        response = Response(questionnaire_id=questionnaire.id, participant_id=participant_id,
                            status=STATUS_DRAFT)
    was_submitted = response.is_submitted

    _merge_answers(response, payload.get('answers') or [])
    _merge_brand_comments(response, payload.get('brand_comments') or [])
    _merge_evaluation(response, payload.get('comparative_evaluation') or {})

    # Статус только растет: отправленный ответ не возвращается в черновик
    new_status = STATUS_SUBMITTED if was_submitted or target_status == STATUS_SUBMITTED else STATUS_DRAFT
    if new_status == STATUS_SUBMITTED:
        ratings = {key: answer.rating for key, answer in response.answer_map().items()}
        errors = check_completeness(questionnaire, ratings)
        if response.preferred_brand_id is None:
            errors['preferred_brand'] = 'выберите бренд, который понравился больше всего'
        if errors:
            raise ValidationFailed(errors)

    submitted_now = new_status == STATUS_SUBMITTED and not was_submitted
    response.status = new_status
    if submitted_now:
        response.submitted_at = datetime.utcnow()

    repository.upsert_response(response)
    repository.add(build_activity(
        participant_id,
        'SUBMIT_RESPONSE' if submitted_now else 'UPDATE_RESPONSE',
        'RESPONSE',
        response.id,
        {'questionnaire_id': questionnaire.id, 'status': new_status, 'created': created},
        request_info,
    ))

    # Анкету могли закрыть, пока мы сохраняли: проверяем статус в той же транзакции
    if repository.get_questionnaire_status(questionnaire.id) == STATUS_CLOSED:
        raise QuestionnaireClosed()

    repository.commit()
    return SaveResult(response=response, created=created, submitted_now=submitted_now)


def save_response(repository, notifier, questionnaire_id, participant_id, payload, as_draft,
                  request_info=None):
    """
    Создает или обновляет ответ участника.

    Ответ один на пару (анкета, участник): существующий ответ обновляется на месте,
    оценки объединяются по ключу (brand_id, criterion). После первой отправки
    в канал анкеты публикуется responseSubmitted.
    """
    questionnaire = _get_questionnaire_or_404(repository, questionnaire_id)
    if questionnaire.is_closed:
        raise QuestionnaireClosed()

    target_status = STATUS_DRAFT if as_draft else STATUS_SUBMITTED
    result = validate_response(questionnaire, payload, target_status)
    if not result.valid:
        logger.warning('Rejected %s save for questionnaire %s by participant %s: %s',
                       target_status, questionnaire_id, participant_id, result.errors)
        raise ValidationFailed(result.errors)

    saved = None
    for attempt in range(1, SAVE_ATTEMPTS + 1):
        try:
            saved = _persist(repository, questionnaire, participant_id, payload, target_status, request_info)
            break
        except IntegrityError:
            repository.rollback()
            if attempt == SAVE_ATTEMPTS:
                raise DuplicateSubmission()
            logger.info('Concurrent create for questionnaire %s by participant %s, retrying as update',
                        questionnaire_id, participant_id)
        except Exception:
            repository.rollback()
            raise

    if saved.submitted_now:
        logger.info('Participant %s submitted response %s to questionnaire %s',
                    participant_id, saved.response.id, questionnaire_id)
        notifier.notify_response_submitted(questionnaire_id)
    return saved


def update_response(repository, notifier, response_id, participant_id, payload, as_draft,
                    request_info=None):
    response = repository.get_response_by_id(response_id)
    if response is None:
        raise NotFound('Ответ не найден.')
    if response.participant_id != participant_id:
        raise Forbidden('Нельзя изменять чужой ответ.')
    return save_response(repository, notifier, response.questionnaire_id, participant_id,
                         payload, as_draft, request_info)


def get_statistics(repository, questionnaire_id, viewer_id=None, request_info=None):
    """
    Статистика считается по снимку отправленных ответов на момент запроса.
    Ответ, который сохраняется прямо сейчас, может в нее не попасть.
    """
    questionnaire = _get_questionnaire_or_404(repository, questionnaire_id)
    responses = repository.get_submitted_responses(questionnaire_id)
    statistics = calculate_statistics(questionnaire, responses)

    if viewer_id is not None:
        repository.add(build_activity(viewer_id, 'VIEW_STATISTICS', 'QUESTIONNAIRE', questionnaire.id,
                                      {'total_responses': statistics['total_responses']}, request_info))
        repository.commit()
    return statistics


# --- Анкеты (действия администратора) ---

def _build_brands(items):
    return [Brand(name=item['name'].strip(), order=index) for index, item in enumerate(items)]


def _build_criteria(items):
    return [
        Criterion(key=item['key'].strip(), description=item['description'].strip(), order=index)
        for index, item in enumerate(items)
    ]


def create_questionnaire(repository, creator_id, payload, request_info=None):
    errors = validate_questionnaire(payload)
    if errors:
        raise ValidationFailed(errors, 'Анкета заполнена неверно.')

    questionnaire = Questionnaire(
        title=payload['title'].strip(),
        created_by=creator_id,
        brands=_build_brands(payload['brands']),
        criteria=_build_criteria(payload['criteria']),
    )
    try:
        repository.add(questionnaire)
        repository.flush()
        repository.add(build_activity(creator_id, 'CREATE_QUESTIONNAIRE', 'QUESTIONNAIRE', questionnaire.id,
                                      {'title': questionnaire.title}, request_info))
        repository.commit()
    except Exception:
        repository.rollback()
        raise
    logger.info('Questionnaire %s "%s" created by %s', questionnaire.id, questionnaire.title, creator_id)
    return questionnaire


def update_questionnaire(repository, notifier, questionnaire_id, user_id, payload, request_info=None):
    questionnaire = _get_questionnaire_or_404(repository, questionnaire_id)
    if questionnaire.is_closed:
        raise QuestionnaireClosed('Закрытую анкету нельзя редактировать.')

    payload = payload if isinstance(payload, dict) else {}
    payload = {key: payload[key] for key in EDITABLE_FIELDS if key in payload}
    if not payload:
        # Менять нечего: ни записи в журнал, ни события
        return questionnaire

    structure_changed = 'brands' in payload or 'criteria' in payload
    if structure_changed and repository.has_responses(questionnaire.id):
        raise Forbidden('Бренды и критерии нельзя менять, пока по анкете есть ответы.')

    candidate = {
        'title': payload.get('title', questionnaire.title),
        'brands': payload.get('brands', [b.to_dict() for b in questionnaire.brands]),
        'criteria': payload.get('criteria', [c.to_dict() for c in questionnaire.criteria]),
    }
    errors = validate_questionnaire(candidate)
    if errors:
        raise ValidationFailed(errors, 'Анкета заполнена неверно.')

    try:
        questionnaire.title = candidate['title'].strip()
        if 'brands' in payload:
            questionnaire.brands = _build_brands(payload['brands'])
        if 'criteria' in payload:
            # Сначала удаляем старые критерии, иначе новые с теми же ключами упрутся в уникальность
            questionnaire.criteria = []
            repository.flush()
            questionnaire.criteria = _build_criteria(payload['criteria'])
        repository.add(build_activity(user_id, 'UPDATE_QUESTIONNAIRE', 'QUESTIONNAIRE', questionnaire.id,
                                      {'fields': sorted(payload)}, request_info))
        repository.commit()
    except Exception:
        repository.rollback()
        raise

    notifier.notify_questionnaire_updated(questionnaire.id)
    return questionnaire


def close_questionnaire(repository, notifier, questionnaire_id, user_id, request_info=None):
    """Закрытие необратимо. Повторное закрытие ничего не меняет и событий не шлет."""
    questionnaire = _get_questionnaire_or_404(repository, questionnaire_id)
    if questionnaire.is_closed:
        return questionnaire

    try:
        questionnaire.status = STATUS_CLOSED
        repository.add(build_activity(user_id, 'CLOSE_QUESTIONNAIRE', 'QUESTIONNAIRE', questionnaire.id,
                                      None, request_info))
        repository.commit()
    except Exception:
        repository.rollback()
        raise

    logger.info('Questionnaire %s closed by %s', questionnaire.id, user_id)
    notifier.notify_questionnaire_updated(questionnaire.id)
    return questionnaire
