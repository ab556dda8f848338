import pytest

from conftest import full_payload
from errors import DuplicateSubmission, Forbidden, NotFound, QuestionnaireClosed, ValidationFailed
from extensions import db
from logic import (
    close_questionnaire,
    create_questionnaire,
    get_statistics,
    load_for_edit,
    save_response,
    update_questionnaire,
    update_response,
)
from models import ActivityLog, Answer, Questionnaire, Response
from notifier import channel_for


def test_load_for_edit_returns_none_without_response(repository, questionnaire, participant):
    assert load_for_edit(repository, questionnaire.id, participant.id) is None


def test_save_unknown_questionnaire(repository, notifier, participant):
    with pytest.raises(NotFound):
        save_response(repository, notifier, 404, participant.id, {'answers': []}, as_draft=True)


def test_first_submission_creates_response_and_notifies(repository, notifier, questionnaire, brands, participant):
    brand_a, brand_b = brands

    saved = save_response(repository, notifier, questionnaire.id, participant.id,
                          full_payload(brand_a, brand_b), as_draft=False)

    assert saved.created
    assert saved.submitted_now
    assert saved.response.status == 'submitted'
    assert saved.response.submitted_at is not None
    assert len(saved.response.answers) == 4
    assert notifier.published == [(channel_for(questionnaire.id), 'responseSubmitted')]
    assert ActivityLog.query.filter_by(action='SUBMIT_RESPONSE').count() == 1


def test_draft_save_does_not_notify(repository, notifier, questionnaire, brands, participant):
    brand_a, _ = brands

    saved = save_response(repository, notifier, questionnaire.id, participant.id, {
        'answers': [{'brand_id': brand_a.id, 'criterion': 'flavor', 'rating': 0}],
    }, as_draft=True)

    assert saved.response.status == 'draft'
    assert notifier.published == []
    assert load_for_edit(repository, questionnaire.id, participant.id).id == saved.response.id


def test_draft_then_submit_merges_answers(repository, notifier, questionnaire, brands, participant):
    brand_a, brand_b = brands
    save_response(repository, notifier, questionnaire.id, participant.id, {
        'answers': [
            {'brand_id': brand_a.id, 'criterion': 'appearance', 'rating': 2, 'comment': 'pale'},
            {'brand_id': brand_a.id, 'criterion': 'flavor'},
        ],
    }, as_draft=True)

    saved = save_response(repository, notifier, questionnaire.id, participant.id,
                          full_payload(brand_a, brand_b), as_draft=False)

    response = saved.response
    assert not saved.created
    assert response.status == 'submitted'
    assert Response.query.count() == 1
    ratings = {(a.brand_id, a.criterion): a.rating for a in response.answers}
    assert ratings == {
        (brand_a.id, 'appearance'): 4,
        (brand_a.id, 'flavor'): 5,
        (brand_b.id, 'appearance'): 3,
        (brand_b.id, 'flavor'): 4,
    }
    # Комментарий из черновика сохранился: в новом запросе его не было
    assert response.answer_map()[(brand_a.id, 'appearance')].comment == 'pale'


def test_repeated_comment_drafts_do_not_duplicate_answers(repository, notifier, questionnaire, brands, participant):
    brand_a, brand_b = brands
    save_response(repository, notifier, questionnaire.id, participant.id, {
        'answers': [
            {'brand_id': brand_a.id, 'criterion': 'flavor', 'rating': 3},
            {'brand_id': brand_b.id, 'criterion': 'flavor', 'rating': 4},
        ],
        'brand_comments': [{'brand_id': brand_b.id, 'comment': 'sweet'}],
    }, as_draft=True)

    for comment in ('first', 'second'):
        save_response(repository, notifier, questionnaire.id, participant.id, {
            'answers': [{'brand_id': brand_a.id, 'criterion': 'flavor', 'comment': comment}],
            'brand_comments': [{'brand_id': brand_a.id, 'comment': comment}],
        }, as_draft=True)

    response = load_for_edit(repository, questionnaire.id, participant.id)
    assert Answer.query.filter_by(response_id=response.id).count() == 2
    assert response.answer_map()[(brand_a.id, 'flavor')].rating == 3
    assert response.answer_map()[(brand_a.id, 'flavor')].comment == 'second'
    assert response.answer_map()[(brand_b.id, 'flavor')].rating == 4
    assert {c.brand_id: c.comment for c in response.brand_comments} == {brand_a.id: 'second', brand_b.id: 'sweet'}


def test_duplicate_pairs_in_payload_last_one_wins(repository, notifier, questionnaire, brands, participant):
    brand_a, _ = brands

    saved = save_response(repository, notifier, questionnaire.id, participant.id, {
        'answers': [
            {'brand_id': brand_a.id, 'criterion': 'flavor', 'rating': 1},
            {'brand_id': brand_a.id, 'criterion': 'flavor', 'rating': 5},
        ],
    }, as_draft=True)

    assert len(saved.response.answers) == 1
    assert saved.response.answers[0].rating == 5


def test_submitted_response_stays_submitted_on_draft_save(repository, notifier, questionnaire, brands, participant):
    brand_a, brand_b = brands
    save_response(repository, notifier, questionnaire.id, participant.id,
                  full_payload(brand_a, brand_b), as_draft=False)

    saved = save_response(repository, notifier, questionnaire.id, participant.id, {
        'answers': [{'brand_id': brand_b.id, 'criterion': 'flavor', 'rating': 2}],
    }, as_draft=True)

    assert saved.response.status == 'submitted'
    assert not saved.submitted_now
    assert saved.response.answer_map()[(brand_b.id, 'flavor')].rating == 2
    assert [event for _, event in notifier.published] == ['responseSubmitted']


def test_draft_save_cannot_blank_a_submitted_rating(repository, notifier, questionnaire, brands, participant):
    brand_a, brand_b = brands
    save_response(repository, notifier, questionnaire.id, participant.id,
                  full_payload(brand_a, brand_b), as_draft=False)

    with pytest.raises(ValidationFailed) as excinfo:
        save_response(repository, notifier, questionnaire.id, participant.id, {
            'answers': [{'brand_id': brand_a.id, 'criterion': 'flavor', 'rating': 0}],
        }, as_draft=True)

    assert 'answers' in excinfo.value.errors
    db.session.expire_all()
    response = load_for_edit(repository, questionnaire.id, participant.id)
    assert response.answer_map()[(brand_a.id, 'flavor')].rating == 5


def test_incomplete_submission_rejected(repository, notifier, questionnaire, brands, participant):
    brand_a, _ = brands

    with pytest.raises(ValidationFailed) as excinfo:
        save_response(repository, notifier, questionnaire.id, participant.id, {
            'answers': [{'brand_id': brand_a.id, 'criterion': 'flavor', 'rating': 4}],
            'comparative_evaluation': {'preferred_brand_id': brand_a.id},
        }, as_draft=False)

    assert 'B/appearance' in excinfo.value.errors['answers']
    assert Response.query.count() == 0
    assert notifier.published == []


def test_submission_without_preferred_brand(repository, notifier, questionnaire, brands, participant):
    brand_a, brand_b = brands
    payload = full_payload(brand_a, brand_b)
    del payload['comparative_evaluation']

    with pytest.raises(ValidationFailed) as excinfo:
        save_response(repository, notifier, questionnaire.id, participant.id, payload, as_draft=False)

    assert 'preferred_brand' in excinfo.value.errors


def test_resubmitting_same_payload_keeps_statistics(repository, notifier, questionnaire, brands, participant):
    brand_a, brand_b = brands
    payload = full_payload(brand_a, brand_b)
    save_response(repository, notifier, questionnaire.id, participant.id, payload, as_draft=False)
    before = get_statistics(repository, questionnaire.id)

    save_response(repository, notifier, questionnaire.id, participant.id, payload, as_draft=False)
    after = get_statistics(repository, questionnaire.id)

    assert before == after
    assert after['total_responses'] == 1
    assert Response.query.count() == 1


def test_closed_questionnaire_rejects_drafts(repository, notifier, questionnaire, brands, participant, admin):
    brand_a, _ = brands
    close_questionnaire(repository, notifier, questionnaire.id, admin.id)

    with pytest.raises(QuestionnaireClosed):
        save_response(repository, notifier, questionnaire.id, participant.id, {
            'answers': [{'brand_id': brand_a.id, 'criterion': 'flavor', 'rating': 3}],
        }, as_draft=True)


def test_close_during_save_is_rejected_and_nothing_changes(repository, notifier, questionnaire, brands,
                                                          participant, monkeypatch):
    brand_a, brand_b = brands
    save_response(repository, notifier, questionnaire.id, participant.id, {
        'answers': [{'brand_id': brand_a.id, 'criterion': 'flavor', 'rating': 2}],
    }, as_draft=True)

    original_get_response = repository.get_response

    def close_then_load(questionnaire_id, participant_id):
        # Администратор закрывает анкету между проверкой статуса и записью
        Questionnaire.query.filter_by(id=questionnaire_id).update({'status': 'closed'})
        db.session.commit()
        return original_get_response(questionnaire_id, participant_id)

    monkeypatch.setattr(repository, 'get_response', close_then_load)

    with pytest.raises(Forbidden):
        save_response(repository, notifier, questionnaire.id, participant.id,
                      full_payload(brand_a, brand_b), as_draft=False)

    db.session.expire_all()
    response = Response.query.one()
    assert response.status == 'draft'
    assert len(response.answers) == 1
    assert response.answers[0].rating == 2
    assert notifier.published == []


def test_concurrent_first_save_retries_as_update(repository, notifier, questionnaire, brands,
                                                 participant, monkeypatch):
    brand_a, brand_b = brands
    save_response(repository, notifier, questionnaire.id, participant.id, {
        'answers': [{'brand_id': brand_a.id, 'criterion': 'flavor', 'rating': 2}],
    }, as_draft=True)

    original_get_response = repository.get_response
    calls = []

    def stale_then_fresh(questionnaire_id, participant_id):
        # Первый вызов не видит ответ, созданный параллельным запросом
        calls.append(participant_id)
        if len(calls) == 1:
            return None
        return original_get_response(questionnaire_id, participant_id)

    monkeypatch.setattr(repository, 'get_response', stale_then_fresh)

    saved = save_response(repository, notifier, questionnaire.id, participant.id,
                          full_payload(brand_a, brand_b), as_draft=False)

    assert len(calls) == 2
    assert not saved.created
    assert Response.query.count() == 1
    assert saved.response.status == 'submitted'


def test_persistent_conflict_raises_duplicate_submission(repository, notifier, questionnaire, brands,
                                                         participant, monkeypatch):
    brand_a, brand_b = brands
    save_response(repository, notifier, questionnaire.id, participant.id,
                  full_payload(brand_a, brand_b), as_draft=False)
    monkeypatch.setattr(repository, 'get_response', lambda questionnaire_id, participant_id: None)

    with pytest.raises(DuplicateSubmission):
        save_response(repository, notifier, questionnaire.id, participant.id,
                      full_payload(brand_a, brand_b), as_draft=False)

    assert Response.query.count() == 1


def test_participants_do_not_share_responses(repository, notifier, questionnaire, brands,
                                             participant, other_participant):
    brand_a, brand_b = brands
    first = save_response(repository, notifier, questionnaire.id, participant.id,
                          full_payload(brand_a, brand_b), as_draft=False)
    second = save_response(repository, notifier, questionnaire.id, other_participant.id,
                           full_payload(brand_a, brand_b, ratings=(1, 1, 1, 1), preferred=brand_b), as_draft=False)

    assert first.response.id != second.response.id
    stats = get_statistics(repository, questionnaire.id)
    assert stats['total_responses'] == 2
    assert stats['brand_preferences'] == {brand_a.id: 1, brand_b.id: 1}


def test_update_response_checks_owner(repository, notifier, questionnaire, brands, participant, other_participant):
    brand_a, brand_b = brands
    saved = save_response(repository, notifier, questionnaire.id, participant.id,
                          full_payload(brand_a, brand_b), as_draft=False)

    with pytest.raises(Forbidden):
        update_response(repository, notifier, saved.response.id, other_participant.id,
                        full_payload(brand_a, brand_b), as_draft=False)
    with pytest.raises(NotFound):
        update_response(repository, notifier, 9999, participant.id, {}, as_draft=True)

    updated = update_response(repository, notifier, saved.response.id, participant.id,
                              full_payload(brand_a, brand_b, ratings=(5, 5, 5, 5)), as_draft=False)
    assert {a.rating for a in updated.response.answers} == {5}


def test_statistics_scenario(repository, notifier, questionnaire, brands, participant, other_participant, admin):
    brand_a, brand_b = brands
    save_response(repository, notifier, questionnaire.id, participant.id,
                  full_payload(brand_a, brand_b, ratings=(4, 5, 3, 4)), as_draft=False)
    save_response(repository, notifier, questionnaire.id, other_participant.id,
                  full_payload(brand_a, brand_b, ratings=(5, 4, 4, 3)), as_draft=False)

    stats = get_statistics(repository, questionnaire.id, viewer_id=admin.id)

    assert stats['total_responses'] == 2
    assert stats['brand_ratings'][brand_a.id]['average_score'] == 4.5
    assert stats['brand_ratings'][brand_a.id]['criteria_scores']['appearance'] == 4.5
    assert stats['brand_preferences'] == {brand_a.id: 2}
    assert ActivityLog.query.filter_by(action='VIEW_STATISTICS').count() == 1


def test_statistics_skip_drafts(repository, notifier, questionnaire, brands, participant):
    brand_a, _ = brands
    save_response(repository, notifier, questionnaire.id, participant.id, {
        'answers': [{'brand_id': brand_a.id, 'criterion': 'flavor', 'rating': 5}],
    }, as_draft=True)

    assert get_statistics(repository, questionnaire.id)['total_responses'] == 0
    with pytest.raises(NotFound):
        get_statistics(repository, 12345)


def test_create_questionnaire_validates_structure(repository, admin):
    with pytest.raises(ValidationFailed) as excinfo:
        create_questionnaire(repository, admin.id, {'title': 'Tea', 'brands': [{'name': 'X'}], 'criteria': []})

    assert set(excinfo.value.errors) == {'brands', 'criteria'}

    questionnaire = create_questionnaire(repository, admin.id, {
        'title': 'Tea',
        'brands': [{'name': 'X'}, {'name': 'Y'}],
        'criteria': [{'key': 'aroma', 'description': 'Aroma'}],
    })
    assert questionnaire.status == 'open'
    assert [b.name for b in questionnaire.brands] == ['X', 'Y']
    assert questionnaire.criterion_keys == ['aroma']


def test_update_questionnaire_freezes_structure_once_answered(repository, notifier, questionnaire, brands,
                                                              participant, admin):
    brand_a, _ = brands
    update_questionnaire(repository, notifier, questionnaire.id, admin.id, {
        'criteria': [{'key': 'flavor', 'description': 'Taste'}, {'key': 'aroma', 'description': 'Aroma'}],
    })
    assert questionnaire.criterion_keys == ['flavor', 'aroma']
    assert notifier.published == [(channel_for(questionnaire.id), 'questionnaireUpdated')]

    save_response(repository, notifier, questionnaire.id, participant.id, {
        'answers': [{'brand_id': brand_a.id, 'criterion': 'aroma', 'rating': 3}],
    }, as_draft=True)

    with pytest.raises(Forbidden):
        update_questionnaire(repository, notifier, questionnaire.id, admin.id, {'brands': [{'name': 'Z'}, {'name': 'W'}]})

    renamed = update_questionnaire(repository, notifier, questionnaire.id, admin.id, {'title': 'Renamed'})
    assert renamed.title == 'Renamed'


def test_close_is_irreversible_and_idempotent(repository, notifier, questionnaire, admin):
    close_questionnaire(repository, notifier, questionnaire.id, admin.id)
    close_questionnaire(repository, notifier, questionnaire.id, admin.id)

    assert questionnaire.status == 'closed'
    assert notifier.published == [(channel_for(questionnaire.id), 'questionnaireUpdated')]
    with pytest.raises(QuestionnaireClosed):
        update_questionnaire(repository, notifier, questionnaire.id, admin.id, {'title': 'Reopened?'})


@pytest.mark.parametrize('payload', [{}, None, 'title', {'status': 'closed'}])
def test_update_without_editable_fields_changes_nothing(repository, notifier, questionnaire, admin, payload):
    result = update_questionnaire(repository, notifier, questionnaire.id, admin.id, payload)

    assert result.title == 'Yogurt tasting'
    assert result.status == 'open'
    assert notifier.published == []
    assert ActivityLog.query.filter_by(action='UPDATE_QUESTIONNAIRE').count() == 0
