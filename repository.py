# repository.py
# Доступ к анкетам и ответам. Все запросы идут через одну сессию SQLAlchemy,
# поэтому сохранение ответа - одна транзакция: либо все, либо ничего.

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from models import Questionnaire, Response
from models.response import STATUS_SUBMITTED


class ResponseRepository:
    def __init__(self, session):
        self.session = session

    def get_questionnaire(self, questionnaire_id):
        return self.session.get(Questionnaire, questionnaire_id)

    def get_questionnaire_status(self, questionnaire_id):
        """Читает статус прямо из базы, минуя уже загруженные объекты."""
        return self.session.execute(
            select(Questionnaire.status).where(Questionnaire.id == questionnaire_id)
        ).scalar_one_or_none()

    def get_response(self, questionnaire_id, participant_id):
        return self.session.execute(
            select(Response)
            .where(Response.questionnaire_id == questionnaire_id,
                   Response.participant_id == participant_id)
            .options(selectinload(Response.answers), selectinload(Response.brand_comments))
        ).scalar_one_or_none()

    def get_response_by_id(self, response_id):
        return self.session.get(Response, response_id)

    def get_participant_responses(self, participant_id):
        return self.session.execute(
            select(Response)
            .where(Response.participant_id == participant_id)
            .order_by(Response.created_at.desc())
        ).scalars().all()

    def get_submitted_responses(self, questionnaire_id):
        return self.session.execute(
            select(Response)
            .where(Response.questionnaire_id == questionnaire_id,
                   Response.status == STATUS_SUBMITTED)
            .options(selectinload(Response.answers))
            .order_by(Response.id)
        ).scalars().all()

    def has_responses(self, questionnaire_id):
        return self.session.execute(
            select(Response.id).where(Response.questionnaire_id == questionnaire_id).limit(1)
        ).first() is not None

    def upsert_response(self, response):
        # flush сразу, чтобы нарушение уникальности (questionnaire, participant)
        # всплыло здесь, а не при commit
        self.session.add(response)
        self.session.flush()
        return response

    def add(self, instance):
        self.session.add(instance)

    def flush(self):
        self.session.flush()

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
