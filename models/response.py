# models/response.py

from datetime import datetime
from extensions import db
from sqlalchemy import CheckConstraint, UniqueConstraint

STATUS_DRAFT = 'draft'
STATUS_SUBMITTED = 'submitted'


class Response(db.Model):
    __tablename__ = 'responses'

    id = db.Column(db.Integer, primary_key=True)
    questionnaire_id = db.Column(db.Integer, db.ForeignKey('questionnaires.id', ondelete='CASCADE'), nullable=False)
    participant_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_DRAFT)

    # Сравнительная оценка: какой бренд понравился больше всего
    preferred_brand_id = db.Column(db.Integer, db.ForeignKey('brands.id'), nullable=True)
    comparative_comments = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    submitted_at = db.Column(db.DateTime, nullable=True)

    answers = db.relationship('Answer', backref='response', order_by='Answer.id',
                              cascade="all, delete-orphan")
    brand_comments = db.relationship('BrandComment', backref='response', order_by='BrandComment.id',
                                     cascade="all, delete-orphan")
    preferred_brand = db.relationship('Brand')

    __table_args__ = (
        # Один ответ на участника в рамках анкеты
        UniqueConstraint('questionnaire_id', 'participant_id', name='unique_questionnaire_participant'),
        CheckConstraint("status IN ('draft', 'submitted')", name="check_response_status"),
    )

    @property
    def is_submitted(self):
        return self.status == STATUS_SUBMITTED

    def answer_map(self):
        return {(a.brand_id, a.criterion): a for a in self.answers}

    def to_dict(self):
        return {
            'id': self.id,
            'questionnaire_id': self.questionnaire_id,
            'participant_id': self.participant_id,
            'status': self.status,
            'answers': [a.to_dict() for a in self.answers],
            'brand_comments': [c.to_dict() for c in self.brand_comments],
            'comparative_evaluation': {
                'preferred_brand_id': self.preferred_brand_id,
                'comments': self.comparative_comments,
            },
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
        }
