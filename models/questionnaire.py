# models/questionnaire.py

from datetime import datetime
from extensions import db
from sqlalchemy import CheckConstraint

STATUS_OPEN = 'open'
STATUS_CLOSED = 'closed'


class Questionnaire(db.Model):
    __tablename__ = 'questionnaires'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_OPEN)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Порядок брендов и критериев задает организатор
    brands = db.relationship('Brand', backref='questionnaire', order_by='Brand.order',
                             cascade="all, delete-orphan")
    criteria = db.relationship('Criterion', backref='questionnaire', order_by='Criterion.order',
                               cascade="all, delete-orphan")
    responses = db.relationship('Response', backref='questionnaire', lazy='dynamic',
                                cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("status IN ('open', 'closed')", name="check_questionnaire_status"),
    )

    @property
    def is_closed(self):
        return self.status == STATUS_CLOSED

    @property
    def brand_ids(self):
        return {brand.id for brand in self.brands}

    @property
    def criterion_keys(self):
        return [criterion.key for criterion in self.criteria]

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'status': self.status,
            'brands': [brand.to_dict() for brand in self.brands],
            'criteria': [criterion.to_dict() for criterion in self.criteria],
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
