# models/activity_log.py

from datetime import datetime
from extensions import db
from sqlalchemy import CheckConstraint

ACTIONS = (
    'LOGIN',
    'CREATE_QUESTIONNAIRE',
    'UPDATE_QUESTIONNAIRE',
    'CLOSE_QUESTIONNAIRE',
    'SUBMIT_RESPONSE',
    'UPDATE_RESPONSE',
    'VIEW_STATISTICS',
)
ENTITY_TYPES = ('USER', 'QUESTIONNAIRE', 'RESPONSE')


class ActivityLog(db.Model):
    __tablename__ = 'activity_logs'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    action = db.Column(db.String(50), nullable=False)
    entity_type = db.Column(db.String(20), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)
    details = db.Column(db.JSON, nullable=False, default=dict)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship('User')

    __table_args__ = (
        CheckConstraint(f"action IN {ACTIONS}", name="check_activity_action"),
        CheckConstraint(f"entity_type IN {ENTITY_TYPES}", name="check_activity_entity_type"),
        db.Index('ix_activity_entity', 'entity_type', 'entity_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'user': self.user.to_dict() if self.user else None,
            'action': self.action,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'details': self.details,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
