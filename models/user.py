from extensions import db
from sqlalchemy import CheckConstraint

ROLE_PARTICIPANT = 'participant'
ROLE_ADMIN = 'admin'


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(6), unique=True, nullable=False)
    nickname = db.Column(db.String(100), nullable=True, index=True)
    role = db.Column(db.String, nullable=False, default=ROLE_PARTICIPANT)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    responses = db.relationship('Response', backref='participant', cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("role IN ('participant', 'admin')", name="check_role"),
    )

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def to_dict(self):
        return {'id': self.id, 'nickname': self.nickname, 'role': self.role}
