# models/criterion.py

from extensions import db


class Criterion(db.Model):
    __tablename__ = 'criteria'
    id = db.Column(db.Integer, primary_key=True)
    questionnaire_id = db.Column(db.Integer, db.ForeignKey('questionnaires.id', ondelete='CASCADE'), nullable=False)
    # Ключ критерия (например, 'flavor'), на него ссылаются ответы
    key = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint('questionnaire_id', 'key', name='unique_questionnaire_criterion'),
    )

    def to_dict(self):
        return {'key': self.key, 'description': self.description}
