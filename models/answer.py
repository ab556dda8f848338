from extensions import db
from sqlalchemy import CheckConstraint


class Answer(db.Model):
    __tablename__ = 'answers'
    id = db.Column(db.Integer, primary_key=True)
    response_id = db.Column(db.Integer, db.ForeignKey('responses.id', ondelete='CASCADE'), nullable=False)
    brand_id = db.Column(db.Integer, db.ForeignKey('brands.id', ondelete='CASCADE'), nullable=False)
    criterion = db.Column(db.String(100), nullable=False)
    # 0 или NULL - незаполненная оценка в черновике
    rating = db.Column(db.Integer, nullable=True)
    comment = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint('response_id', 'brand_id', 'criterion', name='unique_answer'),
        CheckConstraint("rating IS NULL OR rating BETWEEN 0 AND 5", name="check_rating"),
    )

    def to_dict(self):
        return {
            'brand_id': self.brand_id,
            'criterion': self.criterion,
            'rating': self.rating,
            'comment': self.comment,
        }
