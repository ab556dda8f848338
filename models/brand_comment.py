from extensions import db


class BrandComment(db.Model):
    __tablename__ = 'brand_comments'
    id = db.Column(db.Integer, primary_key=True)
    response_id = db.Column(db.Integer, db.ForeignKey('responses.id', ondelete='CASCADE'), nullable=False)
    brand_id = db.Column(db.Integer, db.ForeignKey('brands.id', ondelete='CASCADE'), nullable=False)
    comment = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint('response_id', 'brand_id', name='unique_brand_comment'),
    )

    def to_dict(self):
        return {'brand_id': self.brand_id, 'comment': self.comment}
