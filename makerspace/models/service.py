from makerspace.extensions import db
from datetime import datetime

class Service(db.Model):
    __tablename__ = 'services'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    level = db.Column(db.String(20), default='beginner', nullable=False)
    price = db.Column(db.Float, default=0, nullable=False) # flat, per booking
    duration = db.Column(db.String(64), default='1 hour', nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=True, index=True)

    category = db.relationship('Category', lazy=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('price >= 0', name='check_service_price_non_negative'),
    )

    def to_summary(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'level': self.level,
            'price': self.price,
            'duration': self.duration
        }

    def to_dict(self):
        data = self.to_summary()
        data['categoryId'] = self.category_id
        return data
