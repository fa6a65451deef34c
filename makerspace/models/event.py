from makerspace.extensions import db
from datetime import datetime

EVENT_TYPES = ('workshop', 'talks', 'networking')
LEVELS = ('beginner', 'intermediate', 'expert')

class Event(db.Model):
    __tablename__ = 'events'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    date = db.Column(db.DateTime, nullable=False, index=True)
    time = db.Column(db.String(32), nullable=False)
    host = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(20), default='workshop', nullable=False)
    level = db.Column(db.String(20), default='beginner', nullable=False)
    price = db.Column(db.Float, default=0, nullable=False)
    capacity = db.Column(db.Integer, nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=True, index=True)
    image = db.Column(db.String(512))

    # Bumped inside every booking transaction against this event
    lock_version = db.Column(db.Integer, default=0, nullable=False)

    category = db.relationship('Category', lazy=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('capacity >= 1', name='check_event_capacity_positive'),
        db.CheckConstraint('price >= 0', name='check_event_price_non_negative'),
    )

    def to_summary(self):
        return {
            'id': self.id,
            'title': self.title,
            'date': self.date.isoformat(),
            'host': self.host,
            'capacity': self.capacity
        }

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'date': self.date.isoformat(),
            'time': self.time,
            'host': self.host,
            'type': self.type,
            'level': self.level,
            'price': self.price,
            'capacity': self.capacity,
            'categoryId': self.category_id,
            'image': self.image
        }
