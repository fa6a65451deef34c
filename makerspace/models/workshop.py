from makerspace.extensions import db
from makerspace.utils.dates import utcnow
from datetime import datetime

WORKSHOP_STATUSES = ('upcoming', 'ongoing', 'completed', 'cancelled')

class Workshop(db.Model):
    __tablename__ = 'workshops'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    instructor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    date = db.Column(db.DateTime, nullable=False, index=True)
    time = db.Column(db.String(32), nullable=False)
    duration = db.Column(db.String(64), nullable=False)
    level = db.Column(db.String(20), default='beginner', nullable=False)
    max_participants = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Float, default=0, nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=True, index=True)
    location = db.Column(db.String(255))
    equipment = db.Column(db.JSON, default=list) # e.g. ["laser cutter", "soldering iron"]
    materials = db.Column(db.JSON, default=list)
    status = db.Column(db.String(20), default='upcoming', nullable=False, index=True)

    # User ids with an active booking, kept in step by RosterService only.
    # Reassign the list on change: in-place mutation of a JSON column is not tracked.
    participants = db.Column(db.JSON, default=list, nullable=False)

    # Bumped inside every booking transaction against this workshop
    lock_version = db.Column(db.Integer, default=0, nullable=False)

    instructor = db.relationship('User', lazy=True)
    category = db.relationship('Category', lazy=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('max_participants >= 1', name='check_workshop_max_participants_positive'),
        db.CheckConstraint('price >= 0', name='check_workshop_price_non_negative'),
        db.CheckConstraint(
            "status IN ('upcoming', 'ongoing', 'completed', 'cancelled')",
            name='check_workshop_status'
        ),
    )

    @property
    def is_full(self):
        """True when no seat is left, counted the way the booking guard counts."""
        from makerspace.services.capacity_service import CapacityService
        return not CapacityService.check_capacity(self.id, 'workshop', 1).allowed

    @property
    def is_upcoming(self):
        return self.status == 'upcoming' and self.date > utcnow()

    def is_user_registered(self, user_id):
        return user_id in (self.participants or [])

    def to_summary(self):
        return {
            'id': self.id,
            'title': self.title,
            'date': self.date.isoformat(),
            'time': self.time,
            'location': self.location,
            'duration': self.duration,
            'maxParticipants': self.max_participants,
            'price': self.price,
            'level': self.level,
            'instructor': self.instructor_id
        }

    def to_dict(self):
        data = self.to_summary()
        data.update({
            'description': self.description,
            'categoryId': self.category_id,
            'equipment': self.equipment or [],
            'materials': self.materials or [],
            'status': self.status,
            'participants': list(self.participants or []),
            'isFull': self.is_full,
            'isUpcoming': self.is_upcoming
        })
        return data
