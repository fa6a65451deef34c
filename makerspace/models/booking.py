import re
from makerspace.extensions import db
from makerspace.errors import ValidationError, InvalidTransitionError
from makerspace.utils.dates import utcnow
from datetime import datetime

BOOKING_TYPES = ('event', 'service', 'workshop')
BOOKING_STATUSES = ('pending', 'confirmed', 'cancelled', 'completed')
PAYMENT_STATUSES = ('pending', 'paid', 'refunded', 'failed')
PAYMENT_METHODS = ('credit_card', 'debit_card', 'paypal', 'bank_transfer')

# Bookings in these states hold a seat and block a second workshop registration
ACTIVE_STATUSES = ('pending', 'confirmed')

STATUS_TRANSITIONS = {
    'pending': {'confirmed', 'cancelled'},
    'confirmed': {'completed', 'cancelled'},
    'cancelled': set(),
    'completed': set(),
}

EMAIL_RE = re.compile(r'^\S+@\S+\.\S+$')
PHONE_RE = re.compile(r'^[\d\s+\-()]{6,20}$')


def assert_status_transition(current, target):
    """Writing the current status again is allowed and changes nothing."""
    if target == current:
        return
    if target not in STATUS_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(current, target)


class Booking(db.Model):
    __tablename__ = 'bookings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    booking_type = db.Column(db.String(20), nullable=False)

    event_id = db.Column(db.Integer, db.ForeignKey('events.id'), nullable=True, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey('services.id'), nullable=True, index=True)
    workshop_id = db.Column(db.Integer, db.ForeignKey('workshops.id'), nullable=True, index=True)

    date = db.Column(db.DateTime, nullable=False, index=True)
    time = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(20), default='pending', nullable=False, index=True)
    payment_status = db.Column(db.String(20), default='pending', nullable=False, index=True)
    payment_method = db.Column(db.String(20), nullable=False)
    number_of_participants = db.Column(db.Integer, default=1, nullable=False)
    total_price = db.Column(db.Float, nullable=False)
    duration = db.Column(db.String(64))

    customer_name = db.Column(db.String(128), nullable=False)
    customer_email = db.Column(db.String(120), nullable=False)
    customer_phone = db.Column(db.String(32))
    notes = db.Column(db.Text)

    booking_date = db.Column(db.DateTime, default=utcnow, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', lazy=True)
    event = db.relationship('Event', lazy=True)
    service = db.relationship('Service', lazy=True)
    workshop = db.relationship('Workshop', lazy=True)

    __table_args__ = (
        db.Index('ix_bookings_user_type', 'user_id', 'booking_type'),
        db.CheckConstraint('number_of_participants >= 1', name='check_booking_participants_positive'),
        db.CheckConstraint('total_price >= 0', name='check_booking_price_non_negative'),
        db.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name='check_booking_status'
        ),
        db.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded', 'failed')",
            name='check_booking_payment_status'
        ),
        # Exactly one target reference, the one named by booking_type
        db.CheckConstraint(
            "(booking_type = 'event' AND event_id IS NOT NULL AND service_id IS NULL AND workshop_id IS NULL)"
            " OR (booking_type = 'service' AND service_id IS NOT NULL AND event_id IS NULL AND workshop_id IS NULL)"
            " OR (booking_type = 'workshop' AND workshop_id IS NOT NULL AND event_id IS NULL AND service_id IS NULL)",
            name='check_booking_target_matches_type'
        ),
    )

    @property
    def target_id(self):
        return getattr(self, f'{self.booking_type}_id', None)

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES

    def validate(self):
        """Check the cross-field invariants before anything is written."""
        if self.booking_type not in BOOKING_TYPES:
            raise ValidationError('Invalid booking type')

        for kind in BOOKING_TYPES:
            ref = getattr(self, f'{kind}_id')
            if kind == self.booking_type and ref is None:
                raise ValidationError(f'{kind.capitalize()} ID is required for {kind} bookings')
            if kind != self.booking_type and ref is not None:
                raise ValidationError(f'{kind.capitalize()} ID is not allowed on {self.booking_type} bookings')

        if self.status not in BOOKING_STATUSES:
            raise ValidationError(f"Invalid status '{self.status}'")
        if self.payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment status '{self.payment_status}'")
        if self.payment_method not in PAYMENT_METHODS:
            raise ValidationError('Payment method is required')
        if self.number_of_participants is None or self.number_of_participants < 1:
            raise ValidationError('At least one participant is required')
        if self.total_price is None or self.total_price < 0:
            raise ValidationError('Price cannot be negative')
        if self.booking_type in ('service', 'workshop') and not self.duration:
            raise ValidationError(f'Duration is required for {self.booking_type} bookings')
        if self.date is None:
            raise ValidationError('Booking date is required')
        if not self.time:
            raise ValidationError('Booking time is required')

        if not self.customer_name:
            raise ValidationError('Customer name is required')
        if not self.customer_email:
            raise ValidationError('Customer email is required')
        if not EMAIL_RE.match(self.customer_email):
            raise ValidationError('Please enter a valid email')
        if self.customer_phone and not PHONE_RE.match(self.customer_phone):
            raise ValidationError('Please add a valid phone number')

    def to_dict(self, populate=False):
        data = {
            'id': self.id,
            'user': self.user_id,
            'bookingType': self.booking_type,
            'event': self.event_id,
            'service': self.service_id,
            'workshop': self.workshop_id,
            'date': self.date.isoformat(),
            'time': self.time,
            'status': self.status,
            'paymentStatus': self.payment_status,
            'paymentMethod': self.payment_method,
            'numberOfParticipants': self.number_of_participants,
            'totalPrice': self.total_price,
            'duration': self.duration,
            'customerDetails': {
                'name': self.customer_name,
                'email': self.customer_email,
                'phone': self.customer_phone
            },
            'notes': self.notes,
            'bookingDate': self.booking_date.isoformat() if self.booking_date else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None
        }
        if populate:
            if self.user is not None:
                data['user'] = self.user.to_summary()
            target = getattr(self, self.booking_type, None)
            if target is not None:
                data[self.booking_type] = target.to_summary()
        return data
