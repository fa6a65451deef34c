from flask import current_app
from makerspace.extensions import db
from makerspace.errors import DuplicateRegistrationError
from makerspace.models import Booking
from makerspace.models.booking import ACTIVE_STATUSES

class RegistrationService:
    """One active booking per user per workshop. Events and services allow several."""

    @staticmethod
    def has_active_registration(user_id, workshop_id):
        existing = db.session.query(Booking.id).filter(
            Booking.workshop_id == workshop_id,
            Booking.user_id == user_id,
            Booking.status.in_(ACTIVE_STATUSES)
        ).first()
        return existing is not None

    @staticmethod
    def ensure_not_registered(user_id, workshop_id):
        if RegistrationService.has_active_registration(user_id, workshop_id):
            current_app.logger.warning(
                f"User {user_id} already holds an active booking for workshop {workshop_id}"
            )
            raise DuplicateRegistrationError()
