from makerspace.extensions import db
from makerspace.models import Booking, Workshop
from makerspace.models.booking import ACTIVE_STATUSES

class RosterService:
    """
    Keeps Workshop.participants in step with active workshop bookings.

    Changes are staged on the session only; the caller commits them together
    with the booking write.
    """

    @staticmethod
    def add_participant(workshop_id, user_id):
        workshop = db.session.get(Workshop, workshop_id)
        if workshop is None:
            return False
        participants = list(workshop.participants or [])
        if user_id not in participants:
            workshop.participants = participants + [user_id]
        return True

    @staticmethod
    def remove_participant(workshop_id, user_id):
        """Remove every occurrence of the user. Returns False if the workshop is gone."""
        workshop = db.session.get(Workshop, workshop_id)
        if workshop is None:
            return False
        participants = list(workshop.participants or [])
        remaining = [p for p in participants if p != user_id]
        if len(remaining) != len(participants):
            workshop.participants = remaining
        return True

    @staticmethod
    def active_participants(workshop_id):
        """The roster as derived from active bookings, in booking order."""
        rows = db.session.query(Booking.user_id).filter(
            Booking.workshop_id == workshop_id,
            Booking.status.in_(ACTIVE_STATUSES)
        ).order_by(Booking.booking_date, Booking.id).all()

        seen = []
        for (user_id,) in rows:
            if user_id not in seen:
                seen.append(user_id)
        return seen

    @staticmethod
    def roster_drift(workshop_id):
        """User ids on the stored roster without an active booking, and vice versa."""
        workshop = db.session.get(Workshop, workshop_id)
        if workshop is None:
            return None
        stored = set(workshop.participants or [])
        derived = set(RosterService.active_participants(workshop_id))
        return {
            'stale': sorted(stored - derived),
            'missing': sorted(derived - stored)
        }
