from collections import namedtuple
from flask import current_app
from sqlalchemy import func, update
from makerspace.extensions import db
from makerspace.errors import CapacityExceededError, NotFoundError, ValidationError
from makerspace.models import Booking, Event, Workshop
from makerspace.models.booking import ACTIVE_STATUSES

CapacityCheck = namedtuple('CapacityCheck', ['allowed', 'current_count', 'limit'])

CAPACITY_TARGETS = {
    'event': (Event, Booking.event_id, 'capacity'),
    'workshop': (Workshop, Booking.workshop_id, 'max_participants'),
}

class CapacityService:

    @staticmethod
    def _resolve(target_type):
        if target_type not in CAPACITY_TARGETS:
            raise ValidationError(f"'{target_type}' bookings have no capacity limit")
        return CAPACITY_TARGETS[target_type]

    @staticmethod
    def get_target(target_type, target_id):
        model, _, _ = CapacityService._resolve(target_type)
        target = db.session.get(model, target_id)
        if target is None:
            raise NotFoundError(f'{target_type.capitalize()} not found')
        return target

    @staticmethod
    def active_participant_count(target_type, target_id, exclude_booking_id=None):
        """Seats held by pending/confirmed bookings against the target."""
        _, column, _ = CapacityService._resolve(target_type)
        query = db.session.query(
            func.coalesce(func.sum(Booking.number_of_participants), 0)
        ).filter(
            column == target_id,
            Booking.status.in_(ACTIVE_STATUSES)
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return int(query.scalar())

    @staticmethod
    def check_capacity(target_id, target_type, requested_participants, exclude_booking_id=None):
        """
        Read-only admission check.
        Both events and workshops count summed participants of active bookings.
        """
        target = CapacityService.get_target(target_type, target_id)
        _, _, limit_attr = CapacityService._resolve(target_type)
        limit = getattr(target, limit_attr)

        current = CapacityService.active_participant_count(target_type, target_id, exclude_booking_id)
        return CapacityCheck(
            allowed=current + requested_participants <= limit,
            current_count=current,
            limit=limit
        )

    @staticmethod
    def lock_target(target_type, target_id):
        """
        Conditional write on the target row so that concurrent booking
        transactions against it run one after another. Must run before the
        count, inside the transaction that inserts the booking.
        """
        model, _, _ = CapacityService._resolve(target_type)
        result = db.session.execute(
            update(model)
            .where(model.id == target_id)
            .values(lock_version=model.lock_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError(f'{target_type.capitalize()} not found')

    @staticmethod
    def ensure_capacity(target_id, target_type, requested_participants, exclude_booking_id=None):
        """Raise CapacityExceededError if the request does not fit. Call lock_target first."""
        check = CapacityService.check_capacity(
            target_id, target_type, requested_participants, exclude_booking_id
        )
        if not check.allowed:
            current_app.logger.warning(
                f"Capacity exceeded for {target_type} {target_id}: "
                f"{check.current_count} + {requested_participants} > {check.limit}"
            )
            raise CapacityExceededError(target_type, check.current_count, check.limit)
        return check

    @staticmethod
    def availability(target_type, target_id):
        check = CapacityService.check_capacity(target_id, target_type, 0)
        return {
            'currentCount': check.current_count,
            'limit': check.limit,
            'available': max(0, check.limit - check.current_count)
        }
