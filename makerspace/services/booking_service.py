from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from makerspace.extensions import db
from makerspace.config import Config
from makerspace.errors import ForbiddenError, NotFoundError, ValidationError
from makerspace.models import Booking, Event, Service, Workshop
from makerspace.models.booking import (
    ACTIVE_STATUSES, BOOKING_STATUSES, BOOKING_TYPES, PAYMENT_STATUSES, assert_status_transition
)
from makerspace.services.capacity_service import CAPACITY_TARGETS, CapacityService
from makerspace.services.registration_service import RegistrationService
from makerspace.services.roster_service import RosterService
from makerspace.utils.dates import parse_datetime

TARGET_MODELS = {
    'event': Event,
    'service': Service,
    'workshop': Workshop,
}

class BookingService:

    # --- Helpers ---

    @staticmethod
    def parse_participants(value):
        if value is None:
            return Config.DEFAULT_PARTICIPANTS
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError('Number of participants must be a whole number')
        if value < 1:
            raise ValidationError('At least one participant is required')
        return value

    @staticmethod
    def compute_price(booking_type, target, participants):
        """
        Return (total_price, duration) for a booking.
        Services are priced per booking; events and workshops per participant.
        """
        if booking_type == 'service':
            return target.price, target.duration
        if booking_type == 'event':
            return target.price * participants, None
        return target.price * participants, target.duration

    @staticmethod
    def load_target(booking_type, target_id, refresh=False):
        # refresh=True re-reads the row, e.g. after lock_target
        target = db.session.get(TARGET_MODELS[booking_type], target_id, populate_existing=refresh)
        if target is None:
            raise NotFoundError(f'{booking_type.capitalize()} not found')
        return target

    @staticmethod
    def customer_field(customer_details, key):
        value = customer_details.get(key)
        if value is None:
            return ''
        if not isinstance(value, str):
            raise ValidationError(f'Customer {key} must be text')
        return value.strip()

    @staticmethod
    def authorize(actor, booking, action):
        if actor.role != Config.ADMIN_ROLE and booking.user_id != actor.id:
            current_app.logger.warning(
                f"User {actor.id} refused permission to {action} booking {booking.id}"
            )
            raise ForbiddenError(f'Not authorized to {action} this booking')

    @staticmethod
    def get_for_actor(actor, booking_id, action='access'):
        booking = db.session.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError('Booking not found')
        BookingService.authorize(actor, booking, action)
        return booking

    @staticmethod
    def ensure_workshop_open(workshop_id, action):
        workshop = db.session.get(Workshop, workshop_id)
        if workshop is not None and workshop.status != 'upcoming':
            raise ValidationError(f'Cannot {action} a workshop that is not upcoming')

    # --- Queries ---

    @staticmethod
    def get_booking(actor, booking_id):
        return BookingService.get_for_actor(actor, booking_id, 'access')

    @staticmethod
    def list_bookings(actor):
        """Admins see every booking, other users only their own. Newest first."""
        query = Booking.query
        if actor.role != Config.ADMIN_ROLE:
            query = query.filter(Booking.user_id == actor.id)
        return query.order_by(Booking.booking_date.desc(), Booking.id.desc()).all()

    # --- Lifecycle ---

    @staticmethod
    def create_booking(user, booking_type, target_id, date, time, payment_method,
                       customer_details, number_of_participants=None, notes=None):
        """
        Main entry point to book an event, workshop or service.
        Either the booking is fully written or nothing is.
        """
        if booking_type not in BOOKING_TYPES:
            raise ValidationError('Invalid booking type')
        if target_id is None:
            raise ValidationError(f'{booking_type.capitalize()} ID is required for {booking_type} bookings')

        participants = BookingService.parse_participants(number_of_participants)

        booking_day = parse_datetime(date)
        if booking_day is None:
            raise ValidationError('Booking date is required')

        if customer_details is None:
            customer_details = {}
        if not isinstance(customer_details, dict):
            raise ValidationError('Customer details must be an object')
        if notes is not None and not isinstance(notes, str):
            raise ValidationError('Notes must be text')

        customer_name = BookingService.customer_field(customer_details, 'name')
        customer_email = BookingService.customer_field(customer_details, 'email')
        customer_phone = BookingService.customer_field(customer_details, 'phone') or None

        try:
            # Lock before reading status and price so both are current
            if booking_type in CAPACITY_TARGETS:
                CapacityService.lock_target(booking_type, target_id)
            target = BookingService.load_target(booking_type, target_id, refresh=True)
            if booking_type == 'workshop' and target.status != 'upcoming':
                raise ValidationError('Cannot register for a workshop that is not upcoming')

            total_price, duration = BookingService.compute_price(booking_type, target, participants)

            booking = Booking(
                user_id=user.id,
                booking_type=booking_type,
                date=booking_day,
                time=time.strip() if isinstance(time, str) else None,
                status='pending',
                payment_status='pending',
                payment_method=payment_method,
                number_of_participants=participants,
                total_price=total_price,
                duration=duration,
                customer_name=customer_name,
                customer_email=customer_email,
                customer_phone=customer_phone,
                notes=notes.strip() if notes else None
            )
            setattr(booking, f'{booking_type}_id', target.id)
            booking.validate()

            if booking_type == 'workshop':
                RegistrationService.ensure_not_registered(user.id, target.id)
            if booking_type in CAPACITY_TARGETS:
                CapacityService.ensure_capacity(target.id, booking_type, participants)

            db.session.add(booking)
            if booking_type == 'workshop':
                RosterService.add_participant(target.id, user.id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f"Booking {booking.id} created: user {user.id}, {booking_type} {target.id}, "
            f"{participants} participant(s), total {total_price}"
        )
        return booking

    @staticmethod
    def update_booking(actor, booking_id, status=None, payment_status=None, notes=None,
                       number_of_participants=None):
        booking = BookingService.get_for_actor(actor, booking_id, 'update')

        # Validate everything before touching the record
        if status is not None:
            if status not in BOOKING_STATUSES:
                raise ValidationError(f"Invalid status '{status}'")
            assert_status_transition(booking.status, status)
        if payment_status is not None and payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment status '{payment_status}'")
        if notes is not None and not isinstance(notes, str):
            raise ValidationError('Notes must be text')

        cancelling = status == 'cancelled' and booking.status != 'cancelled'
        if cancelling and booking.booking_type == 'workshop':
            BookingService.ensure_workshop_open(booking.workshop_id, 'cancel registration for')

        new_count = None
        if number_of_participants is not None:
            new_count = BookingService.parse_participants(number_of_participants)
            if booking.booking_type != 'event':
                raise ValidationError('Number of participants can only be changed on event bookings')

        final_status = status if status is not None else booking.status
        recount = new_count is not None and new_count != booking.number_of_participants

        try:
            new_price = None
            if recount:
                if final_status in ACTIVE_STATUSES:
                    CapacityService.lock_target('event', booking.event_id)
                event = BookingService.load_target('event', booking.event_id, refresh=True)
                if final_status in ACTIVE_STATUSES:
                    CapacityService.ensure_capacity(event.id, 'event', new_count, exclude_booking_id=booking.id)
                new_price = event.price * new_count

            if status is not None:
                booking.status = status
            if payment_status is not None:
                booking.payment_status = payment_status
            if notes is not None:
                booking.notes = notes.strip()
            if recount:
                booking.number_of_participants = new_count
                booking.total_price = new_price

            if cancelling and booking.booking_type == 'workshop':
                RosterService.remove_participant(booking.workshop_id, booking.user_id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        if cancelling:
            current_app.logger.info(f"Booking {booking.id} cancelled by user {actor.id}")
        return booking

    @staticmethod
    def cancel_booking(actor, booking_id):
        """Set status to cancelled. Cancelling a cancelled booking changes nothing."""
        return BookingService.update_booking(actor, booking_id, status='cancelled')

    @staticmethod
    def delete_booking(actor, booking_id):
        booking = BookingService.get_for_actor(actor, booking_id, 'delete')
        deleted_id = booking.id
        booking_type = booking.booking_type
        workshop_id = booking.workshop_id
        user_id = booking.user_id

        # A cancelled booking already left the roster; a later booking may have put the user back
        if booking_type == 'workshop' and workshop_id is not None and booking.status != 'cancelled':
            try:
                RosterService.remove_participant(workshop_id, user_id)
                db.session.delete(booking)
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception(
                    f"Error removing user {user_id} from workshop {workshop_id} participants"
                )
            else:
                current_app.logger.info(f"Booking {deleted_id} deleted by user {actor.id}")
                return deleted_id

        # Roster left as is; the booking itself must still go
        try:
            db.session.delete(db.session.get(Booking, deleted_id))
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f"Booking {deleted_id} deleted by user {actor.id}")
        return deleted_id
