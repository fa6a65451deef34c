import pytest
from unittest.mock import patch
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import update
from makerspace import db
from makerspace.errors import (
    CapacityExceededError, DuplicateRegistrationError, ForbiddenError,
    InvalidTransitionError, NotFoundError, ValidationError
)
from makerspace.models import Booking, Event, Workshop
from makerspace.services.booking_service import BookingService
from makerspace.services.roster_service import RosterService
from tests.conftest import book


def participants_of(workshop_id):
    db.session.expire_all()
    return db.session.get(Workshop, workshop_id).participants


# --- Example scenarios ---

def test_workshop_full_rejects_second_user(app, users, catalog):
    workshop = catalog['workshop']
    alice, bob = users['alice'], users['bob']

    booking = book(alice, 'workshop', workshop.id)
    assert booking.status == 'pending'
    assert participants_of(workshop.id) == [alice.id]

    with pytest.raises(CapacityExceededError) as exc:
        book(bob, 'workshop', workshop.id)
    assert exc.value.current_count == 1
    assert exc.value.limit == 1


def test_duplicate_workshop_registration(app, users, catalog):
    workshop = catalog['workshop']
    alice = users['alice']
    book(alice, 'workshop', workshop.id)

    with pytest.raises(DuplicateRegistrationError):
        book(alice, 'workshop', workshop.id)

    assert Booking.query.filter_by(workshop_id=workshop.id, user_id=alice.id).count() == 1
    assert participants_of(workshop.id) == [alice.id]


def test_event_price_multiplies_participants(app, users, catalog):
    event = catalog['event']
    booking = book(users['alice'], 'event', event.id, number_of_participants=3)

    assert booking.total_price == 60
    assert booking.duration is None
    assert booking.event_id == event.id
    assert booking.workshop_id is None and booking.service_id is None


def test_service_price_is_flat(app, users, catalog):
    service = catalog['service']
    booking = book(users['alice'], 'service', service.id, number_of_participants=4)

    assert booking.total_price == 50
    assert booking.duration == '2 hours'
    assert booking.number_of_participants == 4


def test_workshop_price_multiplies_participants(app, users, catalog):
    workshop = catalog['big_workshop']
    booking = book(users['alice'], 'workshop', workshop.id, number_of_participants=2)

    assert booking.total_price == 30
    assert booking.duration == '2 hours'


def test_cancel_then_rebook_workshop(app, users, catalog):
    workshop = catalog['workshop']
    alice = users['alice']
    first = book(alice, 'workshop', workshop.id)

    cancelled = BookingService.cancel_booking(alice, first.id)
    assert cancelled.status == 'cancelled'
    assert alice.id not in participants_of(workshop.id)

    second = book(alice, 'workshop', workshop.id)
    assert second.id != first.id
    assert participants_of(workshop.id) == [alice.id]


def test_delete_survives_roster_failure(app, users, catalog):
    workshop = catalog['workshop']
    alice, admin = users['alice'], users['admin']
    booking = book(alice, 'workshop', workshop.id)
    booking_id = booking.id

    with patch.object(RosterService, 'remove_participant', side_effect=SQLAlchemyError('store unavailable')):
        deleted_id = BookingService.delete_booking(admin, booking_id)

    assert deleted_id == booking_id
    assert db.session.get(Booking, booking_id) is None
    # Accepted drift: the roster still lists the user
    assert participants_of(workshop.id) == [alice.id]
    assert RosterService.roster_drift(workshop.id) == {'stale': [alice.id], 'missing': []}


def test_failed_delete_keeps_roster(app, users, catalog):
    workshop = catalog['workshop']
    alice = users['alice']
    booking_id = book(alice, 'workshop', workshop.id).id

    with patch.object(db.session, 'delete', side_effect=SQLAlchemyError('store unavailable')):
        with pytest.raises(SQLAlchemyError):
            BookingService.delete_booking(alice, booking_id)

    assert db.session.get(Booking, booking_id) is not None
    assert participants_of(workshop.id) == [alice.id]


# --- Lifecycle ---

def test_delete_removes_from_roster(app, users, catalog):
    workshop = catalog['workshop']
    alice = users['alice']
    booking = book(alice, 'workshop', workshop.id)

    BookingService.delete_booking(alice, booking.id)
    assert participants_of(workshop.id) == []
    assert Booking.query.count() == 0


def test_deleting_old_cancelled_booking_keeps_new_registration(app, users, catalog):
    workshop = catalog['workshop']
    alice = users['alice']
    old = book(alice, 'workshop', workshop.id)
    BookingService.cancel_booking(alice, old.id)
    book(alice, 'workshop', workshop.id)

    BookingService.delete_booking(alice, old.id)
    assert participants_of(workshop.id) == [alice.id]


def test_cancel_is_idempotent(app, users, catalog):
    alice = users['alice']
    booking = book(alice, 'event', catalog['event'].id)

    BookingService.cancel_booking(alice, booking.id)
    again = BookingService.cancel_booking(alice, booking.id)
    assert again.status == 'cancelled'


def test_status_transitions(app, users, catalog):
    admin = users['admin']
    booking = book(users['alice'], 'event', catalog['event'].id)

    with pytest.raises(InvalidTransitionError):
        BookingService.update_booking(admin, booking.id, status='completed')

    BookingService.update_booking(admin, booking.id, status='confirmed')
    BookingService.update_booking(admin, booking.id, status='completed')
    assert db.session.get(Booking, booking.id).status == 'completed'

    for target in ('pending', 'confirmed', 'cancelled'):
        with pytest.raises(InvalidTransitionError):
            BookingService.update_booking(admin, booking.id, status=target)


def test_cancelled_booking_is_not_resurrected(app, users, catalog):
    alice = users['alice']
    booking = book(alice, 'event', catalog['event'].id)
    BookingService.cancel_booking(alice, booking.id)

    with pytest.raises(InvalidTransitionError):
        BookingService.update_booking(users['admin'], booking.id, status='pending')


def test_invalid_status_values(app, users, catalog):
    booking = book(users['alice'], 'event', catalog['event'].id)

    with pytest.raises(ValidationError):
        BookingService.update_booking(users['alice'], booking.id, status='archived')
    with pytest.raises(ValidationError):
        BookingService.update_booking(users['alice'], booking.id, payment_status='owed')


def test_payment_status_independent_of_status(app, users, catalog):
    booking = book(users['alice'], 'event', catalog['event'].id)

    updated = BookingService.update_booking(users['admin'], booking.id, payment_status='paid', notes='  paid at desk ')
    assert updated.payment_status == 'paid'
    assert updated.status == 'pending'
    assert updated.notes == 'paid at desk'


def test_update_participants_rechecks_capacity(app, users, catalog):
    event = catalog['event']
    alice = users['alice']
    mine = book(alice, 'event', event.id, number_of_participants=3)
    book(users['bob'], 'event', event.id, number_of_participants=5)

    with pytest.raises(CapacityExceededError):
        BookingService.update_booking(alice, mine.id, number_of_participants=6)

    db.session.expire_all()
    unchanged = db.session.get(Booking, mine.id)
    assert unchanged.number_of_participants == 3
    assert unchanged.total_price == 60

    updated = BookingService.update_booking(alice, mine.id, number_of_participants=5)
    assert updated.number_of_participants == 5
    assert updated.total_price == 100


def test_rejected_update_leaves_other_fields(app, users, catalog):
    event = catalog['event']
    alice = users['alice']
    mine = book(alice, 'event', event.id, number_of_participants=5)
    book(users['bob'], 'event', event.id, number_of_participants=5)

    with pytest.raises(CapacityExceededError):
        BookingService.update_booking(alice, mine.id, number_of_participants=6, notes='bring two more')

    db.session.expire_all()
    assert db.session.get(Booking, mine.id).notes is None


def test_participant_change_only_on_event_bookings(app, users, catalog):
    booking = book(users['alice'], 'service', catalog['service'].id)

    with pytest.raises(ValidationError):
        BookingService.update_booking(users['alice'], booking.id, number_of_participants=2)


def test_cancelling_via_update_syncs_roster(app, users, catalog):
    workshop = catalog['workshop']
    alice = users['alice']
    booking = book(alice, 'workshop', workshop.id)

    BookingService.update_booking(users['admin'], booking.id, status='cancelled')
    assert participants_of(workshop.id) == []


def test_workshop_must_be_upcoming(app, users, catalog):
    workshop = catalog['big_workshop']
    alice = users['alice']
    booking = book(alice, 'workshop', workshop.id)

    workshop.status = 'ongoing'
    db.session.commit()

    with pytest.raises(ValidationError, match='not upcoming'):
        book(users['bob'], 'workshop', workshop.id)
    with pytest.raises(ValidationError, match='not upcoming'):
        BookingService.cancel_booking(alice, booking.id)

    db.session.expire_all()
    assert db.session.get(Booking, booking.id).status == 'pending'
    assert participants_of(workshop.id) == [alice.id]


# --- Duplicate guard asymmetry ---

def test_events_and_services_allow_repeat_bookings(app, users, catalog):
    alice = users['alice']
    book(alice, 'event', catalog['event'].id)
    book(alice, 'event', catalog['event'].id)
    book(alice, 'service', catalog['service'].id)
    book(alice, 'service', catalog['service'].id)

    assert Booking.query.filter_by(user_id=alice.id).count() == 4


# --- Validation and atomicity ---

def test_unknown_target_is_not_found(app, users, catalog):
    for booking_type in ('event', 'service', 'workshop'):
        with pytest.raises(NotFoundError):
            book(users['alice'], booking_type, 9999)
    assert Booking.query.count() == 0


@pytest.mark.parametrize('overrides, message', [
    ({'payment_method': 'cash'}, 'Payment method'),
    ({'customer_details': {'email': 'alice@example.com'}}, 'Customer name'),
    ({'customer_details': {'name': 'Alice', 'email': 'not-an-email'}}, 'valid email'),
    ({'customer_details': {'name': 'Alice', 'email': 'a@b.co', 'phone': 'call me'}}, 'valid phone'),
    ({'number_of_participants': 0}, 'At least one participant'),
    ({'number_of_participants': '2'}, 'whole number'),
    ({'date': 'next tuesday'}, 'date is required'),
    ({'time': ''}, 'time is required'),
    ({'customer_details': {'name': 42, 'email': 'a@b.co'}}, 'Customer name must be text'),
    ({'customer_details': {'name': 'Alice', 'email': ['a@b.co']}}, 'Customer email must be text'),
    ({'customer_details': {'name': 'Alice', 'email': 'a@b.co', 'phone': 7700900123}}, 'Customer phone must be text'),
])
def test_invalid_payloads_write_nothing(app, users, catalog, overrides, message):
    workshop = catalog['big_workshop']
    with pytest.raises(ValidationError, match=message):
        book(users['alice'], 'workshop', workshop.id, **overrides)

    assert Booking.query.count() == 0
    assert participants_of(workshop.id) == []


def test_invalid_booking_type(app, users, catalog):
    with pytest.raises(ValidationError, match='Invalid booking type'):
        book(users['alice'], 'room', 1)
    with pytest.raises(ValidationError, match='Event ID is required'):
        book(users['alice'], 'event', None)


def test_capacity_failure_rolls_back_lock(app, users, catalog):
    workshop = catalog['workshop']
    book(users['alice'], 'workshop', workshop.id)
    db.session.expire_all()
    version = db.session.get(Workshop, workshop.id).lock_version

    with pytest.raises(CapacityExceededError):
        book(users['bob'], 'workshop', workshop.id)

    db.session.expire_all()
    assert db.session.get(Workshop, workshop.id).lock_version == version
    assert Booking.query.count() == 1


def test_booking_validate_rejects_mismatched_reference(app, users, catalog):
    booking = Booking(
        user_id=users['alice'].id, booking_type='event', workshop_id=catalog['workshop'].id,
        event_id=catalog['event'].id, time='10:00', status='pending', payment_status='pending',
        payment_method='paypal', number_of_participants=1, total_price=20,
        customer_name='Alice', customer_email='alice@example.com'
    )
    with pytest.raises(ValidationError, match='Workshop ID is not allowed'):
        booking.validate()


# --- Authorization ---

def test_only_owner_or_admin(app, users, catalog):
    booking = book(users['alice'], 'event', catalog['event'].id)
    bob = users['bob']

    with pytest.raises(ForbiddenError):
        BookingService.get_booking(bob, booking.id)
    with pytest.raises(ForbiddenError):
        BookingService.update_booking(bob, booking.id, notes='mine now')
    with pytest.raises(ForbiddenError):
        BookingService.cancel_booking(bob, booking.id)
    with pytest.raises(ForbiddenError):
        BookingService.delete_booking(bob, booking.id)

    db.session.expire_all()
    untouched = db.session.get(Booking, booking.id)
    assert untouched.status == 'pending'
    assert untouched.notes is None

    assert BookingService.get_booking(users['admin'], booking.id).id == booking.id
    assert BookingService.update_booking(users['admin'], booking.id, status='confirmed').status == 'confirmed'


def test_missing_booking_is_not_found(app, users):
    with pytest.raises(NotFoundError, match='Booking not found'):
        BookingService.update_booking(users['admin'], 42, status='confirmed')


def test_list_bookings_scoped_to_user(app, users, catalog):
    book(users['alice'], 'event', catalog['event'].id)
    book(users['bob'], 'service', catalog['service'].id)

    assert [b.user_id for b in BookingService.list_bookings(users['alice'])] == [users['alice'].id]
    assert len(BookingService.list_bookings(users['admin'])) == 2


# --- Target state read under the lock ---

def test_booking_uses_price_written_before_lock(app, users, catalog):
    event = catalog['event']
    assert event.price == 20
    db.session.execute(
        update(Event).where(Event.id == event.id).values(price=25)
        .execution_options(synchronize_session=False)
    )

    booking = book(users['alice'], 'event', event.id, number_of_participants=2)
    assert booking.total_price == 50


def test_workshop_closed_before_lock_rejects_booking(app, users, catalog):
    workshop = catalog['big_workshop']
    assert workshop.status == 'upcoming'
    db.session.execute(
        update(Workshop).where(Workshop.id == workshop.id).values(status='cancelled')
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(ValidationError, match='not upcoming'):
        book(users['alice'], 'workshop', workshop.id)
    assert Booking.query.count() == 0
