from makerspace import db
from makerspace.models import Workshop
from makerspace.services.registration_service import RegistrationService
from makerspace.services.roster_service import RosterService
from makerspace.services.booking_service import BookingService
from tests.conftest import book


def reload(workshop_id):
    db.session.expire_all()
    return db.session.get(Workshop, workshop_id)


def test_add_participant_once(app, users, catalog):
    workshop = catalog['big_workshop']
    alice = users['alice']

    RosterService.add_participant(workshop.id, alice.id)
    RosterService.add_participant(workshop.id, alice.id)
    db.session.commit()

    assert reload(workshop.id).participants == [alice.id]


def test_remove_participant_drops_every_occurrence(app, users, catalog):
    workshop = catalog['big_workshop']
    alice, bob = users['alice'], users['bob']
    workshop.participants = [alice.id, bob.id, alice.id]
    db.session.commit()

    RosterService.remove_participant(workshop.id, alice.id)
    db.session.commit()

    assert reload(workshop.id).participants == [bob.id]


def test_missing_workshop_is_ignored(app, users):
    assert RosterService.add_participant(404, users['alice'].id) is False
    assert RosterService.remove_participant(404, users['alice'].id) is False
    assert RosterService.roster_drift(404) is None


def test_roster_tracks_bookings(app, users, catalog):
    workshop = catalog['big_workshop']
    alice, bob = users['alice'], users['bob']
    first = book(alice, 'workshop', workshop.id)
    book(bob, 'workshop', workshop.id)

    assert reload(workshop.id).participants == [alice.id, bob.id]
    assert RosterService.active_participants(workshop.id) == [alice.id, bob.id]

    BookingService.cancel_booking(alice, first.id)
    assert reload(workshop.id).participants == [bob.id]
    assert RosterService.active_participants(workshop.id) == [bob.id]
    assert RosterService.roster_drift(workshop.id) == {'stale': [], 'missing': []}


def test_is_full_and_registration_flags(app, users, catalog):
    workshop = catalog['workshop']
    alice = users['alice']
    assert not reload(workshop.id).is_full
    assert reload(workshop.id).is_upcoming

    book(alice, 'workshop', workshop.id)

    refreshed = reload(workshop.id)
    assert refreshed.is_full
    assert refreshed.is_user_registered(alice.id)
    assert RegistrationService.has_active_registration(alice.id, workshop.id)
    assert not RegistrationService.has_active_registration(users['bob'].id, workshop.id)
