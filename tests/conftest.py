import pytest
import jwt
from datetime import timedelta
from makerspace import create_app, db
from makerspace.config import TestingConfig
from makerspace.models import User, Event, Service, Workshop
from makerspace.services.booking_service import BookingService
from makerspace.utils.dates import utcnow

CUSTOMER = {'name': 'Alice Maker', 'email': 'alice@example.com', 'phone': '+44 7700 900123'}

@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    return app.test_client()

@pytest.fixture
def users(app):
    alice = User(username='alice', email='alice@example.com', role='user')
    bob = User(username='bob', email='bob@example.com', role='user')
    admin = User(username='admin', email='admin@example.com', role='admin')
    host = User(username='host', email='host@example.com', role='user')
    db.session.add_all([alice, bob, admin, host])
    db.session.commit()
    return {'alice': alice, 'bob': bob, 'admin': admin, 'host': host}

@pytest.fixture
def catalog(app, users):
    start = utcnow() + timedelta(days=14)
    workshop = Workshop(
        title='Intro to Soldering', description='Through-hole basics',
        instructor_id=users['host'].id, date=start, time='10:00', duration='3 hours',
        max_participants=1, price=30, participants=[]
    )
    big_workshop = Workshop(
        title='Laser Cutting 101', description='Vector cuts and engraving',
        instructor_id=users['host'].id, date=start, time='14:00', duration='2 hours',
        max_participants=5, price=15, participants=[]
    )
    event = Event(
        title='Open Hack Night', description='Bring a project',
        date=start, time='18:00', host='Makerspace crew', price=20, capacity=10
    )
    service = Service(
        title='3D Printer Induction', description='One-to-one safety induction',
        price=50, duration='2 hours'
    )
    db.session.add_all([workshop, big_workshop, event, service])
    db.session.commit()
    return {'workshop': workshop, 'big_workshop': big_workshop, 'event': event, 'service': service}

def make_token(user_id, secret=TestingConfig.SECRET_KEY):
    return jwt.encode({'user_id': user_id}, secret, algorithm='HS256')

def auth_header(user):
    return {'Authorization': f'Bearer {make_token(user.id)}'}

def book(user, booking_type, target_id, **overrides):
    params = {
        'date': '2026-12-01',
        'time': '10:00',
        'payment_method': 'credit_card',
        'customer_details': dict(CUSTOMER),
    }
    params.update(overrides)
    return BookingService.create_booking(user, booking_type, target_id, **params)
