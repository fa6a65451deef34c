from datetime import timedelta
from makerspace import create_app, db
from makerspace.models import User, Category, Event, Service, Workshop
from makerspace.utils.dates import utcnow

app = create_app()

with app.app_context():
    db.create_all()

    # Create Admin
    if not User.query.filter_by(username='admin').first():
        admin = User(username='admin', email='admin@makerspace.local', role='admin')
        admin.set_password('password')
        db.session.add(admin)
        print("Admin created (admin/password)")

    # Create Host
    host = User.query.filter_by(username='host').first()
    if not host:
        host = User(username='host', email='host@makerspace.local', first_name='Ada', last_name='Host')
        host.set_password('password')
        db.session.add(host)
        print("Host created (host/password)")

    category = Category.query.filter_by(name='Electronics').first()
    if not category:
        category = Category(name='Electronics', description='Soldering, microcontrollers and circuits')
        db.session.add(category)

    db.session.flush()

    start = utcnow() + timedelta(days=7)

    if not Event.query.filter_by(title='Open Hack Night').first():
        db.session.add(Event(
            title='Open Hack Night', description='Bring a project, share the tools.',
            date=start, time='18:00', host='Makerspace crew', type='networking',
            price=5, capacity=30, category_id=category.id
        ))
        print("Event Open Hack Night created.")

    if not Workshop.query.filter_by(title='Intro to Soldering').first():
        db.session.add(Workshop(
            title='Intro to Soldering', description='Through-hole soldering basics.',
            instructor_id=host.id, date=start + timedelta(days=1), time='10:00',
            duration='3 hours', max_participants=8, price=25, category_id=category.id,
            location='Electronics bench', equipment=['soldering iron'], materials=['kit'],
            participants=[]
        ))
        print("Workshop Intro to Soldering created.")

    if not Service.query.filter_by(title='Laser Cutter Induction').first():
        db.session.add(Service(
            title='Laser Cutter Induction', description='One-to-one safety induction.',
            price=40, duration='1 hour', category_id=category.id
        ))
        print("Service Laser Cutter Induction created.")

    db.session.commit()
    print("Database seeded successfully.")
