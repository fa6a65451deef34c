from flask import Blueprint, request, jsonify
from makerspace.errors import NotFoundError, ValidationError
from makerspace.extensions import db
from makerspace.models import Category, Event, Service, Workshop
from makerspace.services.capacity_service import CapacityService
from makerspace.services.roster_service import RosterService
from makerspace.utils.dates import utcnow
from makerspace.utils.decorators import token_required, handle_errors

catalog_bp = Blueprint('catalog', __name__)

def get_or_404(model, item_id, label):
    item = db.session.get(model, item_id)
    if item is None:
        raise NotFoundError(f'{label} not found')
    return item

def list_response(items):
    return jsonify({
        'success': True,
        'count': len(items),
        'data': [i.to_dict() for i in items]
    })

def filter_category(query, model):
    category_id = request.args.get('categoryId')
    if category_id:
        if not category_id.isdigit():
            raise ValidationError('Invalid category ID format')
        query = query.filter(model.category_id == int(category_id))
    return query

# --- EVENTS ---

@catalog_bp.route('/events', methods=['GET'])
@handle_errors
def get_events():
    events = filter_category(Event.query, Event).order_by(Event.date).all()
    return list_response(events)

@catalog_bp.route('/events/upcoming', methods=['GET'])
@handle_errors
def get_upcoming_events():
    events = Event.query.filter(Event.date >= utcnow()).order_by(Event.date).all()
    return list_response(events)

@catalog_bp.route('/events/hosted', methods=['GET'])
@token_required
@handle_errors
def get_hosted_events(current_user):
    # Events store the host as free text; match it against the caller's full name
    full_name = f"{current_user.first_name or ''} {current_user.last_name or ''}".strip()
    if not full_name:
        return list_response([])
    events = Event.query.filter(Event.host == full_name).order_by(Event.date).all()
    return list_response(events)

@catalog_bp.route('/events/<int:event_id>', methods=['GET'])
@handle_errors
def get_event(event_id):
    event = get_or_404(Event, event_id, 'Event')
    return jsonify({'success': True, 'data': event.to_dict()})

@catalog_bp.route('/events/<int:event_id>/availability', methods=['GET'])
@handle_errors
def get_event_availability(event_id):
    return jsonify({'success': True, 'data': CapacityService.availability('event', event_id)})

# --- WORKSHOPS ---

@catalog_bp.route('/workshops', methods=['GET'])
@handle_errors
def get_workshops():
    query = filter_category(Workshop.query, Workshop)
    if request.args.get('upcoming') == 'true':
        query = query.filter(Workshop.status == 'upcoming', Workshop.date >= utcnow())
    return list_response(query.order_by(Workshop.date).all())

@catalog_bp.route('/workshops/hosted', methods=['GET'])
@token_required
@handle_errors
def get_hosted_workshops(current_user):
    workshops = Workshop.query.filter_by(instructor_id=current_user.id).order_by(Workshop.date).all()
    return list_response(workshops)

@catalog_bp.route('/workshops/<int:workshop_id>', methods=['GET'])
@handle_errors
def get_workshop(workshop_id):
    workshop = get_or_404(Workshop, workshop_id, 'Workshop')
    return jsonify({'success': True, 'data': workshop.to_dict()})

@catalog_bp.route('/workshops/<int:workshop_id>/availability', methods=['GET'])
@handle_errors
def get_workshop_availability(workshop_id):
    data = CapacityService.availability('workshop', workshop_id)
    data['rosterDrift'] = RosterService.roster_drift(workshop_id)
    return jsonify({'success': True, 'data': data})

# --- SERVICES & CATEGORIES ---

@catalog_bp.route('/services', methods=['GET'])
@handle_errors
def get_services():
    return list_response(Service.query.order_by(Service.title).all())

@catalog_bp.route('/services/<int:service_id>', methods=['GET'])
@handle_errors
def get_service(service_id):
    service = get_or_404(Service, service_id, 'Service')
    return jsonify({'success': True, 'data': service.to_dict()})

@catalog_bp.route('/categories', methods=['GET'])
@handle_errors
def get_categories():
    return list_response(Category.query.order_by(Category.name).all())
