from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import IntegrityError
from makerspace.errors import NotFoundError, ValidationError
from makerspace.extensions import db
from makerspace.models import Booking, Category, Event, Service, User, Workshop
from makerspace.models.event import EVENT_TYPES, LEVELS
from makerspace.models.workshop import WORKSHOP_STATUSES
from makerspace.utils.dates import parse_datetime
from makerspace.utils.decorators import token_required, admin_required, handle_errors

admin_bp = Blueprint('admin', __name__)

# --- FIELD PARSING ---

def text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field} is required')
    return value.strip()

def optional_text(value, field):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be text')
    return value.strip() or None

def non_negative(value, field):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValidationError(f'{field} cannot be negative')
    return float(value)

def at_least_one(value, field):
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f'{field} must be at least 1')
    return value

def date_value(value, field):
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValidationError(f'Valid {field} is required')
    return parsed

def one_of(choices):
    def parse(value, field):
        if value not in choices:
            raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
        return value
    return parse

def text_list(value, field):
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f'{field} must be a list of strings')
    return [v.strip() for v in value if v.strip()]

def category_ref(value, field):
    if value in (None, ''):
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError('Invalid category ID format')
    if db.session.get(Category, value) is None:
        raise NotFoundError('Category not found')
    return value

def instructor_ref(value, field):
    if isinstance(value, bool) or not isinstance(value, int) or db.session.get(User, value) is None:
        raise ValidationError('Please specify an instructor')
    return value

# JSON key -> (model attribute, parser, required on create)
CATEGORY_FIELDS = {
    'name': ('name', text, True),
    'description': ('description', optional_text, False),
}

EVENT_FIELDS = {
    'title': ('title', text, True),
    'description': ('description', text, True),
    'date': ('date', date_value, True),
    'time': ('time', text, True),
    'host': ('host', text, True),
    'type': ('type', one_of(EVENT_TYPES), False),
    'level': ('level', one_of(LEVELS), False),
    'price': ('price', non_negative, True),
    'capacity': ('capacity', at_least_one, True),
    'categoryId': ('category_id', category_ref, False),
    'image': ('image', optional_text, False),
}

SERVICE_FIELDS = {
    'title': ('title', text, True),
    'description': ('description', text, True),
    'level': ('level', one_of(LEVELS), False),
    'price': ('price', non_negative, True),
    'duration': ('duration', text, False),
    'categoryId': ('category_id', category_ref, False),
}

# participants is deliberately absent: only bookings change the roster
WORKSHOP_FIELDS = {
    'title': ('title', text, True),
    'description': ('description', text, True),
    'instructor': ('instructor_id', instructor_ref, False),
    'date': ('date', date_value, True),
    'time': ('time', text, True),
    'duration': ('duration', text, True),
    'level': ('level', one_of(LEVELS), False),
    'maxParticipants': ('max_participants', at_least_one, True),
    'price': ('price', non_negative, True),
    'categoryId': ('category_id', category_ref, False),
    'location': ('location', optional_text, False),
    'equipment': ('equipment', text_list, False),
    'materials': ('materials', text_list, False),
    'status': ('status', one_of(WORKSHOP_STATUSES), False),
}

def parse_fields(data, fields, creating):
    """Validate the whole payload first so a bad field leaves the record untouched."""
    if not isinstance(data, dict):
        raise ValidationError('No input data provided')
    values = {}
    for key, (attr, parser, required) in fields.items():
        if key not in data:
            if creating and required:
                raise ValidationError(f'{key} is required')
            continue
        values[attr] = parser(data[key], key)
    return values

def create_item(model, fields, label, **defaults):
    values = parse_fields(request.get_json(silent=True), fields, creating=True)
    for attr, value in defaults.items():
        values.setdefault(attr, value)
    item = model(**values)
    db.session.add(item)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError(f'{label} violates a uniqueness or range constraint')
    current_app.logger.info(f"{label} {item.id} created")
    return jsonify({'success': True, 'data': item.to_dict()}), 201

def update_item(model, item_id, fields, label):
    item = db.session.get(model, item_id)
    if item is None:
        raise NotFoundError(f'{label} not found')
    values = parse_fields(request.get_json(silent=True), fields, creating=False)
    for attr, value in values.items():
        setattr(item, attr, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError(f'{label} violates a uniqueness or range constraint')
    return jsonify({'success': True, 'data': item.to_dict()}), 200

def delete_item(model, item_id, label, booking_column=None):
    item = db.session.get(model, item_id)
    if item is None:
        raise NotFoundError(f'{label} not found')
    if booking_column is not None and Booking.query.filter(booking_column == item_id).first():
        raise ValidationError(f'Cannot delete {label.lower()} with bookings')
    db.session.delete(item)
    db.session.commit()
    current_app.logger.info(f"{label} {item_id} deleted")
    return jsonify({'success': True, 'data': {'id': item_id}}), 200

# --- CATEGORIES ---

@admin_bp.route('/categories', methods=['POST'])
@token_required
@admin_required
@handle_errors
def create_category(current_user):
    return create_item(Category, CATEGORY_FIELDS, 'Category')

@admin_bp.route('/categories/<int:category_id>', methods=['PUT'])
@token_required
@admin_required
@handle_errors
def update_category(current_user, category_id):
    return update_item(Category, category_id, CATEGORY_FIELDS, 'Category')

@admin_bp.route('/categories/<int:category_id>', methods=['DELETE'])
@token_required
@admin_required
@handle_errors
def delete_category(current_user, category_id):
    in_use = any(
        model.query.filter_by(category_id=category_id).first()
        for model in (Event, Service, Workshop)
    )
    if in_use:
        raise ValidationError('Cannot delete category that is still in use')
    return delete_item(Category, category_id, 'Category')

# --- EVENTS ---

@admin_bp.route('/events', methods=['POST'])
@token_required
@admin_required
@handle_errors
def create_event(current_user):
    return create_item(Event, EVENT_FIELDS, 'Event')

@admin_bp.route('/events/<int:event_id>', methods=['PUT'])
@token_required
@admin_required
@handle_errors
def update_event(current_user, event_id):
    return update_item(Event, event_id, EVENT_FIELDS, 'Event')

@admin_bp.route('/events/<int:event_id>', methods=['DELETE'])
@token_required
@admin_required
@handle_errors
def delete_event(current_user, event_id):
    return delete_item(Event, event_id, 'Event', Booking.event_id)

# --- SERVICES ---

@admin_bp.route('/services', methods=['POST'])
@token_required
@admin_required
@handle_errors
def create_service(current_user):
    return create_item(Service, SERVICE_FIELDS, 'Service')

@admin_bp.route('/services/<int:service_id>', methods=['PUT'])
@token_required
@admin_required
@handle_errors
def update_service(current_user, service_id):
    return update_item(Service, service_id, SERVICE_FIELDS, 'Service')

@admin_bp.route('/services/<int:service_id>', methods=['DELETE'])
@token_required
@admin_required
@handle_errors
def delete_service(current_user, service_id):
    return delete_item(Service, service_id, 'Service', Booking.service_id)

# --- WORKSHOPS ---

@admin_bp.route('/workshops', methods=['POST'])
@token_required
@admin_required
@handle_errors
def create_workshop(current_user):
    # The creating admin hosts the workshop unless an instructor is named
    return create_item(Workshop, WORKSHOP_FIELDS, 'Workshop', instructor_id=current_user.id, participants=[])

@admin_bp.route('/workshops/<int:workshop_id>', methods=['PUT'])
@token_required
@admin_required
@handle_errors
def update_workshop(current_user, workshop_id):
    return update_item(Workshop, workshop_id, WORKSHOP_FIELDS, 'Workshop')

@admin_bp.route('/workshops/<int:workshop_id>', methods=['DELETE'])
@token_required
@admin_required
@handle_errors
def delete_workshop(current_user, workshop_id):
    return delete_item(Workshop, workshop_id, 'Workshop', Booking.workshop_id)
