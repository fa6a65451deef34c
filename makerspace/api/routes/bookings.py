from flask import Blueprint, request, jsonify
from makerspace.errors import ValidationError
from makerspace.models.booking import BOOKING_TYPES
from makerspace.services.booking_service import BookingService
from makerspace.utils.decorators import token_required, handle_errors

bookings_bp = Blueprint('bookings', __name__)

TARGET_ID_FIELDS = {
    'event': 'eventId',
    'service': 'serviceId',
    'workshop': 'workshopId',
}

def get_json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('No input data provided')
    return data

def parse_id(value, field):
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f'Invalid {field}')
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise ValidationError(f'Invalid {field}')

def parse_target(data):
    """Pick the one id field matching bookingType and refuse the others."""
    booking_type = data.get('bookingType')
    if booking_type not in BOOKING_TYPES:
        raise ValidationError('Invalid booking type')

    for kind, field in TARGET_ID_FIELDS.items():
        if kind != booking_type and data.get(field) is not None:
            raise ValidationError(f'{field} is not allowed on {booking_type} bookings')

    field = TARGET_ID_FIELDS[booking_type]
    return booking_type, parse_id(data.get(field), field)

@bookings_bp.route('/', methods=['GET'])
@token_required
@handle_errors
def get_bookings(current_user):
    bookings = BookingService.list_bookings(current_user)
    return jsonify({
        'success': True,
        'count': len(bookings),
        'data': [b.to_dict(populate=True) for b in bookings]
    })

@bookings_bp.route('/<int:booking_id>', methods=['GET'])
@token_required
@handle_errors
def get_booking(current_user, booking_id):
    booking = BookingService.get_booking(current_user, booking_id)
    return jsonify({'success': True, 'data': booking.to_dict(populate=True)})

@bookings_bp.route('/', methods=['POST'])
@token_required
@handle_errors
def create_booking(current_user):
    data = get_json_body()
    booking_type, target_id = parse_target(data)

    booking = BookingService.create_booking(
        user=current_user,
        booking_type=booking_type,
        target_id=target_id,
        date=data.get('date'),
        time=data.get('time'),
        payment_method=data.get('paymentMethod'),
        customer_details=data.get('customerDetails'),
        number_of_participants=data.get('numberOfParticipants'),
        notes=data.get('notes')
    )
    return jsonify({'success': True, 'data': booking.to_dict(populate=True)}), 201

@bookings_bp.route('/<int:booking_id>', methods=['PUT'])
@token_required
@handle_errors
def update_booking(current_user, booking_id):
    data = get_json_body()
    booking = BookingService.update_booking(
        actor=current_user,
        booking_id=booking_id,
        status=data.get('status'),
        payment_status=data.get('paymentStatus'),
        notes=data.get('notes'),
        number_of_participants=data.get('numberOfParticipants')
    )
    return jsonify({'success': True, 'data': booking.to_dict(populate=True)}), 200

@bookings_bp.route('/<int:booking_id>/cancel', methods=['POST'])
@token_required
@handle_errors
def cancel_booking(current_user, booking_id):
    booking = BookingService.cancel_booking(current_user, booking_id)
    return jsonify({'success': True, 'data': booking.to_dict(populate=True)}), 200

@bookings_bp.route('/<int:booking_id>', methods=['DELETE'])
@token_required
@handle_errors
def delete_booking(current_user, booking_id):
    deleted_id = BookingService.delete_booking(current_user, booking_id)
    return jsonify({'success': True, 'data': {'id': deleted_id}}), 200
