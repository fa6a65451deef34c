from functools import wraps
from flask import request, jsonify, current_app
import jwt
from makerspace.errors import BookingError
from makerspace.extensions import db
from makerspace.models.user import User

def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = None
        if 'Authorization' in request.headers:
            # Bearer <token>
            auth_header = request.headers['Authorization']
            if auth_header.startswith("Bearer "):
                token = auth_header.split(" ")[1]

        if not token:
            return jsonify({'success': False, 'error': 'Not authorized to access this route'}), 401

        try:
            data = jwt.decode(token, current_app.config['SECRET_KEY'],
                              algorithms=[current_app.config['JWT_ALGORITHM']])
        except jwt.InvalidTokenError:
            return jsonify({'success': False, 'error': 'Not authorized to access this route'}), 401

        user_id = data.get('user_id')
        current_user = db.session.get(User, user_id) if user_id is not None else None
        if not current_user:
            return jsonify({'success': False, 'error': 'Not authorized to access this route'}), 401

        return f(current_user, *args, **kwargs)

    return decorated

def admin_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        # Stack under @token_required, which passes current_user first
        current_user = args[0]
        if current_user.role != current_app.config['ADMIN_ROLE']:
            return jsonify({
                'success': False,
                'error': f'User role {current_user.role} is not authorized to access this route'
            }), 403
        return f(*args, **kwargs)
    return decorated

def handle_errors(f):
    """Render BookingError kinds with their status; anything else is a logged 500."""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except BookingError as e:
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            current_app.logger.exception(f"Unexpected error in {request.method} {request.path}")
            return jsonify({'success': False, 'error': 'Server Error'}), 500
    return decorated
