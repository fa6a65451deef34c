"""Booking error taxonomy.

Every error knows the HTTP status it maps to so routes can render
``{'success': False, 'error': <message>}`` without inspecting the kind.
"""


class BookingError(Exception):
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'success': False, 'error': self.message}


class ValidationError(BookingError):
    """Missing/invalid field, bad enum value or bad field combination."""
    status_code = 400


class InvalidTransitionError(ValidationError):
    def __init__(self, current, target):
        super().__init__(f"Cannot change booking status from '{current}' to '{target}'")
        self.current = current
        self.target = target


class CapacityExceededError(BookingError):
    status_code = 400

    def __init__(self, target_type, current_count, limit):
        super().__init__(f"{target_type.capitalize()} is fully booked")
        self.target_type = target_type
        self.current_count = current_count
        self.limit = limit

    def to_dict(self):
        data = super().to_dict()
        data['currentCount'] = self.current_count
        data['limit'] = self.limit
        return data


class DuplicateRegistrationError(BookingError):
    status_code = 400

    def __init__(self, message='Already registered for this workshop'):
        super().__init__(message)


class ForbiddenError(BookingError):
    """Actor is neither the owner nor an administrator."""
    status_code = 403


class NotFoundError(BookingError):
    status_code = 404
