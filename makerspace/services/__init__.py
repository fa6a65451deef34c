from makerspace.services.booking_service import BookingService
from makerspace.services.capacity_service import CapacityService, CapacityCheck
from makerspace.services.registration_service import RegistrationService
from makerspace.services.roster_service import RosterService

__all__ = ['BookingService', 'CapacityService', 'CapacityCheck', 'RegistrationService', 'RosterService']
