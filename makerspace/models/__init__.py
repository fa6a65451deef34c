from makerspace.models.user import User
from makerspace.models.category import Category
from makerspace.models.event import Event
from makerspace.models.service import Service
from makerspace.models.workshop import Workshop
from makerspace.models.booking import Booking

__all__ = ['User', 'Category', 'Event', 'Service', 'Workshop', 'Booking']
