from .catalog import Product
from .customers import Customer, Prescription
from .appointments import Appointment
from .sales import Sale, SaleLine
from .auth import User, SessionToken

__all__ = [
    'Product',
    'Customer', 'Prescription',
    'Appointment',
    'Sale', 'SaleLine',
    'User', 'SessionToken',
]
