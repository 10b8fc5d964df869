"""
Models package - SQLAlchemy models
"""
from models.database import db
from models.user import User
from models.booking import Booking
from models.swap import Swap
from models.proposal import Proposal

__all__ = [
    'db',
    'User',
    'Booking',
    'Swap',
    'Proposal',
]
