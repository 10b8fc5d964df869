"""
Booking Model - a reservation listing (hotel/travel).

Owned by the booking lifecycle service; this service only reads it.

Status Flow (managed externally):
- 'available' → listed, can back a swap
- 'locked'    → held by an in-flight swap
- 'verified'  → ownership confirmed
- 'cancelled' → withdrawn by the owner

Optional descriptive columns (title, city, country, provider, dates, prices)
may be NULL for imported or partially synced listings. Readers must treat
NULL as "unavailable", not as a real value.
"""
import uuid
from datetime import datetime

from models.database import db


class Booking(db.Model):
    __tablename__ = 'bookings'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)

    # === Descriptive fields (nullable) ===
    title = db.Column(db.String(255))
    city = db.Column(db.String(120))
    country = db.Column(db.String(120))
    provider = db.Column(db.String(120))  # e.g. 'booking.com', 'expedia'
    check_in_date = db.Column(db.Date)
    check_out_date = db.Column(db.Date)
    original_price = db.Column(db.Numeric(12, 2))
    swap_value = db.Column(db.Numeric(12, 2))

    status = db.Column(db.String(20), default='available', nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Booking {self.id} owner={self.user_id} status={self.status}>'
