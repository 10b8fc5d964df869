"""
Swap Model - a booking offered for exchange.

There is no owner column: the owner is always derived from
the source booking (bookings.user_id). Every query that needs the owner
joins bookings on source_booking_id.
"""
import uuid
from datetime import datetime

from models.database import db


class Swap(db.Model):
    __tablename__ = 'swaps'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    source_booking_id = db.Column(db.String(36), db.ForeignKey('bookings.id'), nullable=False, index=True)
    status = db.Column(db.String(20), default='pending', nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    expires_at = db.Column(db.DateTime)

    __table_args__ = (
        db.Index('idx_swaps_created_id', 'created_at', 'id'),
    )

    def __repr__(self):
        return f'<Swap {self.id} booking={self.source_booking_id} status={self.status}>'
