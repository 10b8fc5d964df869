"""
Proposal Model - an offer made by one user against another user's swap.

proposer_user_id and proposer_booking_id are nullable at the storage level:
user and booking deletion run independently of proposals and may leave
them NULL or dangling. The swap card normalizer classifies such rows.
"""
import uuid
from datetime import datetime

from models.database import db


class Proposal(db.Model):
    __tablename__ = 'proposals'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    swap_id = db.Column(db.String(36), db.ForeignKey('swaps.id'), nullable=False, index=True)
    proposer_user_id = db.Column(db.String(36), index=True)
    proposer_booking_id = db.Column(db.String(36))
    status = db.Column(db.String(20), default='pending', nullable=False)
    additional_payment = db.Column(db.Numeric(12, 2))
    conditions = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime)

    __table_args__ = (
        db.Index('idx_proposals_swap_proposer', 'swap_id', 'proposer_user_id'),
    )

    def __repr__(self):
        return f'<Proposal {self.id} swap={self.swap_id} proposer={self.proposer_user_id}>'
