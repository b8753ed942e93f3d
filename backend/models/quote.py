# backend/models/quote.py

from .base import db, utcnow


class Quote(db.Model):
    __tablename__ = 'quotes'
    # One live quote per vendor per bid
    __table_args__ = (
        db.UniqueConstraint('bid_id', 'vendor_id', name='uq_quotes_bid_vendor'),
    )

    id = db.Column(db.Integer, primary_key=True)
    bid_id = db.Column(db.Integer, db.ForeignKey('bids.id', ondelete='CASCADE'), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'vendor_id': self.vendor_id,
            'amount': self.amount,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
