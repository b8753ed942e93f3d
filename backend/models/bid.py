# backend/models/bid.py

from .base import db, utcnow

BID_STATUSES = ('pending', 'accept', 'reject', 'cancel')


class Bid(db.Model):
    __tablename__ = 'bids'
    __table_args__ = (
        db.Index('ix_bids_status_start', 'status', 'preferred_start_date'),
        db.CheckConstraint('budget_min >= 0', name='ck_bids_budget_min'),
        db.CheckConstraint('budget_max >= budget_min', name='ck_bids_budget_order'),
    )

    id = db.Column(db.Integer, primary_key=True)
    requester_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    request_details = db.Column(db.Text, nullable=False)
    timeline = db.Column(db.String(200))
    preferred_start_date = db.Column(db.DateTime, nullable=False)

    budget_min = db.Column(db.Float, nullable=False)
    budget_max = db.Column(db.Float, nullable=False)

    # Eligibility filters
    local_vendors_only = db.Column(db.Boolean, default=False, nullable=False)
    verified_providers_only = db.Column(db.Boolean, default=False, nullable=False)
    min_experience_years = db.Column(db.Float, default=0, nullable=False)

    # Set once at creation from request_details, never recomputed
    category = db.Column(db.String(100), nullable=False, index=True)
    status = db.Column(db.String(20), default='pending', nullable=False)
    assigned_to = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    requester = db.relationship('User', foreign_keys=[requester_id], backref=db.backref('bids', lazy='dynamic'))
    vendor = db.relationship('User', foreign_keys=[assigned_to])
    quotes = db.relationship('Quote', backref='bid', order_by='Quote.id',
                             cascade='all, delete-orphan')

    @property
    def budget_range(self):
        return {'min': self.budget_min, 'max': self.budget_max}

    @property
    def filters(self):
        return {
            'local_vendors_only': self.local_vendors_only,
            'verified_providers_only': self.verified_providers_only,
            'min_experience_years': self.min_experience_years,
        }

    def to_dict(self, include_quotes=True):
        """Serializes the Bid, nesting budget and filters the way clients send them."""
        data = {
            'id': self.id,
            'requester_id': self.requester_id,
            'request_details': self.request_details,
            'timeline': self.timeline,
            'preferred_start_date': self.preferred_start_date.isoformat() if self.preferred_start_date else None,
            'budget_range': self.budget_range,
            'filters': self.filters,
            'category': self.category,
            'status': self.status,
            'assigned_to': self.assigned_to,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_quotes:
            data['quotes'] = [quote.to_dict() for quote in self.quotes]
        return data

    def __repr__(self):
        return f'<Bid id={self.id} status={self.status} category={self.category}>'
