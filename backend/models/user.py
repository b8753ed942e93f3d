# backend/models/user.py

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from .base import db, utcnow

ROLES = ('requester', 'vendor', 'admin')


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), index=True, unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), default='requester', nullable=False)  # 'requester', 'vendor', 'admin'

    # Vendor profile, read by the eligibility checks
    location = db.Column(db.String(100))
    is_verified = db.Column(db.Boolean, default=False, nullable=False)
    experience_years = db.Column(db.Float, default=0, nullable=False)
    categories = db.Column(db.JSON, default=list, nullable=False)

    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    last_login = db.Column(db.DateTime)

    def set_password(self, password):
        """Creates a hashed password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Checks a password against the stored hash."""
        return check_password_hash(self.password_hash, password)

    @property
    def is_vendor(self):
        return self.role == 'vendor'

    def to_dict(self):
        data = {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'location': self.location,
            'is_active': self.is_active,
            'last_login': self.last_login.isoformat() if self.last_login else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if self.is_vendor:
            data.update({
                'is_verified': self.is_verified,
                'experience_years': self.experience_years,
                'categories': list(self.categories or []),
            })
        return data

    def __repr__(self):
        return f'<User id={self.id} email={self.email} role={self.role}>'
