from sqlalchemy import true

from ledger.extensions import db
from ledger.utils.timezone_utils import utc_now


class Customer(db.Model):
    __tablename__ = 'customer'

    id = db.Column(db.Integer, primary_key=True, index=True)
    name = db.Column(db.String(128), nullable=False)
    # Uniqueness is checked by CustomerService before insert, not by the table
    phone = db.Column(db.String(32), nullable=False, index=True)
    address = db.Column(db.String(256), nullable=True)
    credit_limit = db.Column(db.Float, nullable=False, default=0.0)
    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False, server_default=true())
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    transactions = db.relationship('Transaction', back_populates='customer', lazy='dynamic')

    def __repr__(self):
        return f'<Customer {self.id} {self.name!r}>'
