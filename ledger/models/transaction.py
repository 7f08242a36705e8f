from enum import Enum

from ledger.extensions import db
from ledger.utils.timezone_utils import utc_now


class TransactionType(Enum):
    RECEIVE = "receive"  # inbound, settled by default
    GIVE = "give"        # outbound, outstanding until paid


class TransactionStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    DELETED = "deleted"


class Unit(Enum):
    KG = "kg"
    QUINTAL = "quintal"


OUTSTANDING_STATUSES = (TransactionStatus.PENDING.value, TransactionStatus.OVERDUE.value)


class Transaction(db.Model):
    __tablename__ = 'ledger_transaction'
    __table_args__ = (
        db.Index('ix_ledger_transaction_customer_date', 'customer_id', 'date'),
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customer.id'), nullable=False)
    # Nullable so legacy rows can exist until TransactionService.backfill_type runs
    type = db.Column(db.String(16), nullable=True)
    date = db.Column(db.DateTime, nullable=False, default=utc_now, index=True)
    weight = db.Column(db.Float, nullable=False)
    weight_unit = db.Column(db.String(16), nullable=False, default=Unit.KG.value)
    rate = db.Column(db.Float, nullable=False)
    rate_unit = db.Column(db.String(16), nullable=False, default=Unit.KG.value)
    total_amount = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=TransactionStatus.PENDING.value, index=True)
    payment_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    customer = db.relationship('Customer', back_populates='transactions')

    def __repr__(self):
        return f'<Transaction {self.id} {self.type} {self.status}>'
