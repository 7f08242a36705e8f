from sqlalchemy import func

from ledger.extensions import db
from ledger.models.transaction import (
    Transaction,
    TransactionStatus,
    TransactionType,
    OUTSTANDING_STATUSES,
)

RECENT_TRANSACTION_LIMIT = 10


class CustomerSummaryService:
    """Derived account figures for a single customer."""

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def _not_deleted(self, customer):
        return (
            Transaction.customer_id == customer.id,
            Transaction.status != TransactionStatus.DELETED.value,
        )

    def _sum_amount(self, *criteria):
        return (
            self.session.query(func.coalesce(func.sum(Transaction.total_amount), 0.0))
            .filter(*criteria)
            .scalar()
        ) or 0

    def build(self, customer):
        total_purchases = self._sum_amount(
            *self._not_deleted(customer),
            Transaction.type == TransactionType.RECEIVE.value,
        )
        outstanding_by_type = self._sum_amount(
            *self._not_deleted(customer),
            Transaction.type == TransactionType.GIVE.value,
        )
        outstanding_by_status = self._sum_amount(
            Transaction.customer_id == customer.id,
            Transaction.status.in_(OUTSTANDING_STATUSES),
        )

        recent = (
            self.session.query(Transaction)
            .filter(*self._not_deleted(customer))
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .limit(RECENT_TRANSACTION_LIMIT)
            .all()
        )
        last = recent[0] if recent else None

        return {
            'totalPurchases': total_purchases,
            # Type based figure wins; status based figure only when it is zero
            'outstandingBalance': outstanding_by_type or outstanding_by_status,
            'lastTransaction': {
                'date': last.date,
                'status': last.status,
                'amount': last.total_amount,
            } if last else None,
            'recentTransactions': recent,
        }
