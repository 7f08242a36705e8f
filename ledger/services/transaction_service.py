import logging

from sqlalchemy import case, extract, func
from sqlalchemy.orm import joinedload

from ledger.extensions import db
from ledger.models.customer import Customer
from ledger.models.transaction import Transaction, TransactionStatus, TransactionType, Unit
from ledger.services.errors import InternalError, NotFoundError, ServiceError, ValidationError
from ledger.utils.amounts import calculate_total_amount, validate_quantity
from ledger.utils.query_utils import paginate_query
from ledger.utils.timezone_utils import parse_datetime_string, utc_now

logger = logging.getLogger(__name__)

AMOUNT_FIELDS = ('weight', 'rate', 'weight_unit', 'rate_unit')
UPDATABLE_FIELDS = AMOUNT_FIELDS + (
    'type', 'date', 'total_amount', 'status', 'payment_date', 'notes',
)
TYPES = {t.value for t in TransactionType}
STATUSES = {s.value for s in TransactionStatus}
UNITS = {u.value for u in Unit}
MONTHLY_BUCKETS = 12


def _parse_date(value):
    try:
        return parse_datetime_string(value)
    except ValueError:
        raise ValidationError("Invalid date format")


def _check_choice(value, choices, field_name):
    if value is not None and value not in choices:
        raise ValidationError(f"Invalid {field_name}: {value}")


class TransactionService:
    """Weight/rate transactions: lifecycle, listings, statistics and the type backfill."""

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    @staticmethod
    def _date_filters(start_date=None, end_date=None):
        filters = []
        start_date = _parse_date(start_date)
        end_date = _parse_date(end_date)
        if start_date is not None:
            filters.append(Transaction.date >= start_date)
        if end_date is not None:
            filters.append(Transaction.date <= end_date)
        return filters

    def list_transactions(self, customer_id=None, status=None, start_date=None, end_date=None,
                          include_deleted=False, page=1, limit=10):
        filters = self._date_filters(start_date, end_date)
        if customer_id is not None:
            filters.append(Transaction.customer_id == customer_id)
        if status:
            filters.append(Transaction.status == status)
        elif not include_deleted:
            filters.append(Transaction.status != TransactionStatus.DELETED.value)

        try:
            query = (
                self.session.query(Transaction)
                .options(joinedload(Transaction.customer))
                .filter(*filters)
                .order_by(Transaction.date.desc(), Transaction.id.desc())
            )
            transactions, pagination = paginate_query(query, page, limit)
            return {'transactions': transactions, 'pagination': pagination}
        except Exception as e:
            logger.error(f"Error fetching transactions: {e}", exc_info=True)
            raise InternalError("Server error while fetching transactions")

    def get_by_id(self, transaction_id):
        try:
            transaction = self.session.get(
                Transaction, transaction_id, options=[joinedload(Transaction.customer)]
            )
        except Exception as e:
            logger.error(f"Error fetching transaction {transaction_id}: {e}", exc_info=True)
            raise InternalError("Server error while fetching transaction")
        if transaction is None:
            raise NotFoundError("Transaction not found")
        return transaction

    def create(self, data):
        try:
            customer_id = data.get('customer_id')
            if customer_id is None or self.session.get(Customer, customer_id) is None:
                raise ValidationError("Customer not found")

            weight = data.get('weight')
            rate = data.get('rate')
            if weight is None or rate is None:
                raise ValidationError("Weight and rate are required")
            weight = validate_quantity(weight, 'Weight')
            rate = validate_quantity(rate, 'Rate')

            weight_unit = data.get('weight_unit') or Unit.KG.value
            rate_unit = data.get('rate_unit') or Unit.KG.value
            _check_choice(weight_unit, UNITS, 'weight unit')
            _check_choice(rate_unit, UNITS, 'rate unit')

            total_amount = data.get('total_amount')
            if total_amount is None:
                total_amount = calculate_total_amount(weight, weight_unit, rate, rate_unit)
            else:
                # Caller supplied totals are trusted as long as they are sane
                total_amount = validate_quantity(total_amount, 'Total amount')

            tx_type = data.get('type')
            _check_choice(tx_type, TYPES, 'type')

            status = data.get('status')
            _check_choice(status, STATUSES, 'status')
            if not status:
                if tx_type == TransactionType.RECEIVE.value:
                    status = TransactionStatus.PAID.value
                else:
                    status = TransactionStatus.PENDING.value

            if status == TransactionStatus.PENDING.value and not tx_type:
                tx_type = TransactionType.GIVE.value

            transaction_date = _parse_date(data.get('date')) or utc_now()

            transaction = Transaction(
                customer_id=customer_id,
                type=tx_type,
                date=transaction_date,
                weight=weight,
                weight_unit=weight_unit,
                rate=rate,
                rate_unit=rate_unit,
                total_amount=total_amount,
                status=status,
                payment_date=_parse_date(data.get('payment_date')),
                notes=data.get('notes'),
            )
            self.session.add(transaction)
            self.session.commit()
            logger.info(
                f"Created transaction {transaction.id} for customer {customer_id}: "
                f"type={tx_type} status={status} amount={total_amount}"
            )
            return transaction
        except ServiceError:
            self.session.rollback()
            raise
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error creating transaction: {e}", exc_info=True)
            raise InternalError("Server error while creating transaction")

    def update(self, transaction_id, data):
        transaction = self.get_by_id(transaction_id)
        try:
            updates = {key: value for key, value in data.items() if key in UPDATABLE_FIELDS}
            _check_choice(updates.get('type'), TYPES, 'type')
            _check_choice(updates.get('status'), STATUSES, 'status')

            if any(field in updates for field in AMOUNT_FIELDS):
                # Fields missing from the patch keep their stored values
                merged = {
                    field: updates[field] if updates.get(field) is not None else getattr(transaction, field)
                    for field in AMOUNT_FIELDS
                }
                updates['total_amount'] = calculate_total_amount(
                    merged['weight'], merged['weight_unit'], merged['rate'], merged['rate_unit']
                )
                merged['weight'] = validate_quantity(merged['weight'], 'Weight')
                merged['rate'] = validate_quantity(merged['rate'], 'Rate')
                updates.update(merged)
            elif updates.get('total_amount') is not None:
                updates['total_amount'] = validate_quantity(updates['total_amount'], 'Total amount')

            for key in ('date', 'payment_date'):
                if key in updates:
                    updates[key] = _parse_date(updates[key])
            if 'date' in updates and updates['date'] is None:
                del updates['date']

            for key, value in updates.items():
                if key in ('total_amount', 'status') and value is None:
                    continue
                setattr(transaction, key, value)
            self.session.commit()
            return transaction
        except ServiceError:
            self.session.rollback()
            raise
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error updating transaction {transaction_id}: {e}", exc_info=True)
            raise InternalError("Server error while updating transaction")

    def update_status(self, transaction_id, status, payment_date=None, notes=None):
        """Set status without a transition guard; payment date and notes only when given."""
        transaction = self.get_by_id(transaction_id)
        if not status:
            raise ValidationError("Status is required")
        _check_choice(status, STATUSES, 'status')
        payment_date = _parse_date(payment_date)

        try:
            transaction.status = status
            if payment_date is not None:
                transaction.payment_date = payment_date
            if notes is not None:
                transaction.notes = notes
            self.session.commit()
            logger.info(f"Transaction {transaction_id} status set to {status}")
            return transaction
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error updating transaction status {transaction_id}: {e}", exc_info=True)
            raise InternalError("Server error while updating transaction status")

    def soft_delete(self, transaction_id):
        transaction = self.get_by_id(transaction_id)
        try:
            transaction.status = TransactionStatus.DELETED.value
            self.session.commit()
            logger.info(f"Transaction {transaction_id} marked as deleted")
            return transaction
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error deleting transaction {transaction_id}: {e}", exc_info=True)
            raise InternalError("Server error while marking transaction as deleted")

    def stats(self, start_date=None, end_date=None, include_deleted=False):
        filters = self._date_filters(start_date, end_date)
        if not include_deleted:
            filters.append(Transaction.status != TransactionStatus.DELETED.value)

        count = func.count(Transaction.id)
        amount = func.coalesce(func.sum(Transaction.total_amount), 0.0)
        year = extract('year', Transaction.date)
        month = extract('month', Transaction.date)

        try:
            total_count, total_amount = (
                self.session.query(count, amount).filter(*filters).one()
            )
            status_rows = (
                self.session.query(Transaction.status, count, amount)
                .filter(*filters)
                .group_by(Transaction.status)
                .order_by(Transaction.status)
                .all()
            )
            monthly_rows = (
                self.session.query(year, month, count, amount)
                .filter(*filters)
                .group_by(year, month)
                .order_by(year.desc(), month.desc())
                .limit(MONTHLY_BUCKETS)
                .all()
            )
        except Exception as e:
            logger.error(f"Error fetching transaction stats: {e}", exc_info=True)
            raise InternalError("Server error while fetching transaction statistics")

        return {
            'totalStats': {'count': total_count, 'totalAmount': total_amount},
            'statusStats': [
                {'status': status, 'count': row_count, 'totalAmount': row_amount}
                for status, row_count, row_amount in status_rows
            ],
            'monthlyStats': [
                {'year': int(row_year), 'month': int(row_month), 'count': row_count, 'totalAmount': row_amount}
                for row_year, row_month, row_count, row_amount in monthly_rows
            ],
        }

    def backfill_type(self):
        """
        Assign a type to legacy transactions stored without one.

        Pending transactions become 'give', everything else 'receive'.
        Running it again finds nothing to update.
        """
        try:
            missing = self.session.query(Transaction).filter(Transaction.type.is_(None))
            total_found = missing.count()
            logger.info(f"Found {total_found} transactions without type field")

            updated = missing.update(
                {
                    Transaction.type: case(
                        (Transaction.status == TransactionStatus.PENDING.value, TransactionType.GIVE.value),
                        else_=TransactionType.RECEIVE.value,
                    )
                },
                synchronize_session=False,
            )
            self.session.commit()
            self.session.expire_all()
            logger.info(f"Updated {updated} transactions")
            return {'totalFound': total_found, 'updatedCount': updated}
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error backfilling transaction types: {e}", exc_info=True)
            raise InternalError("Server error while updating existing transactions")
