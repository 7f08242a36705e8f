import logging

from sqlalchemy import distinct, func, or_

from ledger.extensions import db
from ledger.models.customer import Customer
from ledger.models.transaction import Transaction, OUTSTANDING_STATUSES
from ledger.services.customer_summary_service import CustomerSummaryService
from ledger.services.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from ledger.utils.amounts import validate_quantity
from ledger.utils.query_utils import escape_like, paginate_query

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('name', 'phone', 'address', 'credit_limit', 'notes', 'is_active')
REQUIRED_FIELDS = ('name', 'phone')


def _validate_customer_fields(data, partial=False):
    for field in REQUIRED_FIELDS:
        if field not in data and partial:
            continue
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{field.capitalize()} is required")
    if data.get('credit_limit') is not None:
        validate_quantity(data['credit_limit'], 'Credit limit')


class CustomerService:
    """Customer records: search, pagination, soft delete and statistics."""

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def list_customers(self, search=None, status=None, page=1, limit=10):
        try:
            query = self.session.query(Customer)

            if search:
                pattern = f'%{escape_like(search)}%'
                query = query.filter(or_(
                    Customer.name.ilike(pattern, escape='\\'),
                    Customer.phone.ilike(pattern, escape='\\'),
                ))

            # Soft-deleted customers only show up when asked for by status
            if status:
                query = query.filter(Customer.is_active.is_(status == 'active'))
            else:
                query = query.filter(Customer.is_active.is_(True))

            query = query.order_by(Customer.created_at.desc(), Customer.id.desc())
            customers, pagination = paginate_query(query, page, limit)
            return {'customers': customers, 'pagination': pagination}
        except Exception as e:
            logger.error(f"Error fetching customers: {e}", exc_info=True)
            raise InternalError("Server error while fetching customers")

    def get_by_id(self, customer_id):
        try:
            customer = self.session.get(Customer, customer_id)
        except Exception as e:
            logger.error(f"Error fetching customer {customer_id}: {e}", exc_info=True)
            raise InternalError("Server error while fetching customer")
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer

    def get_detail(self, customer_id):
        """Return (customer, summary) where summary comes from CustomerSummaryService."""
        customer = self.get_by_id(customer_id)
        try:
            summary = CustomerSummaryService(self.session).build(customer)
        except Exception as e:
            logger.error(f"Error building summary for customer {customer_id}: {e}", exc_info=True)
            raise InternalError("Server error while fetching customer")
        return customer, summary

    def _ensure_phone_available(self, phone, exclude_id=None):
        query = self.session.query(Customer).filter(Customer.phone == phone)
        if exclude_id is not None:
            query = query.filter(Customer.id != exclude_id)
        if query.first() is not None:
            raise ConflictError("Customer with this phone number already exists")

    def create(self, data):
        try:
            _validate_customer_fields(data)
            self._ensure_phone_available(data.get('phone'))
            customer = Customer(
                name=data.get('name'),
                phone=data.get('phone'),
                address=data.get('address'),
                credit_limit=data.get('credit_limit') or 0,
                notes=data.get('notes'),
            )
            self.session.add(customer)
            self.session.commit()
            logger.info(f"Created customer {customer.id}")
            return customer
        except ServiceError:
            self.session.rollback()
            raise
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error creating customer: {e}", exc_info=True)
            raise InternalError("Server error while creating customer")

    def update(self, customer_id, data):
        customer = self.get_by_id(customer_id)
        try:
            _validate_customer_fields(data, partial=True)
            if data.get('phone') and data['phone'] != customer.phone:
                self._ensure_phone_available(data['phone'], exclude_id=customer.id)
            for key, value in data.items():
                if key not in UPDATABLE_FIELDS:
                    continue
                if key == 'credit_limit' and value is None:
                    value = 0
                setattr(customer, key, value)
            self.session.commit()
            return customer
        except ServiceError:
            self.session.rollback()
            raise
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error updating customer {customer_id}: {e}", exc_info=True)
            raise InternalError("Server error while updating customer")

    def soft_delete(self, customer_id):
        customer = self.get_by_id(customer_id)
        try:
            customer.is_active = False
            self.session.commit()
            logger.info(f"Customer {customer_id} marked inactive")
            return customer
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error deleting customer {customer_id}: {e}", exc_info=True)
            raise InternalError("Server error while deleting customer")

    def stats(self):
        try:
            active = self.session.query(Customer).filter(Customer.is_active.is_(True)).count()
            inactive = self.session.query(Customer).filter(Customer.is_active.is_(False)).count()
            outstanding = (
                self.session.query(func.count(distinct(Transaction.customer_id)))
                .filter(Transaction.status.in_(OUTSTANDING_STATUSES))
                .scalar()
            )
            return {
                # totalCustomers counts active customers only, same as activeCustomers
                'totalCustomers': active,
                'activeCustomers': active,
                'inactiveCustomers': inactive,
                'outstandingCustomers': outstanding or 0,
            }
        except Exception as e:
            logger.error(f"Error fetching customer stats: {e}", exc_info=True)
            raise InternalError("Server error while fetching customer statistics")
