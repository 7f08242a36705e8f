from marshmallow import Schema, fields, validate, EXCLUDE, pre_load
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field

from ledger.models.transaction import Transaction, TransactionStatus, TransactionType, Unit
from ledger.schemas.customer_schema import CustomerBriefSchema, CustomerContactSchema
from ledger.schemas.fields import ApiDateTime

TYPES = [t.value for t in TransactionType]
STATUSES = [s.value for s in TransactionStatus]
UNITS = [u.value for u in Unit]


class TransactionSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Transaction
        load_instance = False
        include_fk = True

    id = auto_field(dump_only=True)
    customer_id = auto_field(data_key='customerId')
    customer = fields.Nested(CustomerBriefSchema)
    type = auto_field()
    date = ApiDateTime()
    weight = auto_field()
    weight_unit = auto_field(data_key='weightUnit')
    rate = auto_field()
    rate_unit = auto_field(data_key='rateUnit')
    total_amount = auto_field(data_key='totalAmount')
    status = auto_field()
    payment_date = ApiDateTime(data_key='paymentDate')
    notes = auto_field()
    created_at = ApiDateTime(data_key='createdAt', dump_only=True)
    updated_at = ApiDateTime(data_key='updatedAt', dump_only=True)


class TransactionDetailSchema(TransactionSchema):
    customer = fields.Nested(CustomerContactSchema)


class TransactionCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    customer_id = fields.Integer(data_key='customer', required=True)
    type = fields.String(allow_none=True, validate=validate.OneOf(TYPES))
    date = ApiDateTime(allow_none=True)
    weight = fields.Float(allow_none=True, validate=validate.Range(min=0))
    weight_unit = fields.String(data_key='weightUnit', allow_none=True, validate=validate.OneOf(UNITS))
    rate = fields.Float(allow_none=True, validate=validate.Range(min=0))
    rate_unit = fields.String(data_key='rateUnit', allow_none=True, validate=validate.OneOf(UNITS))
    total_amount = fields.Float(data_key='totalAmount', allow_none=True, validate=validate.Range(min=0))
    status = fields.String(allow_none=True, validate=validate.OneOf(STATUSES))
    payment_date = ApiDateTime(data_key='paymentDate', allow_none=True)
    notes = fields.String(allow_none=True)

    @pre_load
    def description_as_notes(self, data, **kwargs):
        # The web client sends the free-text field as 'description'
        if isinstance(data, dict) and 'description' in data and 'notes' not in data:
            data = dict(data)
            data['notes'] = data.pop('description')
        return data


class TransactionUpdateSchema(TransactionCreateSchema):
    """Loaded with partial=True. The customer reference cannot be moved."""

    class Meta:
        unknown = EXCLUDE
        exclude = ('customer_id',)


class TransactionStatusSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    status = fields.String(required=True, validate=validate.OneOf(STATUSES))
    payment_date = ApiDateTime(data_key='paymentDate', allow_none=True)
    notes = fields.String(allow_none=True)


class TransactionStatsArgsSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    start_date = ApiDateTime(data_key='startDate', load_default=None)
    end_date = ApiDateTime(data_key='endDate', load_default=None)
    include_deleted = fields.Boolean(data_key='includeDeleted', load_default=False)


class TransactionListArgsSchema(TransactionStatsArgsSchema):
    customer_id = fields.Integer(data_key='customer', load_default=None)
    status = fields.String(load_default=None, validate=validate.OneOf(STATUSES))
    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(load_default=None, validate=validate.Range(min=1))
