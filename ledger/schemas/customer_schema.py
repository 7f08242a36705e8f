from marshmallow import Schema, fields, validate, EXCLUDE, pre_load
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field

from ledger.models.customer import Customer
from ledger.schemas.fields import ApiDateTime


class CustomerSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Customer
        load_instance = False

    id = auto_field(dump_only=True)
    name = auto_field()
    phone = auto_field()
    address = auto_field()
    credit_limit = auto_field(data_key='creditLimit')
    notes = auto_field()
    is_active = auto_field(data_key='isActive')
    created_at = ApiDateTime(data_key='createdAt', dump_only=True)
    updated_at = ApiDateTime(data_key='updatedAt', dump_only=True)


class CustomerBriefSchema(Schema):
    id = fields.Integer()
    name = fields.String()
    phone = fields.String()


class CustomerContactSchema(CustomerBriefSchema):
    address = fields.String(allow_none=True)


class CustomerCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    name = fields.String(required=True, validate=validate.Length(min=1, max=128))
    phone = fields.String(required=True, validate=validate.Length(min=1, max=32))
    address = fields.String(allow_none=True, validate=validate.Length(max=256))
    credit_limit = fields.Float(data_key='creditLimit', allow_none=True, validate=validate.Range(min=0))
    notes = fields.String(allow_none=True)

    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {
            key: value.strip() if isinstance(value, str) and key in ('name', 'phone') else value
            for key, value in data.items()
        }


class CustomerUpdateSchema(CustomerCreateSchema):
    """Loaded with partial=True; isActive may be patched to reactivate."""
    is_active = fields.Boolean(data_key='isActive')


class CustomerListArgsSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    search = fields.String(load_default=None)
    status = fields.String(load_default=None)
    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(load_default=None, validate=validate.Range(min=1))
