from flask import Blueprint, request, jsonify
from flask_security.decorators import auth_required
from marshmallow import ValidationError as SchemaValidationError

from ledger.api.helpers import (
    load_json,
    resolve_limit,
    schema_error_response,
    service_error_response,
    unexpected_error_response,
)
from ledger.schemas.customer_schema import (
    CustomerSchema,
    CustomerCreateSchema,
    CustomerUpdateSchema,
    CustomerListArgsSchema,
)
from ledger.schemas.transaction_schema import TransactionSchema
from ledger.services.customer_service import CustomerService
from ledger.services.errors import ServiceError
from ledger.utils.timezone_utils import format_datetime_for_api

customer_bp = Blueprint('customer', __name__)
schema = CustomerSchema()
schema_many = CustomerSchema(many=True)
create_schema = CustomerCreateSchema()
update_schema = CustomerUpdateSchema()
list_args_schema = CustomerListArgsSchema()
recent_transactions_schema = TransactionSchema(many=True, exclude=('customer',))


def _customer_detail(customer, summary):
    data = schema.dump(customer)
    last = summary['lastTransaction']
    data.update({
        'totalPurchases': summary['totalPurchases'],
        'outstandingBalance': summary['outstandingBalance'],
        'lastTransaction': {
            'date': format_datetime_for_api(last['date']),
            'status': last['status'],
            'amount': last['amount'],
        } if last else None,
        'recentTransactions': recent_transactions_schema.dump(summary['recentTransactions']),
    })
    return data


@customer_bp.route('/customers', methods=['GET'])
@auth_required()
def list_customers():
    try:
        args = list_args_schema.load(request.args)
        result = CustomerService().list_customers(
            search=args['search'],
            status=args['status'],
            page=args['page'],
            limit=resolve_limit(args['limit']),
        )
        return jsonify({
            'customers': schema_many.dump(result['customers']),
            'pagination': result['pagination'],
        }), 200
    except SchemaValidationError as ve:
        return schema_error_response(ve)
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('list_customers', e)


@customer_bp.route('/customers/stats', methods=['GET'])
@auth_required()
def customer_stats():
    try:
        return jsonify(CustomerService().stats()), 200
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('customer_stats', e)


@customer_bp.route('/customers/<int:customer_id>', methods=['GET'])
@auth_required()
def get_customer(customer_id):
    try:
        customer, summary = CustomerService().get_detail(customer_id)
        return jsonify({'customer': _customer_detail(customer, summary)}), 200
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('get_customer', e)


@customer_bp.route('/customers', methods=['POST'])
@auth_required()
def create_customer():
    try:
        data = load_json(create_schema)
        customer = CustomerService().create(data)
        return jsonify({
            'message': 'Customer created successfully',
            'customer': schema.dump(customer),
        }), 201
    except SchemaValidationError as ve:
        return schema_error_response(ve)
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('create_customer', e)


@customer_bp.route('/customers/<int:customer_id>', methods=['PUT'])
@auth_required()
def update_customer(customer_id):
    try:
        data = load_json(update_schema, partial=True)
        customer = CustomerService().update(customer_id, data)
        return jsonify({
            'message': 'Customer updated successfully',
            'customer': schema.dump(customer),
        }), 200
    except SchemaValidationError as ve:
        return schema_error_response(ve)
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('update_customer', e)


@customer_bp.route('/customers/<int:customer_id>', methods=['DELETE'])
@auth_required()
def delete_customer(customer_id):
    try:
        customer = CustomerService().soft_delete(customer_id)
        return jsonify({
            'message': 'Customer deleted successfully',
            'customer': schema.dump(customer),
        }), 200
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('delete_customer', e)
