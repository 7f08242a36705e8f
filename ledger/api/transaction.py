import logging

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
from ledger.schemas.transaction_schema import (
    TransactionSchema,
    TransactionDetailSchema,
    TransactionCreateSchema,
    TransactionUpdateSchema,
    TransactionStatusSchema,
    TransactionListArgsSchema,
    TransactionStatsArgsSchema,
)
from ledger.services.errors import ServiceError
from ledger.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

transaction_bp = Blueprint('transaction', __name__)
schema = TransactionSchema()
schema_many = TransactionSchema(many=True)
detail_schema = TransactionDetailSchema()
create_schema = TransactionCreateSchema()
update_schema = TransactionUpdateSchema()
status_schema = TransactionStatusSchema()
list_args_schema = TransactionListArgsSchema()
stats_args_schema = TransactionStatsArgsSchema()


@transaction_bp.route('/transactions', methods=['GET'])
@auth_required()
def list_transactions():
    try:
        args = list_args_schema.load(request.args)
        result = TransactionService().list_transactions(
            customer_id=args['customer_id'],
            status=args['status'],
            start_date=args['start_date'],
            end_date=args['end_date'],
            include_deleted=args['include_deleted'],
            page=args['page'],
            limit=resolve_limit(args['limit']),
        )
        return jsonify({
            'transactions': schema_many.dump(result['transactions']),
            'pagination': result['pagination'],
        }), 200
    except SchemaValidationError as ve:
        return schema_error_response(ve)
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('list_transactions', e)


@transaction_bp.route('/transactions/stats', methods=['GET'])
@auth_required()
def transaction_stats():
    try:
        args = stats_args_schema.load(request.args)
        stats = TransactionService().stats(
            start_date=args['start_date'],
            end_date=args['end_date'],
            include_deleted=args['include_deleted'],
        )
        return jsonify(stats), 200
    except SchemaValidationError as ve:
        return schema_error_response(ve)
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('transaction_stats', e)


@transaction_bp.route('/transactions/<int:transaction_id>', methods=['GET'])
@auth_required()
def get_transaction(transaction_id):
    try:
        transaction = TransactionService().get_by_id(transaction_id)
        return jsonify({'transaction': detail_schema.dump(transaction)}), 200
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('get_transaction', e)


@transaction_bp.route('/transactions', methods=['POST'])
@auth_required()
def create_transaction():
    try:
        data = load_json(create_schema)
        transaction = TransactionService().create(data)
        return jsonify({
            'message': 'Transaction created successfully',
            'transaction': schema.dump(transaction),
        }), 201
    except SchemaValidationError as ve:
        return schema_error_response(ve)
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('create_transaction', e)


@transaction_bp.route('/transactions/<int:transaction_id>', methods=['PUT'])
@auth_required()
def update_transaction(transaction_id):
    try:
        data = load_json(update_schema, partial=True)
        transaction = TransactionService().update(transaction_id, data)
        return jsonify({
            'message': 'Transaction updated successfully',
            'transaction': schema.dump(transaction),
        }), 200
    except SchemaValidationError as ve:
        return schema_error_response(ve)
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('update_transaction', e)


@transaction_bp.route('/transactions/<int:transaction_id>/status', methods=['PATCH'])
@auth_required()
def update_transaction_status(transaction_id):
    try:
        data = load_json(status_schema)
        transaction = TransactionService().update_status(
            transaction_id,
            data['status'],
            payment_date=data.get('payment_date'),
            notes=data.get('notes'),
        )
        return jsonify({
            'message': 'Transaction status updated successfully',
            'transaction': schema.dump(transaction),
        }), 200
    except SchemaValidationError as ve:
        return schema_error_response(ve)
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('update_transaction_status', e)


@transaction_bp.route('/transactions/<int:transaction_id>', methods=['DELETE'])
@auth_required()
def delete_transaction(transaction_id):
    try:
        transaction = TransactionService().soft_delete(transaction_id)
        return jsonify({
            'message': 'Transaction marked as deleted successfully',
            'transaction': schema.dump(transaction),
        }), 200
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('delete_transaction', e)


@transaction_bp.route('/transactions/update-existing', methods=['POST'])
@auth_required()
def update_existing_transactions():
    try:
        result = TransactionService().backfill_type()
        logger.info(f"Type backfill requested over HTTP: {result}")
        return jsonify({
            'message': (
                f"Updated {result['updatedCount']} transactions with appropriate "
                f"type based on status"
            ),
            'updatedCount': result['updatedCount'],
            'totalFound': result['totalFound'],
        }), 200
    except ServiceError as se:
        return service_error_response(se)
    except Exception as e:
        return unexpected_error_response('update_existing_transactions', e)
