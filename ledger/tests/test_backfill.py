from ledger.extensions import db
from ledger.models.transaction import Transaction


def _legacy(customer, status):
    transaction = Transaction(
        customer_id=customer.id, type=None, weight=1, rate=1, total_amount=1, status=status,
    )
    db.session.add(transaction)
    return transaction


def test_backfill_infers_type_from_status(make_customer, transaction_service):
    customer = make_customer()
    pending = _legacy(customer, 'pending')
    paid = _legacy(customer, 'paid')
    overdue = _legacy(customer, 'overdue')
    typed = transaction_service.create({'customer_id': customer.id, 'weight': 1, 'rate': 1, 'type': 'receive'})
    db.session.commit()

    result = transaction_service.backfill_type()
    assert result == {'totalFound': 3, 'updatedCount': 3}

    assert db.session.get(Transaction, pending.id).type == 'give'
    assert db.session.get(Transaction, paid.id).type == 'receive'
    assert db.session.get(Transaction, overdue.id).type == 'receive'
    assert db.session.get(Transaction, typed.id).type == 'receive'


def test_backfill_is_idempotent(make_customer, transaction_service):
    customer = make_customer()
    _legacy(customer, 'pending')
    db.session.commit()

    assert transaction_service.backfill_type()['updatedCount'] == 1
    assert transaction_service.backfill_type() == {'totalFound': 0, 'updatedCount': 0}


def test_backfill_command(app, make_customer):
    customer = make_customer()
    _legacy(customer, 'pending')
    db.session.commit()

    result = app.test_cli_runner().invoke(args=['backfill-transaction-types'])
    assert result.exit_code == 0
    assert 'Updated 1 transactions' in result.output
