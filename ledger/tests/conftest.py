import uuid

import pytest
from flask_security import hash_password

from ledger.config import TestConfig
from ledger.extensions import db
from ledger.server import create_app
from ledger.services.customer_service import CustomerService
from ledger.services.transaction_service import TransactionService


@pytest.fixture(scope='session')
def app():
    return create_app(TestConfig)


@pytest.fixture(autouse=True)
def app_ctx(app):
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    yield
    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    datastore = app.extensions['security'].datastore
    user = datastore.create_user(
        email='admin@example.com',
        password=hash_password('password'),
        fs_uniquifier=uuid.uuid4().hex,
    )
    db.session.commit()
    return {'Authentication-Token': user.get_auth_token()}


@pytest.fixture
def customer_service():
    return CustomerService()


@pytest.fixture
def transaction_service():
    return TransactionService()


@pytest.fixture
def make_customer(customer_service):
    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        data = {
            'name': f'Customer {counter["n"]}',
            'phone': f'90000000{counter["n"]:02d}',
            'address': 'Market Road',
        }
        data.update(overrides)
        return customer_service.create(data)

    return _make
