import pytest


def _create_customer(client, headers, **fields):
    payload = {'name': 'A', 'phone': '1', 'address': 'Mandi Road'}
    payload.update(fields)
    return client.post('/api/customers', json=payload, headers=headers)


class TestAuthentication:

    @pytest.mark.parametrize('method,path', [
        ('get', '/api/customers'),
        ('get', '/api/customers/stats'),
        ('post', '/api/customers'),
        ('get', '/api/transactions'),
        ('patch', '/api/transactions/1/status'),
        ('post', '/api/transactions/update-existing'),
    ])
    def test_routes_require_authentication(self, client, method, path):
        response = getattr(client, method)(path, json={})
        assert response.status_code == 401
        assert response.get_json() == {'message': 'Authentication required'}

    def test_health_check_is_open(self, client):
        response = client.get('/api/health-check')
        assert response.status_code == 200
        assert response.get_json()['database'] is True


class TestCustomerEndpoints:

    def test_create_and_duplicate(self, client, auth_headers):
        created = _create_customer(client, auth_headers, creditLimit=2500)
        assert created.status_code == 201
        body = created.get_json()
        assert body['message'] == 'Customer created successfully'
        assert body['customer']['creditLimit'] == 2500
        assert body['customer']['isActive'] is True

        duplicate = _create_customer(client, auth_headers, name='B')
        assert duplicate.status_code == 400
        assert duplicate.get_json() == {'message': 'Customer with this phone number already exists'}

    def test_create_requires_name(self, client, auth_headers):
        response = client.post('/api/customers', json={'phone': '9'}, headers=auth_headers)
        assert response.status_code == 400
        body = response.get_json()
        assert body['message'] == 'Validation failed'
        assert 'name' in body['errors']

    def test_negative_credit_limit_rejected(self, client, auth_headers):
        response = _create_customer(client, auth_headers, creditLimit=-1)
        assert response.status_code == 400

    def test_missing_customer_is_404(self, client, auth_headers):
        response = client.get('/api/customers/999', headers=auth_headers)
        assert response.status_code == 404
        assert response.get_json() == {'message': 'Customer not found'}

    def test_list_and_delete(self, client, auth_headers):
        first = _create_customer(client, auth_headers, phone='11').get_json()['customer']
        _create_customer(client, auth_headers, phone='22', name='Other')

        deleted = client.delete(f"/api/customers/{first['id']}", headers=auth_headers)
        assert deleted.status_code == 200
        assert deleted.get_json()['customer']['isActive'] is False

        active = client.get('/api/customers?status=active', headers=auth_headers).get_json()
        assert [c['phone'] for c in active['customers']] == ['22']
        assert active['pagination']['totalCount'] == 1

        listed = client.get('/api/customers', headers=auth_headers).get_json()
        assert [c['phone'] for c in listed['customers']] == ['22']

        still_there = client.get(f"/api/customers/{first['id']}", headers=auth_headers)
        assert still_there.status_code == 200

    def test_update(self, client, auth_headers):
        customer = _create_customer(client, auth_headers).get_json()['customer']
        response = client.put(
            f"/api/customers/{customer['id']}", json={'notes': 'pays weekly'}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.get_json()['customer']['notes'] == 'pays weekly'
        assert response.get_json()['customer']['name'] == 'A'

    def test_stats(self, client, auth_headers):
        _create_customer(client, auth_headers)
        stats = client.get('/api/customers/stats', headers=auth_headers).get_json()
        assert stats == {
            'totalCustomers': 1,
            'activeCustomers': 1,
            'inactiveCustomers': 0,
            'outstandingCustomers': 0,
        }


class TestTransactionEndpoints:

    def test_end_to_end_give_flow(self, client, auth_headers):
        customer = _create_customer(client, auth_headers).get_json()['customer']

        created = client.post('/api/transactions', json={
            'customer': customer['id'], 'weight': 100, 'rate': 200, 'type': 'give',
        }, headers=auth_headers)
        assert created.status_code == 201
        transaction = created.get_json()['transaction']
        assert transaction['totalAmount'] == 20000
        assert transaction['status'] == 'pending'
        assert transaction['customer'] == {'id': customer['id'], 'name': 'A', 'phone': '1'}

        detail = client.get(f"/api/customers/{customer['id']}", headers=auth_headers).get_json()['customer']
        assert detail['outstandingBalance'] == 20000
        assert detail['totalPurchases'] == 0
        assert detail['lastTransaction']['amount'] == 20000
        assert len(detail['recentTransactions']) == 1

        updated = client.put(
            f"/api/transactions/{transaction['id']}", json={'weightUnit': 'quintal'}, headers=auth_headers
        ).get_json()['transaction']
        assert updated['rateUnit'] == 'kg'
        assert updated['totalAmount'] == 2_000_000

    def test_create_with_local_date_at_dst_change(self, client, auth_headers, monkeypatch):
        monkeypatch.setenv('LEDGER_TIMEZONE', 'America/New_York')
        customer = _create_customer(client, auth_headers).get_json()['customer']
        response = client.post('/api/transactions', json={
            'customer': customer['id'], 'weight': 1, 'rate': 1, 'date': '2024-11-03T01:30:00',
        }, headers=auth_headers)
        assert response.status_code == 201
        assert response.get_json()['transaction']['date'] == '2024-11-03T06:30:00Z'

    def test_receive_is_paid_and_description_maps_to_notes(self, client, auth_headers):
        customer = _create_customer(client, auth_headers).get_json()['customer']
        response = client.post('/api/transactions', json={
            'customer': customer['id'], 'weight': 5, 'rate': 10, 'type': 'receive',
            'description': 'morning batch', 'date': '2024-04-01T06:30:00',
        }, headers=auth_headers)
        transaction = response.get_json()['transaction']
        assert transaction['status'] == 'paid'
        assert transaction['notes'] == 'morning batch'
        assert transaction['date'] == '2024-04-01T06:30:00Z'

    def test_create_validation_errors(self, client, auth_headers):
        customer = _create_customer(client, auth_headers).get_json()['customer']

        missing_rate = client.post('/api/transactions', json={
            'customer': customer['id'], 'weight': 5,
        }, headers=auth_headers)
        assert missing_rate.status_code == 400
        assert missing_rate.get_json() == {'message': 'Weight and rate are required'}

        unknown_customer = client.post('/api/transactions', json={
            'customer': 999, 'weight': 5, 'rate': 1,
        }, headers=auth_headers)
        assert unknown_customer.status_code == 400
        assert unknown_customer.get_json() == {'message': 'Customer not found'}

        bad_date = client.post('/api/transactions', json={
            'customer': customer['id'], 'weight': 5, 'rate': 1, 'date': 'tomorrow',
        }, headers=auth_headers)
        assert bad_date.status_code == 400

        negative = client.post('/api/transactions', json={
            'customer': customer['id'], 'weight': -5, 'rate': 1,
        }, headers=auth_headers)
        assert negative.status_code == 400

    def test_get_includes_customer_address(self, client, auth_headers):
        customer = _create_customer(client, auth_headers).get_json()['customer']
        transaction = client.post('/api/transactions', json={
            'customer': customer['id'], 'weight': 1, 'rate': 1,
        }, headers=auth_headers).get_json()['transaction']

        detail = client.get(f"/api/transactions/{transaction['id']}", headers=auth_headers).get_json()
        assert detail['transaction']['customer']['address'] == 'Mandi Road'

        missing = client.get('/api/transactions/999', headers=auth_headers)
        assert missing.status_code == 404
        assert missing.get_json() == {'message': 'Transaction not found'}

    def test_status_delete_and_listing(self, client, auth_headers):
        customer = _create_customer(client, auth_headers).get_json()['customer']
        ids = [
            client.post('/api/transactions', json={
                'customer': customer['id'], 'weight': 1, 'rate': amount,
            }, headers=auth_headers).get_json()['transaction']['id']
            for amount in (10, 20)
        ]

        paid = client.patch(f'/api/transactions/{ids[0]}/status', json={
            'status': 'paid', 'paymentDate': '2024-06-01',
        }, headers=auth_headers).get_json()['transaction']
        assert paid['status'] == 'paid'
        assert paid['paymentDate'] == '2024-06-01T00:00:00Z'

        invalid = client.patch(f'/api/transactions/{ids[0]}/status', json={'status': 'void'},
                               headers=auth_headers)
        assert invalid.status_code == 400

        assert client.delete(f'/api/transactions/{ids[1]}', headers=auth_headers).status_code == 200

        listed = client.get('/api/transactions', headers=auth_headers).get_json()
        assert [t['id'] for t in listed['transactions']] == [ids[0]]

        with_deleted = client.get('/api/transactions?includeDeleted=true', headers=auth_headers).get_json()
        assert with_deleted['pagination']['totalCount'] == 2

    def test_stats_endpoint(self, client, auth_headers):
        customer = _create_customer(client, auth_headers).get_json()['customer']
        client.post('/api/transactions', json={
            'customer': customer['id'], 'weight': 2, 'rate': 50, 'date': '2024-07-04',
        }, headers=auth_headers)

        stats = client.get('/api/transactions/stats?startDate=2024-07-01', headers=auth_headers).get_json()
        assert stats['totalStats'] == {'count': 1, 'totalAmount': 100}
        assert stats['monthlyStats'] == [{'year': 2024, 'month': 7, 'count': 1, 'totalAmount': 100}]

    def test_update_existing_backfill(self, client, auth_headers):
        response = client.post('/api/transactions/update-existing', headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()['updatedCount'] == 0
        assert response.get_json()['totalFound'] == 0

    def test_limit_is_capped(self, client, auth_headers, app):
        app.config['MAX_PAGE_SIZE'] = 2
        try:
            customer = _create_customer(client, auth_headers).get_json()['customer']
            for _ in range(3):
                client.post('/api/transactions', json={
                    'customer': customer['id'], 'weight': 1, 'rate': 1,
                }, headers=auth_headers)
            listed = client.get('/api/transactions?limit=50', headers=auth_headers).get_json()
            assert len(listed['transactions']) == 2
            assert listed['pagination']['totalPages'] == 2
        finally:
            app.config['MAX_PAGE_SIZE'] = 100
