"""
Tests for the pre-sales HTTP API.
"""

import pytest

from flowcrm.models import Product


@pytest.fixture
def payload(customer, product):
    return {
        'customerId': customer.id,
        'items': [{'productId': product.id, 'quantity': 2, 'unitPrice': 15}],
        'discountType': 'percentage',
        'discount': 10,
        'notes': 'Call before delivery',
    }


@pytest.fixture
def created_presale(client, payload):
    response = client.post('/api/presales', json=payload)
    assert response.status_code == 201
    return response.get_json()['data']


class TestCreatePresaleEndpoint:
    """Tests for POST /api/presales."""

    def test_create_returns_envelope(self, client, payload):
        response = client.post('/api/presales', json=dict(payload, status='approved'))

        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        assert body['message'] == 'Pre-sale created successfully'
        assert 'timestamp' in body

        data = body['data']
        assert data['status'] == 'pending'
        assert data['subtotal'] == '30.00'
        assert data['discount'] == '3.00'
        assert data['total'] == '27.00'
        assert data['discountType'] == 'percentage'
        assert data['discountPercentage'] == '10.00'
        assert data['customer']['name'] == 'Maria Souza'
        assert data['items'][0]['product']['name'] == 'Notebook'
        assert data['items'][0]['totalPrice'] == '30.00'

    def test_empty_items(self, client, customer):
        response = client.post('/api/presales', json={'customerId': customer.id, 'items': []})

        assert response.status_code == 422
        body = response.get_json()
        assert body['success'] is False
        assert body['error']['code'] == 'INVALID_INPUT'
        assert body['path'] == '/api/presales'

    def test_non_numeric_quantity(self, client, payload):
        payload['items'][0]['quantity'] = 'two'
        response = client.post('/api/presales', json=payload)

        assert response.status_code == 422
        assert response.get_json()['error']['message'] == 'Invalid quantity: must be a valid number'

    def test_percentage_over_100(self, client, payload):
        payload['discount'] = 150
        response = client.post('/api/presales', json=payload)

        assert response.status_code == 422
        assert 'cannot exceed 100%' in response.get_json()['error']['message']

    def test_unknown_customer(self, client, payload):
        payload['customerId'] = 'missing'
        response = client.post('/api/presales', json=payload)

        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'NOT_FOUND'

    def test_insufficient_stock(self, client, payload):
        payload['items'][0]['quantity'] = 50
        response = client.post('/api/presales', json=payload)

        assert response.status_code == 409
        error = response.get_json()['error']
        assert error['code'] == 'INSUFFICIENT_STOCK'
        assert error['details']['errors'] == ['Insufficient stock for "Notebook". Available: 10, Requested: 50']

    def test_missing_body(self, client):
        response = client.post('/api/presales', data='not json', content_type='text/plain')
        assert response.status_code == 422


class TestPresaleLifecycleEndpoints:
    """Tests for reading, updating, status changes and deletion."""

    def test_get_presale(self, client, created_presale):
        response = client.get(f"/api/presales/{created_presale['id']}")

        assert response.status_code == 200
        assert response.get_json()['data']['id'] == created_presale['id']

    def test_get_unknown_presale(self, client, app):
        response = client.get('/api/presales/missing')

        assert response.status_code == 404
        assert response.get_json()['error']['message'] == 'Pre-sale not found'

    def test_update_discount(self, client, created_presale):
        response = client.put(f"/api/presales/{created_presale['id']}",
                              json={'discountType': 'fixed', 'discount': 5})

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['total'] == '25.00'
        assert data['discountPercentage'] == '16.67'

    def test_convert_consumes_stock(self, client, session, created_presale, product):
        response = client.patch(f"/api/presales/{created_presale['id']}/status", json={'status': 'converted'})

        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'converted'
        assert session.get(Product, product.id).stock == 8

    def test_invalid_transition(self, client, created_presale):
        presale_url = f"/api/presales/{created_presale['id']}"
        client.patch(f'{presale_url}/status', json={'status': 'cancelled'})

        response = client.patch(f'{presale_url}/status', json={'status': 'approved'})

        assert response.status_code == 400
        error = response.get_json()['error']
        assert error['code'] == 'INVALID_STATUS_TRANSITION'
        assert error['details'] == {'from': 'cancelled', 'to': 'approved'}

    def test_unknown_status(self, client, created_presale):
        response = client.patch(f"/api/presales/{created_presale['id']}/status", json={'status': 'shipped'})
        assert response.status_code == 422

    def test_status_is_required(self, client, created_presale):
        response = client.patch(f"/api/presales/{created_presale['id']}/status", json={})

        assert response.status_code == 422
        assert response.get_json()['error']['message'] == 'Status is required'

    def test_converted_presale_cannot_change(self, client, created_presale):
        presale_url = f"/api/presales/{created_presale['id']}"
        client.patch(f'{presale_url}/status', json={'status': 'converted'})

        assert client.put(presale_url, json={'notes': 'late'}).status_code == 409
        response = client.delete(presale_url)
        assert response.status_code == 409
        assert response.get_json()['error']['code'] == 'CONFLICT'

    def test_delete_presale(self, client, created_presale):
        presale_url = f"/api/presales/{created_presale['id']}"

        response = client.delete(presale_url)
        assert response.status_code == 200
        assert response.get_json()['message'] == 'Pre-sale deleted successfully'
        assert client.get(presale_url).status_code == 404


class TestListAndCalculateEndpoints:
    """Tests for GET /api/presales and POST /api/presales/calculate."""

    def test_list_with_pagination(self, client, payload):
        for _ in range(3):
            client.post('/api/presales', json=payload)

        response = client.get('/api/presales?perPage=2&page=2')

        assert response.status_code == 200
        data = response.get_json()['data']
        assert len(data['presales']) == 1
        assert data['pagination'] == {'page': 2, 'perPage': 2, 'total': 3, 'totalPages': 2}

    def test_list_filters_by_status(self, client, created_presale):
        client.patch(f"/api/presales/{created_presale['id']}/status", json={'status': 'cancelled'})

        pending = client.get('/api/presales?status=pending').get_json()['data']
        cancelled = client.get('/api/presales?status=cancelled&status=converted').get_json()['data']

        assert pending['pagination']['total'] == 0
        assert [p['id'] for p in cancelled['presales']] == [created_presale['id']]

    def test_list_invalid_sort(self, client):
        response = client.get('/api/presales?sortBy=customer')
        assert response.status_code == 422

    def test_list_invalid_date(self, client):
        response = client.get('/api/presales?dateFrom=yesterday')

        assert response.status_code == 422
        assert response.get_json()['error']['message'] == 'Invalid date format provided'

    def test_calculate(self, client, payload):
        response = client.post('/api/presales/calculate', json=payload)

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['subtotal'] == '30.00'
        assert data['discountAmount'] == '3.00'
        assert data['total'] == '27.00'
        assert data['itemDetails'][0]['lineTotalWithDiscount'] == '30.00'
        assert data['stock']['isValid'] is True

    def test_calculate_reports_shortfall(self, client, payload):
        payload['items'][0]['quantity'] = 11
        data = client.post('/api/presales/calculate', json=payload).get_json()['data']

        assert data['stock']['isValid'] is False
        assert data['stock']['errors'] == ['Insufficient stock for "Notebook". Available: 10, Requested: 11']
