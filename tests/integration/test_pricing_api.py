"""
Tests for the pricing, product and operational HTTP endpoints.
"""

import pytest


@pytest.fixture
def priced_product(make_product):
    return make_product(purchase_price='100.00', sale_price='150.00', name='Monitor')


class TestPriceEndpoints:
    """Tests for /api/price."""

    def test_margin_markup(self, client):
        response = client.post('/api/price/margin-markup', json={'cost': 100, 'sellingPrice': 150})

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['profit'] == '50.00'
        assert data['margin'] == {'amount': '50.00', 'percentage': '33.33'}
        assert data['markup'] == {'amount': '50.00', 'percentage': '50.00'}

    def test_margin_markup_price_below_cost(self, client):
        response = client.post('/api/price/margin-markup', json={'cost': 100, 'sellingPrice': 90})

        assert response.status_code == 422
        assert 'negative margin' in response.get_json()['error']['message']

    def test_missing_cost(self, client):
        response = client.post('/api/price/margin-markup', json={'sellingPrice': 90})

        assert response.status_code == 422
        assert response.get_json()['error']['message'] == 'cost is required'

    def test_suggest_by_margin(self, client):
        data = client.post('/api/price/suggest', json={'cost': 100, 'targetMargin': 20}).get_json()['data']

        assert data['suggestedPrice'] == '125.00'
        assert data['projectedMargin'] == '20.00'
        assert data['projectedMarkup'] == '25.00'

    def test_suggest_by_markup(self, client):
        data = client.post('/api/price/suggest', json={'cost': 100, 'targetMarkup': 60}).get_json()['data']

        assert data['suggestedPrice'] == '160.00'
        assert data['projectedMargin'] == '37.50'

    def test_suggest_with_both_targets(self, client):
        response = client.post('/api/price/suggest', json={'cost': 100, 'targetMargin': 20, 'targetMarkup': 20})
        assert response.status_code == 422

    def test_analyze(self, client):
        data = client.post('/api/price/analyze', json={'cost': 100, 'sellingPrice': 105}).get_json()['data']

        assert data['margin']['percentage'] == '4.76'
        assert data['recommendations'] == [
            'Low margin detected. Consider increasing selling price for better profitability.',
            'Low markup detected. Ensure all costs are covered.',
        ]

    def test_batch_analyze(self, client):
        response = client.post('/api/price/batch-analyze', json={'items': [
            {'productId': 'a', 'cost': 100, 'sellingPrice': 150},
            {'productId': 'b', 'cost': 10, 'sellingPrice': 20},
        ]})

        data = response.get_json()['data']
        assert [r['productId'] for r in data] == ['a', 'b']
        assert data[1]['markup']['percentage'] == '100.00'

    def test_batch_analyze_stops_at_first_error(self, client):
        response = client.post('/api/price/batch-analyze', json={'items': [
            {'productId': 'a', 'cost': 100, 'sellingPrice': 150},
            {'productId': 'b', 'cost': 0, 'sellingPrice': 20},
        ]})

        assert response.status_code == 422
        error = response.get_json()['error']
        assert error['message'].startswith('Error calculating margin for product b:')
        assert error['details'] == {'product_id': 'b'}

    def test_convert_margin_to_markup(self, client):
        data = client.post('/api/price/convert', json={'marginPercentage': 50}).get_json()['data']
        assert data['markupPercentage'] == '100.00'

    def test_convert_markup_to_margin(self, client):
        data = client.post('/api/price/convert', json={'markupPercentage': 100}).get_json()['data']
        assert data['marginPercentage'] == '50.00'

    def test_convert_requires_one_value(self, client):
        assert client.post('/api/price/convert', json={}).status_code == 422


class TestProductEndpoints:
    """Tests for /api/products and /api/stock-adjustments."""

    def test_suggest_price(self, client, priced_product):
        response = client.post(f'/api/products/{priced_product.id}/suggest-price', json={'targetMargin': 20})

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['productName'] == 'Monitor'
        assert data['suggestedPrice'] == '125.00'
        assert data['projectedMargin']['percentage'] == '20.00'

    def test_suggest_price_unknown_product(self, client):
        response = client.post('/api/products/missing/suggest-price', json={'targetMargin': 20})
        assert response.status_code == 404

    def test_stock_adjustment(self, client, product):
        response = client.post(
            f'/api/products/{product.id}/stock-adjustment',
            json={'adjustmentType': 'add', 'quantity': 5, 'reason': 'Restock'},
            headers={'X-User-Name': 'Ana'}
        )

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['previousStock'] == 10
        assert data['newStock'] == 15
        assert data['userName'] == 'Ana'

    def test_stock_adjustment_negative_result(self, client, product):
        response = client.post(
            f'/api/products/{product.id}/stock-adjustment',
            json={'adjustmentType': 'remove', 'quantity': 20, 'reason': 'Loss'}
        )

        assert response.status_code == 409
        assert response.get_json()['error']['code'] == 'INSUFFICIENT_STOCK'

    def test_adjustment_history(self, client, product):
        url = f'/api/products/{product.id}/stock-adjustment'
        client.post(url, json={'adjustmentType': 'add', 'quantity': 5, 'reason': 'Restock'})
        client.post(url, json={'adjustmentType': 'remove', 'quantity': 2, 'reason': 'Sold'})

        response = client.get(f'/api/stock-adjustments?productId={product.id}')

        assert response.status_code == 200
        assert [a['reason'] for a in response.get_json()['data']] == ['Sold', 'Restock']

    def test_adjustment_history_bad_limit(self, client):
        assert client.get('/api/stock-adjustments?limit=abc').status_code == 422


class TestOperationalEndpoints:
    """Tests for health, metrics and unknown routes."""

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'healthy'
        assert body['database'] == 'connected'
        assert body['cache'] == 'unavailable'

    def test_metrics(self, client):
        client.get('/health')
        response = client.get('/metrics')

        assert response.status_code == 200
        assert b'http_requests_total' in response.data
        assert b'presale_status_transitions_total' in response.data

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get('/api/nothing-here')

        assert response.status_code == 404
        body = response.get_json()
        assert body['success'] is False
        assert body['error']['code'] == 'NOT_FOUND'
