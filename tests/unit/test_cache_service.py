"""
Unit tests for the Redis cache service, with the Redis client mocked.
"""

import pytest
from decimal import Decimal
from redis.exceptions import RedisError

from flowcrm.services.cache_service import CacheService


@pytest.fixture
def store():
    return {}


@pytest.fixture
def cache(mocker, store):
    client = mocker.MagicMock()
    client.get.side_effect = store.get
    client.setex.side_effect = lambda key, ttl, value: store.__setitem__(key, value)

    service = CacheService()
    service.client = client
    service._enabled = True
    service._prefix = 'test'
    return service


class TestCacheService:
    """Tests for CacheService."""

    def test_memoize_loads_once(self, cache, mocker, store):
        loader = mocker.Mock(return_value={'suggested_price': Decimal('125.00')})

        first = cache.memoize('price', 'abc', loader, ttl=60)
        second = cache.memoize('price', 'abc', loader, ttl=60)

        assert loader.call_count == 1
        assert first == second == {'suggested_price': Decimal('125.00')}
        assert list(store) == ['test:price:abc']

    def test_decimals_survive_a_round_trip(self, cache):
        cache.set('price', 'k', {'margin': Decimal('33.33')}, ttl=60)

        value = cache.get('price', 'k')['margin']
        assert isinstance(value, Decimal)
        assert value == Decimal('33.33')

    def test_disabled_cache_always_loads(self, mocker):
        loader = mocker.Mock(return_value=1)
        service = CacheService()

        service.memoize('price', 'abc', loader)
        service.memoize('price', 'abc', loader)

        assert loader.call_count == 2
        assert service.is_available() is False

    def test_redis_errors_degrade_to_a_miss(self, cache, mocker):
        cache.client.get.side_effect = RedisError('down')
        cache.client.setex.side_effect = RedisError('down')
        loader = mocker.Mock(return_value='fresh')

        assert cache.memoize('price', 'abc', loader, ttl=60) == 'fresh'
        assert cache.set('price', 'abc', 'value', ttl=60) is False
