import pytest
import uuid
from decimal import Decimal

from flowcrm import create_app
from flowcrm.database import get_session
from flowcrm.models import Customer, Product


@pytest.fixture(scope='function')
def app():
    """Application with a fresh in-memory database per test."""
    app = create_app('config.TestConfig')
    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session for testing."""
    session = get_session()
    yield session
    session.rollback()
    session.remove()


@pytest.fixture(scope='function')
def customer(session):
    """Create a test customer."""
    customer = Customer(
        name='Maria Souza',
        email='maria@example.com',
        document='123.456.789-00'
    )
    session.add(customer)
    session.commit()
    return customer


@pytest.fixture(scope='function')
def make_product(session):
    """Factory for products with configurable stock and prices."""
    def _make(stock=10, purchase_price='10.00', sale_price='15.00', name=None):
        suffix = str(uuid.uuid4())[:8]
        product = Product(
            code=f'P-{suffix}',
            name=name or f'Product {suffix}',
            stock=stock,
            purchase_price=Decimal(purchase_price),
            sale_price=Decimal(sale_price)
        )
        session.add(product)
        session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Create a test product with 10 units in stock."""
    return make_product(name='Notebook')
