import pytest
from datetime import timedelta
from decimal import Decimal
import uuid

from app import create_app
from app.database import get_session, create_all, drop_all
from app.models import AppUser, ApprovalStatus, Product, Vehicle, DiscountCode, DiscountType
from app.services.cart_service import Cart, CartStore
from app.services.catalog_service import ProductSnapshot, VehicleSnapshot
from app.services.discount_service import utcnow


class MemoryCartStore(CartStore):
    """In-memory CartStore for service-level tests."""

    def __init__(self):
        self.data = {}
        self.saves = 0

    def load(self, key):
        return self.data.get(key)

    def save(self, key, data):
        self.data[key] = data
        self.saves += 1


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing (fresh in-memory database)."""
    app = create_app('config.TestingConfig')
    ctx = app.app_context()
    ctx.push()
    create_all()
    yield app
    get_session().remove()
    drop_all()
    ctx.pop()


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


def make_user(session, **kwargs):
    suffix = str(uuid.uuid4())[:8]
    defaults = {
        'email': f'kunde-{suffix}@test.de',
        'full_name': 'Max Mustermann',
        'approval_status': ApprovalStatus.APPROVED.value,
        'active': True,
    }
    defaults.update(kwargs)
    user = AppUser(**defaults)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def approved_user(session):
    return make_user(session)


@pytest.fixture(scope='function')
def other_user(session):
    return make_user(session, full_name='Erika Musterfrau')


@pytest.fixture(scope='function')
def pending_user(session):
    return make_user(session, approval_status=ApprovalStatus.PENDING.value)


@pytest.fixture(scope='function')
def admin_user(session):
    return make_user(session, full_name='Anna Admin', is_admin=True, approval_status=ApprovalStatus.PENDING.value)


@pytest.fixture(scope='function')
def product(session):
    """Product: 100.00 net, 19 % VAT, 10 % item discount, 5 in stock."""
    product = Product(
        name='Bremsscheibe',
        product_number='BS-001',
        price=Decimal('100.00'),
        tax_rate=Decimal('19'),
        discount_percentage=Decimal('10'),
        stock_quantity=5,
        is_active=True
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def product_on_request(session):
    """Product without stock (available on request)."""
    product = Product(
        name='Ölfilter',
        price=Decimal('12.50'),
        tax_rate=Decimal('19'),
        discount_percentage=Decimal('0'),
        stock_quantity=0,
        is_active=True
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def vehicle(session):
    """Regular vehicle: 10000.00 net, standard VAT."""
    vehicle = Vehicle(
        vehicle_number='FZ-100',
        brand='VW',
        model='Golf',
        price=Decimal('10000.00'),
        discount_percentage=Decimal('0'),
        vat_margin_scheme=False
    )
    session.add(vehicle)
    session.commit()
    return vehicle


@pytest.fixture(scope='function')
def margin_vehicle(session):
    """Margin-scheme vehicle: 20000.00, no VAT line."""
    vehicle = Vehicle(
        vehicle_number='FZ-200',
        brand='BMW',
        model='320d',
        price=Decimal('20000.00'),
        discount_percentage=Decimal('0'),
        vat_margin_scheme=True
    )
    session.add(vehicle)
    session.commit()
    return vehicle


def make_discount_code(session, **kwargs):
    defaults = {
        'code': 'SAVE10',
        'discount_type': DiscountType.PERCENTAGE.value,
        'discount_value': Decimal('10'),
        'min_order_value': Decimal('0'),
        'max_uses': None,
        'current_uses': 0,
        'valid_from': utcnow() - timedelta(days=1),
        'valid_until': None,
        'is_active': True,
    }
    defaults.update(kwargs)
    discount_code = DiscountCode(**defaults)
    session.add(discount_code)
    session.commit()
    return discount_code


@pytest.fixture(scope='function')
def percent_code(session):
    return make_discount_code(session)


@pytest.fixture(scope='function')
def fixed_code(session):
    return make_discount_code(
        session, code='MINUS50', discount_type=DiscountType.FIXED.value, discount_value=Decimal('50')
    )


@pytest.fixture(scope='function')
def memory_store():
    return MemoryCartStore()


@pytest.fixture(scope='function')
def cart_for(memory_store):
    """Factory: cart persisted in memory under the user's id."""
    def _cart_for(user):
        return Cart.load(memory_store, str(user.id))
    return _cart_for


@pytest.fixture(scope='function')
def checkout_data():
    return {
        'customer_name': 'Max Mustermann',
        'company_name': 'Mustermann GmbH',
        'phone': '+49 30 123456',
        'billing_address': 'Hauptstraße 1',
        'billing_city': 'Berlin',
        'billing_postal_code': '10115',
        'billing_country': 'Deutschland',
        'notes': 'Bitte mit Lieferzeit',
    }


@pytest.fixture(scope='function')
def login(client):
    """Factory: put a user id into the client's session."""
    def _login(user):
        with client.session_transaction() as sess:
            sess['user_id'] = user.id
        return client
    return _login


@pytest.fixture(scope='function')
def authenticated_client(login, approved_user):
    """Client logged in as an approved customer."""
    return login(approved_user)


@pytest.fixture(scope='function')
def admin_client(login, admin_user):
    return login(admin_user)


# Plain snapshots for pure cart/pricing tests (no database)

def product_snapshot(id=1, name='Artikel', price='100', tax_rate='19', discount='0', stock=0, is_active=True):
    return ProductSnapshot(
        id=id,
        name=name,
        price=Decimal(price),
        tax_rate=Decimal(tax_rate),
        discount_percentage=Decimal(discount),
        stock=stock,
        is_active=is_active,
    )


def vehicle_snapshot(id=1, brand='VW', model='Golf', price='10000', discount='0', margin=False,
                     is_sold=False, is_reserved=False, is_deleted=False):
    return VehicleSnapshot(
        id=id,
        brand=brand,
        model=model,
        price=Decimal(price),
        discount_percentage=Decimal(discount),
        vat_margin_scheme=margin,
        is_sold=is_sold,
        is_reserved=is_reserved,
        is_deleted=is_deleted,
    )


@pytest.fixture
def make_product():
    return product_snapshot


@pytest.fixture
def make_vehicle():
    return vehicle_snapshot


@pytest.fixture
def new_discount_code(session):
    """Factory: persist a discount code with overrides."""
    def _new(**kwargs):
        return make_discount_code(session, **kwargs)
    return _new


@pytest.fixture
def new_user(session):
    def _new(**kwargs):
        return make_user(session, **kwargs)
    return _new
