import pytest
from decimal import Decimal
import uuid

from perks import create_app
from perks.database import Base, db_session, get_session, create_all
from perks.models import Employee, EmployeeSession, Product, Branding
from perks.services.phonepe_client import PaymentSession, PaymentStatus
from perks.exceptions import PaymentGatewayError


class FakeGateway:
    """In-memory payment gateway recording every call."""

    def __init__(self):
        self.initiated = []
        self.statuses = {}
        self.fail_initiation = False
        self.fail_status = False

    def initiate_payment(self, amount, merchant_transaction_id, merchant_user_id,
                         redirect_url, callback_url, mobile_number=None):
        if self.fail_initiation:
            raise PaymentGatewayError('gateway down')
        self.initiated.append({
            'amount': amount,
            'merchant_transaction_id': merchant_transaction_id,
            'merchant_user_id': merchant_user_id,
            'redirect_url': redirect_url,
            'callback_url': callback_url,
        })
        return PaymentSession(
            payment_url=f'https://gateway.test/pay/{merchant_transaction_id}',
            merchant_transaction_id=merchant_transaction_id
        )

    def check_status(self, merchant_transaction_id):
        if self.fail_status:
            raise PaymentGatewayError('gateway down')
        return self.statuses.get(
            merchant_transaction_id,
            PaymentStatus(code='PAYMENT_PENDING', success=False, paid_amount=Decimal('0'))
        )

    def mark_paid(self, merchant_transaction_id, amount):
        self.statuses[merchant_transaction_id] = PaymentStatus(
            code='PAYMENT_SUCCESS',
            success=True,
            paid_amount=Decimal(str(amount)),
            transaction_id=f'T{merchant_transaction_id[-6:]}'
        )


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    with app.app_context():
        create_all()
    return app


@pytest.fixture(scope='function')
def gateway(app):
    """Fake payment gateway registered on the app."""
    fake = FakeGateway()
    app.extensions['payment_gateway'] = fake
    yield fake
    app.extensions.pop('payment_gateway', None)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session inside an app context; every table is emptied afterwards."""
    with app.app_context():
        session = get_session()
        yield session
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
    db_session.remove()


@pytest.fixture(scope='function')
def branding(session):
    """Rate 1.00 currency per point, unlimited selections."""
    branding = Branding(company_name='TechCorp', currency_per_point=Decimal('1.00'), max_selections_per_user=-1)
    session.add(branding)
    session.commit()
    return branding


@pytest.fixture(scope='function')
def employee(session):
    """Employee with 300 points."""
    suffix = str(uuid.uuid4())[:8]
    employee = Employee(
        first_name='Asha',
        last_name='Rao',
        email=f'asha-{suffix}@example.com',
        phone_number='+91 9876543210',
        points=300
    )
    session.add(employee)
    session.commit()
    return employee


@pytest.fixture(scope='function')
def product(session):
    """Product priced 100.00 with 10 in stock."""
    product = Product(
        sku=f'SKU-{uuid.uuid4().hex[:8]}',
        name='Water Bottle',
        price=Decimal('100.00'),
        stock=10,
        colors=['Blue', 'Black'],
        images=[],
        active=True
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def auth_headers(session, employee):
    """Bearer header for the employee fixture."""
    employee_session = EmployeeSession.issue(employee.id)
    session.add(employee_session)
    session.commit()
    return {'Authorization': f'Bearer {employee_session.token}'}
