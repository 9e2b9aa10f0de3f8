import json
from datetime import datetime
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from wedding import create_app, db
from wedding.config import TestConfig
from wedding.errors import PaymentProviderError, ValidationError
from wedding.models import Category, Event, Product, RegistryItem, User, Vendor
from wedding.payments.gateway import PaymentIntent


class FakeGateway:
    """Stands in for Stripe: numbered intents, signature 'valid' accepted."""

    def __init__(self):
        self.intents = []
        self.retrieved = []
        self.fail = False

    def create_payment_intent(self, amount, metadata=None, idempotency_key=None):
        if self.fail:
            raise PaymentProviderError("Error creating payment intent")
        n = len(self.intents) + 1
        self.intents.append({'amount': amount, 'metadata': metadata, 'idempotency_key': idempotency_key})
        return PaymentIntent(id=f"pi_test_{n}", client_secret=f"pi_test_{n}_secret_abc")

    def retrieve_payment_intent(self, payment_intent_id):
        if self.fail:
            raise PaymentProviderError("Error retrieving payment intent")
        self.retrieved.append(payment_intent_id)
        return PaymentIntent(id=payment_intent_id, client_secret=f"{payment_intent_id}_secret_abc")

    def construct_event(self, payload, signature):
        if not signature:
            raise ValidationError("Missing stripe-signature header")
        if signature != 'valid':
            raise ValidationError("Webhook Error: bad signature")
        return json.loads(payload)


@pytest.fixture
def app(tmp_path):
    app = create_app(TestConfig)
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def gateway(app):
    fake = FakeGateway()
    app.extensions['payments'] = fake
    return fake


def _make_user(email, role='celebrant'):
    user = User(email=email, password_hash=generate_password_hash('secret-password'), role=role)
    db.session.add(user)
    db.session.commit()
    return user


def auth_headers(user):
    token = create_access_token(identity=str(user.user_id))
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def couple(app):
    return _make_user('couple@example.com')


@pytest.fixture
def guest_user(app):
    return _make_user('guest@example.com', role='guest')


@pytest.fixture
def vendor_user(app):
    return _make_user('studio@example.com', role='vendor')


@pytest.fixture
def event(couple):
    event = Event(user_id=couple.user_id, title='Ana & Ben', event_date=datetime(2027, 6, 12, 15, 0))
    db.session.add(event)
    db.session.commit()
    return event


@pytest.fixture
def product(app):
    category = Category(name='Kitchen')
    product = Product(name='Stand Mixer', description='Tilt-head mixer', price=Decimal('349.99'),
                      category=category)
    db.session.add_all([category, product])
    db.session.commit()
    return product


@pytest.fixture
def make_item(event, product):
    def _make_item(target='100.00', priority='medium', is_public=True, **overrides):
        item = RegistryItem(event_id=overrides.pop('event_id', event.id), product_id=product.id,
                            target_amount=Decimal(target), priority=priority, is_public=is_public,
                            **overrides)
        db.session.add(item)
        db.session.commit()
        return item
    return _make_item


@pytest.fixture
def vendor(vendor_user):
    vendor = Vendor(user_id=vendor_user.user_id, business_name='Golden Hour Studio',
                    category='photographer', location='Lisbon')
    db.session.add(vendor)
    db.session.commit()
    return vendor


@pytest.fixture
def auth(app):
    return auth_headers
