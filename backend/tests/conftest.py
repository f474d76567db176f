"""
Pytest fixtures for BizSight backend tests.

Provides test database setup, per-user fixtures, and test client helpers.
"""

import io

import pytest
from bizsight import create_app
from bizsight.extensions import db
from bizsight.models import Product
from bizsight.services.auth_service import create_user
from bizsight.services.session_service import create_session


DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def upload_folder(tmp_path_factory):
    return str(tmp_path_factory.mktemp("uploads"))


@pytest.fixture(scope='session')
def app(upload_folder):
    """One app per test session, on in-memory SQLite."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'UPLOAD_FOLDER': upload_folder,
        'CSV_POSITIONAL_HEADER_FALLBACK': True,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Start each test from empty tables."""
    with app.app_context():
        # Schema stays; rows go
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def user_a(db_session):
    return create_user(
        full_name="Alice Anders",
        username="alice",
        email="alice@example.com",
        password=DEFAULT_PASSWORD,
        mobile_number="5550000001",
    )


@pytest.fixture(scope='function')
def user_b(db_session):
    return create_user(
        full_name="Bob Brown",
        username="bob",
        email="bob@example.com",
        password=DEFAULT_PASSWORD,
        mobile_number="5550000002",
    )


@pytest.fixture(scope='function')
def token_a(user_a):
    _, token = create_session(user_id=user_a.id)
    return token


@pytest.fixture(scope='function')
def token_b(user_b):
    _, token = create_session(user_id=user_b.id)
    return token


def make_product(db_session, user, name="Widget", price_cents=999, stock=50, category="Electronics"):
    product = Product(
        user_id=user.id,
        name=name,
        price_cents=price_cents,
        stock=stock,
        category=category,
    )
    db_session.add(product)
    db_session.commit()
    return product


def get_auth_token(client, username: str, password: str) -> str:
    """Log in through the API and return the bearer token."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


def csv_file(text, filename="upload.csv", mimetype="text/csv"):
    """Multipart file tuple for the Flask test client."""
    content = text.encode("utf-8") if isinstance(text, str) else text
    return (io.BytesIO(content), filename, mimetype)


def csv_stream(text) -> io.BytesIO:
    return io.BytesIO(text.encode("utf-8") if isinstance(text, str) else text)
