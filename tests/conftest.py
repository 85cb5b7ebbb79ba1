import pytest

from app import create_app
from auth_service import hash_password
from models import db, Farmer, Buyer, AssociationOfficer

PASSWORD = 'Secret123!'


@pytest.fixture
def app():
    app = create_app('testing')
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def auth_header(token):
    return {'Authorization': f'Bearer {token}'}


def create_officer(app, email='officer@mao.gov.ph', super_admin=False, **overrides):
    with app.app_context():
        fields = dict(
            full_name='Olivia Officer',
            email=email,
            password_hash=hash_password(PASSWORD),
            position='Secretary',
            association_name='Culiram Abaca Growers',
            is_super_admin=super_admin,
            profile_completed=True,
            is_active=True,
            is_verified=True,
            verification_status='verified'
        )
        fields.update(overrides)
        officer = AssociationOfficer(**fields)
        db.session.add(officer)
        db.session.commit()
        return officer.officer_id


def create_farmer(app, email='farmer@example.com', status='verified', **overrides):
    with app.app_context():
        fields = dict(
            full_name='Juan Dela Cruz',
            email=email,
            password_hash=hash_password(PASSWORD),
            municipality='Culiram',
            barangay='Poblacion',
            association_name='Culiram Abaca Growers',
            type_of_abaca_planted='Inosa',
            is_active=status != 'rejected',
            is_verified=status == 'verified',
            verification_status=status
        )
        fields.update(overrides)
        farmer = Farmer(**fields)
        db.session.add(farmer)
        db.session.commit()
        return farmer.farmer_id


def create_buyer(app, email='buyer@example.com', status='verified', **overrides):
    with app.app_context():
        fields = dict(
            business_name='Fiber Traders Inc',
            owner_name='Bea Buyer',
            email=email,
            password_hash=hash_password(PASSWORD),
            is_active=status != 'rejected',
            is_verified=status == 'verified',
            verification_status=status
        )
        fields.update(overrides)
        buyer = Buyer(**fields)
        db.session.add(buyer)
        db.session.commit()
        return buyer.buyer_id


def login(client, email, user_type, password=PASSWORD):
    return client.post('/api/auth/login', json={
        'email': email,
        'password': password,
        'userType': user_type
    })


def token_for(client, email, user_type):
    response = login(client, email, user_type)
    assert response.status_code == 200, response.get_json()
    return response.get_json()['tokens']['accessToken']


@pytest.fixture
def officer_token(app, client):
    create_officer(app)
    return token_for(client, 'officer@mao.gov.ph', 'officer')


@pytest.fixture
def super_admin_token(app, client):
    create_officer(app, email='admin@mao.gov.ph', super_admin=True)
    return token_for(client, 'admin@mao.gov.ph', 'officer')


@pytest.fixture
def farmer_token(app, client):
    create_farmer(app)
    return token_for(client, 'farmer@example.com', 'farmer')
