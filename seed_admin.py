import os

from app import create_app
from auth_service import register_officer
from models import AssociationOfficer
from schemas import OfficerRegistration

app = create_app(os.environ.get('FLASK_CONFIG', 'development'))

with app.app_context():
    email = os.environ.get('ADMIN_EMAIL', 'admin@mao.gov.ph')

    # Check if admin already exists to avoid duplicates
    if not AssociationOfficer.query.filter_by(email=email).first():
        register_officer(OfficerRegistration(
            full_name='System Administrator',
            email=email,
            password=os.environ.get('ADMIN_PASSWORD', 'admin123'),
            is_super_admin=True
        ))
        print("✅ Super admin officer created successfully!")
    else:
        print("⚠️  Super admin officer already exists.")
