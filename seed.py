import os
import random
from datetime import datetime, timedelta, date

from faker import Faker

from app import create_app
from auth_service import hash_password
from models import (
    db, Farmer, Buyer, AssociationOfficer, Harvest, InventoryItem,
    SeedlingDistribution, SalesReport
)

# Initialize Faker
fake = Faker()
app = create_app(os.environ.get('FLASK_CONFIG', 'development'))

DEFAULT_PASSWORD = 'password123'
MUNICIPALITIES = ['Culiram', 'Talacogon', 'San Luis', 'La Paz', 'Loreto']
ABACA_VARIETIES = ['Inosa', 'Abuab', 'Linawaan', 'Tangongon', 'Maguindanao']
FIBER_GRADES = ['S2', 'S3', 'I', 'G', 'H', 'JK', 'M1']


def clear_data():
    """Deletes existing data to avoid duplicates (Order matters for Foreign Keys)"""
    print("🗑️  Cleaning old data...")
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    print("✅ Database cleared.")

# --------------------------------------------------
# 1. ACCOUNTS (Officers, Farmers, Buyers)
# --------------------------------------------------
def seed_officers(password_hash):
    print("👮 Seeding Officers...")

    admin = AssociationOfficer(
        full_name="System Administrator",
        email="admin@mao.gov.ph",
        password_hash=password_hash,
        position="System Administrator",
        association_name="MAO Culiram",
        is_super_admin=True,
        profile_completed=True,
        is_active=True,
        is_verified=True,
        verification_status='verified'
    )
    db.session.add(admin)

    officers = [admin]
    for _ in range(4):
        officer = AssociationOfficer(
            full_name=fake.name(),
            email=fake.unique.email(),
            password_hash=password_hash,
            position=random.choice(['President', 'Secretary', 'Treasurer', 'Auditor']),
            association_name=f"{random.choice(MUNICIPALITIES)} Abaca Growers Association",
            contact_number=fake.phone_number(),
            address=fake.address(),
            profile_completed=True,
            is_active=True,
            is_verified=True,
            verification_status='verified'
        )
        db.session.add(officer)
        officers.append(officer)

    db.session.commit()
    return officers


def seed_farmers(password_hash, admin):
    print("👨‍🌾 Seeding Farmers...")

    farmers = []
    for _ in range(30):
        status = random.choices(['verified', 'pending', 'rejected'], weights=[6, 3, 1])[0]
        farmer = Farmer(
            full_name=fake.name(),
            sex=random.choice(['Male', 'Female']),
            age=random.randint(22, 70),
            contact_number=fake.phone_number(),
            address=fake.address(),
            barangay=fake.city(),
            municipality=random.choice(MUNICIPALITIES),
            association_name=f"{random.choice(MUNICIPALITIES)} Abaca Growers Association",
            farm_area_hectares=round(random.uniform(0.5, 8.0), 2),
            years_in_farming=random.randint(1, 40),
            type_of_abaca_planted=random.choice(ABACA_VARIETIES),
            average_harvest_volume_kg=round(random.uniform(50, 600), 2),
            harvest_frequency_weeks=random.choice([8, 10, 12]),
            email=fake.unique.email(),
            password_hash=password_hash,
            is_active=status != 'rejected',
            is_verified=status == 'verified',
            verification_status=status
        )
        if status != 'pending':
            farmer.verified_by = admin.officer_id
            farmer.verified_at = datetime.utcnow()
        if status == 'rejected':
            farmer.rejection_reason = 'Incomplete farm documents'
        db.session.add(farmer)
        farmers.append(farmer)

    db.session.commit()
    return farmers


def seed_buyers(password_hash):
    print("🏪 Seeding Buyers...")

    buyers = []
    for _ in range(8):
        verified = random.random() < 0.7
        buyer = Buyer(
            business_name=fake.company(),
            owner_name=fake.name(),
            business_address=fake.address(),
            contact_number=fake.phone_number(),
            email=fake.unique.email(),
            buying_location=random.choice(MUNICIPALITIES),
            accepted_quality_grades=random.sample(FIBER_GRADES, 3),
            price_range_min=random.randint(40, 60),
            price_range_max=random.randint(70, 110),
            payment_terms=random.choice(['Cash', 'Bank Transfer', '15 days']),
            password_hash=password_hash,
            is_active=True,
            is_verified=verified,
            verification_status='verified' if verified else 'pending'
        )
        db.session.add(buyer)
        buyers.append(buyer)

    db.session.commit()
    return buyers

# --------------------------------------------------
# 2. OPERATIONS (Harvests, Inventory, Seedlings, Sales)
# --------------------------------------------------
def seed_operations(farmers, buyers, officers):
    print("🌿 Seeding Harvests, Inventory, Seedlings & Sales...")

    verified_farmers = [f for f in farmers if f.is_verified]

    for farmer in verified_farmers:
        for _ in range(random.randint(1, 3)):
            status = random.choice(['Pending Verification', 'Verified', 'In Inventory'])
            harvest = Harvest(
                farmer_id=farmer.farmer_id,
                harvest_date=fake.date_between(start_date='-180d', end_date='today'),
                municipality=farmer.municipality,
                barangay=farmer.barangay,
                abaca_variety=farmer.type_of_abaca_planted,
                area_hectares=farmer.farm_area_hectares,
                dry_fiber_output_kg=round(random.uniform(40, 500), 2),
                fiber_grade=random.choice(FIBER_GRADES),
                status=status
            )
            if status != 'Pending Verification':
                harvest.verified_by = officers[0].officer_id
                harvest.verified_at = datetime.utcnow()
            db.session.add(harvest)

            if status == 'In Inventory':
                db.session.add(InventoryItem(
                    harvest=harvest,
                    stock_weight_kg=harvest.dry_fiber_output_kg,
                    current_stock_kg=harvest.dry_fiber_output_kg,
                    total_distributed_kg=0,
                    fiber_grade=harvest.fiber_grade,
                    fiber_quality_rating=random.choice(['Excellent', 'Good', 'Fair']),
                    storage_location='MAO Warehouse',
                    status='Stocked',
                    added_by=officers[0].officer_id
                ))

        db.session.add(SeedlingDistribution(
            variety=random.choice(ABACA_VARIETIES),
            source_supplier=fake.company(),
            quantity_distributed=random.randint(50, 500),
            date_distributed=date.today() - timedelta(days=random.randint(0, 365)),
            recipient_farmer_id=farmer.farmer_id,
            recipient_association=farmer.association_name,
            status=random.choice(['distributed', 'planted']),
            distributed_by=random.choice(officers).officer_id
        ))

        if buyers:
            quantity = round(random.uniform(20, 300), 2)
            price = round(random.uniform(45, 100), 2)
            db.session.add(SalesReport(
                farmer_id=farmer.farmer_id,
                buyer_company_name=random.choice(buyers).business_name,
                quantity_sold=quantity,
                price_per_kg=price,
                total_amount=round(quantity * price, 2),
                sale_date=fake.date_between(start_date='-90d', end_date='today'),
                fiber_grade=random.choice(FIBER_GRADES),
                status=random.choice(['pending', 'approved'])
            ))

    db.session.commit()

# --------------------------------------------------
# RUNNER
# --------------------------------------------------
if __name__ == '__main__':
    with app.app_context():
        # Create tables first if they don't exist
        db.create_all()

        clear_data()

        # Every seeded account shares one password; hash it once
        password_hash = hash_password(DEFAULT_PASSWORD)

        officers = seed_officers(password_hash)
        farmers = seed_farmers(password_hash, officers[0])
        buyers = seed_buyers(password_hash)
        seed_operations(farmers, buyers, officers)

        print(f"🎉 Seeding complete. All accounts use the password '{DEFAULT_PASSWORD}'.")
