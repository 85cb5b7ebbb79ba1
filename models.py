import uuid
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def new_id():
    return str(uuid.uuid4())


def iso(value):
    return value.isoformat() if value else None


# --- ACCOUNT MODELS ---

class VerificationMixin:
    """Columns shared by every account that goes through officer review."""
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    verification_status = db.Column(db.String(20), default='pending')
    verified_by = db.Column(db.String(36))
    verified_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)
    remarks = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True)
    is_verified = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    def mark_verified(self, officer_id):
        self.is_verified = True
        self.verification_status = 'verified'
        self.verified_by = officer_id
        self.verified_at = datetime.utcnow()
        self.rejection_reason = None

    def mark_rejected(self, officer_id, reason):
        self.is_verified = False
        self.verification_status = 'rejected'
        self.verified_by = officer_id
        self.verified_at = datetime.utcnow()
        self.rejection_reason = reason


class Farmer(VerificationMixin, db.Model):
    __tablename__ = 'farmers'

    farmer_id = db.Column(db.String(36), primary_key=True, default=new_id)
    full_name = db.Column(db.String(255), nullable=False)
    sex = db.Column(db.String(20))
    age = db.Column(db.Integer)
    contact_number = db.Column(db.String(50))
    address = db.Column(db.Text)
    barangay = db.Column(db.String(255))
    municipality = db.Column(db.String(255))
    association_name = db.Column(db.String(255))
    farm_location = db.Column(db.Text)
    farm_coordinates = db.Column(db.String(255))
    farm_area_hectares = db.Column(db.Float)
    years_in_farming = db.Column(db.Integer)
    type_of_abaca_planted = db.Column(db.String(255))
    average_harvest_volume_kg = db.Column(db.Float)
    harvest_frequency_weeks = db.Column(db.Integer)
    selling_price_range_min = db.Column(db.Float)
    selling_price_range_max = db.Column(db.Float)
    regular_buyer = db.Column(db.String(255))
    income_per_cycle = db.Column(db.Float)
    profile_photo = db.Column(db.Text)
    valid_id_photo = db.Column(db.Text)

    @property
    def id(self):
        return self.farmer_id

    def to_dict(self):
        return {
            'farmer_id': self.farmer_id,
            'full_name': self.full_name,
            'sex': self.sex,
            'age': self.age,
            'contact_number': self.contact_number,
            'address': self.address,
            'barangay': self.barangay,
            'municipality': self.municipality,
            'association_name': self.association_name,
            'farm_location': self.farm_location,
            'farm_coordinates': self.farm_coordinates,
            'farm_area_hectares': self.farm_area_hectares,
            'years_in_farming': self.years_in_farming,
            'type_of_abaca_planted': self.type_of_abaca_planted,
            'average_harvest_volume_kg': self.average_harvest_volume_kg,
            'harvest_frequency_weeks': self.harvest_frequency_weeks,
            'selling_price_range_min': self.selling_price_range_min,
            'selling_price_range_max': self.selling_price_range_max,
            'regular_buyer': self.regular_buyer,
            'income_per_cycle': self.income_per_cycle,
            'email': self.email,
            'profile_photo': self.profile_photo,
            'valid_id_photo': self.valid_id_photo,
            'verification_status': self.verification_status,
            'verified_by': self.verified_by,
            'verified_at': iso(self.verified_at),
            'rejection_reason': self.rejection_reason,
            'remarks': self.remarks,
            'is_active': self.is_active,
            'is_verified': self.is_verified,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
            'last_login': iso(self.last_login)
        }


class Buyer(VerificationMixin, db.Model):
    __tablename__ = 'buyers'

    buyer_id = db.Column(db.String(36), primary_key=True, default=new_id)
    business_name = db.Column(db.String(255), nullable=False)
    owner_name = db.Column(db.String(255), nullable=False)
    business_address = db.Column(db.Text)
    contact_number = db.Column(db.String(50))
    license_or_accreditation = db.Column(db.String(255))
    buying_schedule = db.Column(db.String(255))
    buying_location = db.Column(db.String(255))
    warehouse_address = db.Column(db.Text)
    accepted_quality_grades = db.Column(db.JSON)
    price_range_min = db.Column(db.Float)
    price_range_max = db.Column(db.Float)
    payment_terms = db.Column(db.String(255))
    partnered_associations = db.Column(db.JSON)
    profile_photo = db.Column(db.Text)
    valid_id_photo = db.Column(db.Text)
    business_permit_photo = db.Column(db.Text)

    @property
    def id(self):
        return self.buyer_id

    def to_dict(self):
        return {
            'buyer_id': self.buyer_id,
            'business_name': self.business_name,
            'owner_name': self.owner_name,
            'business_address': self.business_address,
            'contact_number': self.contact_number,
            'email': self.email,
            'license_or_accreditation': self.license_or_accreditation,
            'buying_schedule': self.buying_schedule,
            'buying_location': self.buying_location,
            'warehouse_address': self.warehouse_address,
            'accepted_quality_grades': self.accepted_quality_grades or [],
            'price_range_min': self.price_range_min,
            'price_range_max': self.price_range_max,
            'payment_terms': self.payment_terms,
            'partnered_associations': self.partnered_associations or [],
            'profile_photo': self.profile_photo,
            'valid_id_photo': self.valid_id_photo,
            'business_permit_photo': self.business_permit_photo,
            'verification_status': self.verification_status,
            'verified_by': self.verified_by,
            'verified_at': iso(self.verified_at),
            'rejection_reason': self.rejection_reason,
            'remarks': self.remarks,
            'is_active': self.is_active,
            'is_verified': self.is_verified,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
            'last_login': iso(self.last_login)
        }


class AssociationOfficer(VerificationMixin, db.Model):
    __tablename__ = 'association_officers'

    officer_id = db.Column(db.String(36), primary_key=True, default=new_id)
    full_name = db.Column(db.String(255), nullable=False)
    position = db.Column(db.String(255))
    association_name = db.Column(db.String(255))
    contact_number = db.Column(db.String(50))
    address = db.Column(db.Text)
    term_start_date = db.Column(db.Date)
    term_end_date = db.Column(db.Date)
    term_duration = db.Column(db.String(100))
    farmers_under_supervision = db.Column(db.Integer)
    profile_picture = db.Column(db.Text)
    valid_id_photo = db.Column(db.Text)
    is_super_admin = db.Column(db.Boolean, default=False)
    profile_completed = db.Column(db.Boolean, default=False)

    @property
    def id(self):
        return self.officer_id

    def to_dict(self):
        return {
            'officer_id': self.officer_id,
            'full_name': self.full_name,
            'email': self.email,
            'position': self.position,
            'association_name': self.association_name,
            'contact_number': self.contact_number,
            'address': self.address,
            'term_start_date': iso(self.term_start_date),
            'term_end_date': iso(self.term_end_date),
            'term_duration': self.term_duration,
            'farmers_under_supervision': self.farmers_under_supervision,
            'profile_picture': self.profile_picture,
            'valid_id_photo': self.valid_id_photo,
            'is_super_admin': self.is_super_admin,
            'profile_completed': self.profile_completed,
            'verification_status': self.verification_status,
            'verified_by': self.verified_by,
            'verified_at': iso(self.verified_at),
            'rejection_reason': self.rejection_reason,
            'remarks': self.remarks,
            'is_active': self.is_active,
            'is_verified': self.is_verified,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
            'last_login': iso(self.last_login)
        }


# user_type -> (model, primary key column name)
ACCOUNT_MODELS = {
    'farmer': (Farmer, 'farmer_id'),
    'buyer': (Buyer, 'buyer_id'),
    'officer': (AssociationOfficer, 'officer_id'),
}


# --- AUTH BOOKKEEPING ---

class RefreshToken(db.Model):
    __tablename__ = 'refresh_tokens'

    token_id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    user_type = db.Column(db.String(20), nullable=False)
    token_hash = db.Column(db.String(255), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    revoked = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class AuthAuditLog(db.Model):
    __tablename__ = 'auth_audit_log'

    log_id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36))
    user_type = db.Column(db.String(20))
    action = db.Column(db.String(50), nullable=False)
    success = db.Column(db.Boolean, nullable=False)
    ip_address = db.Column(db.String(50))
    user_agent = db.Column(db.Text)
    error_message = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


# --- ABACA OPERATIONS ---

HARVEST_STATUSES = ('Pending Verification', 'Verified', 'Rejected', 'In Inventory')
INVENTORY_STATUSES = ('Stocked', 'Reserved', 'Partially Distributed', 'Fully Distributed', 'Damaged')
SEEDLING_STATUSES = ('distributed', 'planted', 'damaged', 'replanted')
SALES_REPORT_STATUSES = ('pending', 'approved', 'rejected')


class Harvest(db.Model):
    __tablename__ = 'harvests'

    harvest_id = db.Column(db.String(36), primary_key=True, default=new_id)
    farmer_id = db.Column(db.String(36), db.ForeignKey('farmers.farmer_id', ondelete='CASCADE'), nullable=False)
    farmer = db.relationship('Farmer', backref=db.backref('harvests', cascade='all, delete-orphan'))
    harvest_date = db.Column(db.Date, nullable=False)
    municipality = db.Column(db.String(255))
    barangay = db.Column(db.String(255))
    abaca_variety = db.Column(db.String(255))
    area_hectares = db.Column(db.Float)
    dry_fiber_output_kg = db.Column(db.Float, nullable=False)
    fiber_grade = db.Column(db.String(50))
    remarks = db.Column(db.Text)
    status = db.Column(db.String(50), default='Pending Verification')
    verification_notes = db.Column(db.Text)
    verified_by = db.Column(db.String(36))
    verified_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'harvest_id': self.harvest_id,
            'farmer_id': self.farmer_id,
            'farmer_name': self.farmer.full_name if self.farmer else None,
            'harvest_date': iso(self.harvest_date),
            'municipality': self.municipality,
            'barangay': self.barangay,
            'abaca_variety': self.abaca_variety,
            'area_hectares': self.area_hectares,
            'dry_fiber_output_kg': self.dry_fiber_output_kg,
            'fiber_grade': self.fiber_grade,
            'remarks': self.remarks,
            'status': self.status,
            'verification_notes': self.verification_notes,
            'verified_by': self.verified_by,
            'verified_at': iso(self.verified_at),
            'created_at': iso(self.created_at)
        }


class InventoryItem(db.Model):
    __tablename__ = 'inventory'

    inventory_id = db.Column(db.String(36), primary_key=True, default=new_id)
    harvest_id = db.Column(db.String(36), db.ForeignKey('harvests.harvest_id', ondelete='CASCADE'), nullable=False)
    harvest = db.relationship('Harvest', backref=db.backref('inventory_items', cascade='all, delete-orphan'))
    stock_weight_kg = db.Column(db.Float, nullable=False)
    current_stock_kg = db.Column(db.Float, nullable=False)
    total_distributed_kg = db.Column(db.Float, default=0)
    fiber_grade = db.Column(db.String(50))
    fiber_quality_rating = db.Column(db.String(50))
    storage_location = db.Column(db.String(255))
    status = db.Column(db.String(50), default='Stocked')
    remarks = db.Column(db.Text)
    added_by = db.Column(db.String(36))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        harvest = self.harvest
        return {
            'inventory_id': self.inventory_id,
            'harvest_id': self.harvest_id,
            'stock_weight_kg': self.stock_weight_kg,
            'current_stock_kg': self.current_stock_kg,
            'total_distributed_kg': self.total_distributed_kg or 0,
            'fiber_grade': self.fiber_grade,
            'fiber_quality_rating': self.fiber_quality_rating,
            'storage_location': self.storage_location,
            'status': self.status,
            'remarks': self.remarks,
            'created_at': iso(self.created_at),
            'harvests': {
                'farmer_name': harvest.farmer.full_name if harvest.farmer else None,
                'municipality': harvest.municipality,
                'harvest_date': iso(harvest.harvest_date),
                'abaca_variety': harvest.abaca_variety
            } if harvest else None
        }


class SeedlingDistribution(db.Model):
    __tablename__ = 'seedlings'

    seedling_id = db.Column(db.String(36), primary_key=True, default=new_id)
    variety = db.Column(db.String(255), nullable=False)
    source_supplier = db.Column(db.String(255))
    quantity_distributed = db.Column(db.Integer, nullable=False)
    date_distributed = db.Column(db.Date, nullable=False)
    recipient_farmer_id = db.Column(db.String(36), db.ForeignKey('farmers.farmer_id', ondelete='SET NULL'))
    recipient_farmer = db.relationship('Farmer')
    recipient_association = db.Column(db.String(255))
    remarks = db.Column(db.Text)
    status = db.Column(db.String(50), default='distributed')
    distributed_by = db.Column(db.String(36), db.ForeignKey('association_officers.officer_id', ondelete='SET NULL'))
    distributor = db.relationship('AssociationOfficer')
    seedling_photo = db.Column(db.Text)
    packaging_photo = db.Column(db.Text)
    quality_photo = db.Column(db.Text)
    planting_date = db.Column(db.Date)
    planting_location = db.Column(db.String(255))
    planting_photo_1 = db.Column(db.Text)
    planting_photo_2 = db.Column(db.Text)
    planting_photo_3 = db.Column(db.Text)
    planting_notes = db.Column(db.Text)
    planted_by = db.Column(db.String(36))
    planted_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        farmer = self.recipient_farmer
        officer = self.distributor
        return {
            'seedling_id': self.seedling_id,
            'variety': self.variety,
            'source_supplier': self.source_supplier,
            'quantity_distributed': self.quantity_distributed,
            'date_distributed': iso(self.date_distributed),
            'recipient_farmer_id': self.recipient_farmer_id,
            'recipient_association': self.recipient_association,
            'remarks': self.remarks,
            'status': self.status,
            'distributed_by': self.distributed_by,
            'seedling_photo': self.seedling_photo,
            'packaging_photo': self.packaging_photo,
            'quality_photo': self.quality_photo,
            'planting_date': iso(self.planting_date),
            'planting_location': self.planting_location,
            'planting_photo_1': self.planting_photo_1,
            'planting_photo_2': self.planting_photo_2,
            'planting_photo_3': self.planting_photo_3,
            'planting_notes': self.planting_notes,
            'planted_by': self.planted_by,
            'planted_at': iso(self.planted_at),
            'created_at': iso(self.created_at),
            'farmers': {
                'farmer_id': farmer.farmer_id,
                'full_name': farmer.full_name,
                'email': farmer.email,
                'association_name': farmer.association_name
            } if farmer else None,
            'association_officers': {
                'officer_id': officer.officer_id,
                'full_name': officer.full_name
            } if officer else None
        }


class SalesReport(db.Model):
    __tablename__ = 'sales_reports'

    report_id = db.Column(db.String(36), primary_key=True, default=new_id)
    farmer_id = db.Column(db.String(36), db.ForeignKey('farmers.farmer_id', ondelete='CASCADE'), nullable=False)
    farmer = db.relationship('Farmer', backref=db.backref('sales_reports', cascade='all, delete-orphan'))
    buyer_company_name = db.Column(db.String(255), nullable=False)
    quantity_sold = db.Column(db.Float, nullable=False)
    price_per_kg = db.Column(db.Float)
    total_amount = db.Column(db.Float)
    sale_date = db.Column(db.Date)
    fiber_grade = db.Column(db.String(50))
    payment_method = db.Column(db.String(100))
    remarks = db.Column(db.Text)
    status = db.Column(db.String(20), default='pending')
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)
    reviewed_by = db.Column(db.String(36))
    reviewed_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)

    def to_dict(self):
        return {
            'report_id': self.report_id,
            'farmer_id': self.farmer_id,
            'buyer_company_name': self.buyer_company_name,
            'quantity_sold': self.quantity_sold,
            'price_per_kg': self.price_per_kg,
            'total_amount': self.total_amount,
            'sale_date': iso(self.sale_date),
            'fiber_grade': self.fiber_grade,
            'payment_method': self.payment_method,
            'remarks': self.remarks,
            'status': self.status,
            'submitted_at': iso(self.submitted_at),
            'reviewed_by': self.reviewed_by,
            'reviewed_at': iso(self.reviewed_at),
            'rejection_reason': self.rejection_reason,
            'farmers': {
                'full_name': self.farmer.full_name,
                'association_name': self.farmer.association_name
            } if self.farmer else None
        }


class SystemSetting(db.Model):
    __tablename__ = 'system_settings'

    id = db.Column(db.Integer, primary_key=True)
    maintenance_mode = db.Column(db.Boolean, default=False, nullable=False)
    maintenance_message = db.Column(db.Text)
    updated_by = db.Column(db.String(36))
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def current(cls):
        setting = cls.query.first()
        if setting is None:
            setting = cls(maintenance_mode=False)
            db.session.add(setting)
            db.session.commit()
        return setting

    def to_dict(self):
        return {
            'maintenanceMode': self.maintenance_mode,
            'message': self.maintenance_message,
            'updatedBy': self.updated_by,
            'updatedAt': iso(self.updated_at)
        }
