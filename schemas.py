"""Request payload parsing and public account mappings.

The SPA speaks camelCase; the database speaks snake_case. Everything that
crosses that boundary for accounts goes through the functions here.
"""
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import List, Optional

from models import iso

USER_TYPES = ('farmer', 'buyer', 'officer')


class PayloadError(ValueError):
    """Raised when a request body is missing required fields."""


def _blank_to_none(value):
    # Optional form fields arrive as '' or 0 when left empty
    if value in ('', 0, None):
        return None
    return value


def _require(data, *keys):
    if not isinstance(data, dict):
        raise PayloadError('Request body must be a JSON object')
    missing = [k for k in keys if not str(data.get(k) or '').strip()]
    if missing:
        raise PayloadError(f"Missing required fields: {', '.join(missing)}")
    not_text = [k for k in keys if not isinstance(data[k], str)]
    if not_text:
        raise PayloadError(f"Fields must be strings: {', '.join(not_text)}")


def _string_list(value):
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item not in ('', None)]


def parse_date(value):
    if not value:
        return None
    return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()


# --- REQUEST PAYLOADS ---

@dataclass
class FarmerRegistration:
    full_name: str
    email: str
    password: str
    sex: Optional[str] = None
    age: Optional[int] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    barangay: Optional[str] = None
    municipality: Optional[str] = None
    association_name: Optional[str] = None
    farm_location: Optional[str] = None
    farm_coordinates: Optional[str] = None
    farm_area_hectares: Optional[float] = None
    years_in_farming: Optional[int] = None
    type_of_abaca_planted: Optional[str] = None
    average_harvest_volume_kg: Optional[float] = None
    harvest_frequency_weeks: Optional[int] = None
    selling_price_range_min: Optional[float] = None
    selling_price_range_max: Optional[float] = None
    regular_buyer: Optional[str] = None
    income_per_cycle: Optional[float] = None
    profile_photo: Optional[str] = None
    valid_id_photo: Optional[str] = None
    remarks: Optional[str] = None

    @classmethod
    def from_json(cls, data):
        _require(data, 'fullName', 'email', 'password')
        return cls(
            full_name=data['fullName'].strip(),
            email=data['email'].strip().lower(),
            password=data['password'],
            sex=_blank_to_none(data.get('sex')),
            age=_blank_to_none(data.get('age')),
            contact_number=_blank_to_none(data.get('contactNumber')),
            address=_blank_to_none(data.get('address')),
            barangay=_blank_to_none(data.get('barangay')),
            municipality=_blank_to_none(data.get('municipality')),
            association_name=_blank_to_none(data.get('associationName')),
            farm_location=_blank_to_none(data.get('farmLocation')),
            farm_coordinates=_blank_to_none(data.get('farmCoordinates')),
            farm_area_hectares=_blank_to_none(data.get('farmAreaHectares')),
            years_in_farming=_blank_to_none(data.get('yearsInFarming')),
            type_of_abaca_planted=_blank_to_none(data.get('typeOfAbacaPlanted')),
            average_harvest_volume_kg=_blank_to_none(data.get('averageHarvestVolumeKg')),
            harvest_frequency_weeks=_blank_to_none(data.get('harvestFrequencyWeeks')),
            selling_price_range_min=_blank_to_none(data.get('sellingPriceRangeMin')),
            selling_price_range_max=_blank_to_none(data.get('sellingPriceRangeMax')),
            regular_buyer=_blank_to_none(data.get('regularBuyer')),
            income_per_cycle=_blank_to_none(data.get('incomePerCycle')),
            profile_photo=_blank_to_none(data.get('profilePhoto')),
            valid_id_photo=_blank_to_none(data.get('validIdPhoto')),
            remarks=_blank_to_none(data.get('remarks'))
        )

    def columns(self):
        """Row values for the farmers table, without the plaintext password."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != 'password'}


@dataclass
class BuyerRegistration:
    business_name: str
    owner_name: str
    email: str
    password: str
    business_address: Optional[str] = None
    contact_number: Optional[str] = None
    license_or_accreditation: Optional[str] = None
    buying_schedule: Optional[str] = None
    buying_location: Optional[str] = None
    warehouse_address: Optional[str] = None
    accepted_quality_grades: List[str] = field(default_factory=list)
    price_range_min: Optional[float] = None
    price_range_max: Optional[float] = None
    payment_terms: Optional[str] = None
    partnered_associations: List[str] = field(default_factory=list)
    profile_photo: Optional[str] = None
    valid_id_photo: Optional[str] = None
    business_permit_photo: Optional[str] = None
    remarks: Optional[str] = None

    @classmethod
    def from_json(cls, data):
        _require(data, 'businessName', 'ownerName', 'email', 'password')
        return cls(
            business_name=data['businessName'].strip(),
            owner_name=data['ownerName'].strip(),
            email=data['email'].strip().lower(),
            password=data['password'],
            business_address=_blank_to_none(data.get('businessAddress')),
            contact_number=_blank_to_none(data.get('contactNumber')),
            license_or_accreditation=_blank_to_none(data.get('licenseOrAccreditation')),
            buying_schedule=_blank_to_none(data.get('buyingSchedule')),
            buying_location=_blank_to_none(data.get('buyingLocation')),
            warehouse_address=_blank_to_none(data.get('warehouseAddress')),
            accepted_quality_grades=_string_list(data.get('acceptedQualityGrades')),
            price_range_min=_blank_to_none(data.get('priceRangeMin')),
            price_range_max=_blank_to_none(data.get('priceRangeMax')),
            payment_terms=_blank_to_none(data.get('paymentTerms')),
            partnered_associations=_string_list(data.get('partneredAssociations')),
            profile_photo=_blank_to_none(data.get('profilePhoto')),
            valid_id_photo=_blank_to_none(data.get('validIdPhoto')),
            business_permit_photo=_blank_to_none(data.get('businessPermitPhoto')),
            remarks=_blank_to_none(data.get('remarks'))
        )

    def columns(self):
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != 'password'}


@dataclass
class OfficerRegistration:
    full_name: str
    email: str
    password: str
    profile_picture: Optional[str] = None
    valid_id_photo: Optional[str] = None
    is_super_admin: bool = False
    position: Optional[str] = None
    association_name: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    term_duration: Optional[str] = None

    @classmethod
    def from_json(cls, data):
        _require(data, 'fullName', 'email', 'password')
        return cls(
            full_name=data['fullName'].strip(),
            email=data['email'].strip().lower(),
            password=data['password'],
            profile_picture=_blank_to_none(data.get('profilePhoto') or data.get('profilePicture')),
            valid_id_photo=_blank_to_none(data.get('validIdPhoto')),
            is_super_admin=data.get('isSuperAdmin') is True,
            position=_blank_to_none(data.get('position')),
            association_name=_blank_to_none(data.get('associationName')),
            contact_number=_blank_to_none(data.get('contactNumber')),
            address=_blank_to_none(data.get('address')),
            term_duration=_blank_to_none(data.get('termDuration'))
        )

    @property
    def is_public_registration(self):
        # Self-registered officers fill in their position and association up front
        return bool(self.position and self.association_name)


@dataclass
class LoginRequest:
    email: str
    password: str
    user_type: str

    @classmethod
    def from_json(cls, data):
        _require(data, 'email', 'password', 'userType')
        return cls(
            email=data['email'].strip().lower(),
            password=data['password'],
            user_type=data['userType']
        )


# --- PUBLIC ACCOUNT MAPPINGS ---

def farmer_public(farmer):
    return {
        'farmerId': farmer.farmer_id,
        'fullName': farmer.full_name,
        'sex': farmer.sex,
        'age': farmer.age,
        'contactNumber': farmer.contact_number,
        'address': farmer.address,
        'barangay': farmer.barangay,
        'municipality': farmer.municipality,
        'associationName': farmer.association_name,
        'farmLocation': farmer.farm_location,
        'farmCoordinates': farmer.farm_coordinates,
        'farmAreaHectares': farmer.farm_area_hectares,
        'yearsInFarming': farmer.years_in_farming,
        'typeOfAbacaPlanted': farmer.type_of_abaca_planted,
        'averageHarvestVolumeKg': farmer.average_harvest_volume_kg,
        'harvestFrequencyWeeks': farmer.harvest_frequency_weeks,
        'sellingPriceRangeMin': farmer.selling_price_range_min,
        'sellingPriceRangeMax': farmer.selling_price_range_max,
        'regularBuyer': farmer.regular_buyer,
        'incomePerCycle': farmer.income_per_cycle,
        'email': farmer.email,
        'profilePhoto': farmer.profile_photo,
        'validIdPhoto': farmer.valid_id_photo,
        'verificationStatus': farmer.verification_status,
        'verifiedBy': farmer.verified_by,
        'verifiedAt': iso(farmer.verified_at),
        'rejectionReason': farmer.rejection_reason,
        'remarks': farmer.remarks,
        'isActive': farmer.is_active,
        'isVerified': farmer.is_verified,
        'createdAt': iso(farmer.created_at),
        'updatedAt': iso(farmer.updated_at),
        'lastLogin': iso(farmer.last_login)
    }


def buyer_public(buyer):
    return {
        'buyerId': buyer.buyer_id,
        'businessName': buyer.business_name,
        'ownerName': buyer.owner_name,
        'businessAddress': buyer.business_address,
        'contactNumber': buyer.contact_number,
        'email': buyer.email,
        'licenseOrAccreditation': buyer.license_or_accreditation,
        'buyingSchedule': buyer.buying_schedule,
        'buyingLocation': buyer.buying_location,
        'warehouseAddress': buyer.warehouse_address,
        'acceptedQualityGrades': buyer.accepted_quality_grades or [],
        'priceRangeMin': buyer.price_range_min,
        'priceRangeMax': buyer.price_range_max,
        'paymentTerms': buyer.payment_terms,
        'partneredAssociations': buyer.partnered_associations or [],
        'profilePhoto': buyer.profile_photo,
        'validIdPhoto': buyer.valid_id_photo,
        'businessPermitPhoto': buyer.business_permit_photo,
        'verificationStatus': buyer.verification_status,
        'verifiedBy': buyer.verified_by,
        'verifiedAt': iso(buyer.verified_at),
        'rejectionReason': buyer.rejection_reason,
        'remarks': buyer.remarks,
        'isActive': buyer.is_active,
        'isVerified': buyer.is_verified,
        'createdAt': iso(buyer.created_at),
        'updatedAt': iso(buyer.updated_at),
        'lastLogin': iso(buyer.last_login)
    }


def officer_public(officer):
    return {
        'officerId': officer.officer_id,
        'fullName': officer.full_name,
        'position': officer.position,
        'associationName': officer.association_name,
        'contactNumber': officer.contact_number,
        'email': officer.email,
        'address': officer.address,
        'termStartDate': iso(officer.term_start_date),
        'termEndDate': iso(officer.term_end_date),
        'termDuration': officer.term_duration,
        'farmersUnderSupervision': officer.farmers_under_supervision,
        'profilePicture': officer.profile_picture,
        'remarks': officer.remarks,
        'isActive': officer.is_active,
        'isVerified': officer.is_verified,
        'isSuperAdmin': bool(officer.is_super_admin),
        'profileCompleted': bool(officer.profile_completed),
        'createdAt': iso(officer.created_at),
        'updatedAt': iso(officer.updated_at),
        'lastLogin': iso(officer.last_login)
    }


PUBLIC_MAPPERS = {
    'farmer': farmer_public,
    'buyer': buyer_public,
    'officer': officer_public,
}


def public_user(user_type, account):
    return PUBLIC_MAPPERS[user_type](account)


# --- OFFICER LIST SUMMARIES ---

def review_status(account):
    if account.is_verified:
        return 'verified'
    return 'pending' if account.is_active else 'rejected'


def farmer_summary(farmer):
    return {
        'id': farmer.farmer_id,
        'name': farmer.full_name,
        'email': farmer.email,
        'type': 'farmer',
        'status': review_status(farmer),
        'association': farmer.association_name,
        'municipality': farmer.municipality,
        'contactNumber': farmer.contact_number,
        'createdAt': iso(farmer.created_at)
    }


def buyer_summary(buyer):
    return {
        'id': buyer.buyer_id,
        'name': buyer.owner_name,
        'email': buyer.email,
        'type': 'buyer',
        'status': review_status(buyer),
        'businessName': buyer.business_name,
        'contactNumber': buyer.contact_number,
        'createdAt': iso(buyer.created_at)
    }


def officer_summary(officer):
    return {
        'id': officer.officer_id,
        'name': officer.full_name,
        'email': officer.email,
        'type': 'officer',
        'status': officer.verification_status or ('verified' if officer.is_verified else 'pending'),
        'associationName': officer.association_name,
        'position': officer.position,
        'contactNumber': officer.contact_number,
        'createdAt': iso(officer.created_at)
    }


# --- EDITABLE COLUMNS ---
# Ids, password hashes and review metadata are never writable through a
# plain update; they change only through register/verify/reject.

FARMER_EDITABLE = {
    'full_name', 'sex', 'age', 'contact_number', 'address', 'barangay', 'municipality',
    'association_name', 'farm_location', 'farm_coordinates', 'farm_area_hectares',
    'years_in_farming', 'type_of_abaca_planted', 'average_harvest_volume_kg',
    'harvest_frequency_weeks', 'selling_price_range_min', 'selling_price_range_max',
    'regular_buyer', 'income_per_cycle', 'profile_photo', 'valid_id_photo', 'remarks',
    'is_active'
}

BUYER_EDITABLE = {
    'business_name', 'owner_name', 'business_address', 'contact_number',
    'license_or_accreditation', 'buying_schedule', 'buying_location', 'warehouse_address',
    'accepted_quality_grades', 'price_range_min', 'price_range_max', 'payment_terms',
    'partnered_associations', 'profile_photo', 'valid_id_photo', 'business_permit_photo',
    'remarks', 'is_active'
}

OFFICER_EDITABLE = {
    'full_name', 'position', 'association_name', 'contact_number', 'address',
    'term_start_date', 'term_end_date', 'term_duration', 'farmers_under_supervision',
    'profile_picture', 'remarks', 'is_active'
}

SEEDLING_EDITABLE = {
    'variety', 'source_supplier', 'quantity_distributed', 'date_distributed',
    'recipient_farmer_id', 'recipient_association', 'remarks', 'status',
    'seedling_photo', 'packaging_photo', 'quality_photo'
}

INVENTORY_EDITABLE = {'status', 'storage_location', 'fiber_quality_rating', 'fiber_grade', 'remarks'}

DATE_COLUMNS = {'term_start_date', 'term_end_date', 'date_distributed', 'planting_date'}


def apply_updates(record, data, editable):
    """Copy whitelisted keys from a snake_case body onto a model instance."""
    changed = []
    for key, value in data.items():
        if key not in editable:
            continue
        if key in DATE_COLUMNS:
            value = parse_date(value)
        setattr(record, key, value)
        changed.append(key)
    return changed


# camelCase keys sent by the officer profile form
OFFICER_PROFILE_FIELDS = {
    'position': 'position',
    'associationName': 'association_name',
    'contactNumber': 'contact_number',
    'address': 'address',
    'termStartDate': 'term_start_date',
    'termEndDate': 'term_end_date',
    'termDuration': 'term_duration',
    'farmersUnderSupervision': 'farmers_under_supervision',
    'profilePicture': 'profile_picture',
}


def officer_profile_updates(data):
    updates = {}
    for key, column in OFFICER_PROFILE_FIELDS.items():
        if key in data:
            value = data[key]
            updates[column] = parse_date(value) if column in DATE_COLUMNS else (value if value != '' else None)
    return updates
