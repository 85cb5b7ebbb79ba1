import math
import time
from datetime import datetime

from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager, jwt_required, get_jwt_identity, get_jwt, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy import func

import auth_service
from auth_service import AuthError
from config import config
from models import (
    db, Farmer, Buyer, AssociationOfficer, Harvest, InventoryItem,
    SeedlingDistribution, SalesReport, SystemSetting,
    SALES_REPORT_STATUSES, SEEDLING_STATUSES, INVENTORY_STATUSES
)
from notifications import mail, send_verification_notice
from permissions import (
    officer_required, farmer_required, buyer_required, super_admin_required,
    role_required, current_user_type
)
from schemas import (
    PayloadError, FarmerRegistration, BuyerRegistration, OfficerRegistration, LoginRequest,
    public_user, farmer_summary, buyer_summary, officer_summary, parse_date, apply_updates,
    officer_profile_updates, FARMER_EDITABLE, BUYER_EDITABLE, OFFICER_EDITABLE,
    SEEDLING_EDITABLE, INVENTORY_EDITABLE
)

# Paths reachable while maintenance mode is on
MAINTENANCE_EXEMPT_PREFIXES = ('/api/auth', '/api/maintenance')


def create_app(config_name='development'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    app.config['STARTED_AT'] = time.time()

    # Initialize extensions
    db.init_app(app)
    mail.init_app(app)

    CORS(app,
         resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}},
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"])

    jwt = JWTManager(app)

    # --- JSON ERROR RESPONSES ---

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({'error': 'Access token required'}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({'error': 'Invalid token'}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'error': 'Token has expired'}), 401

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'error': 'Method not allowed'}), 405

    # --- HELPER FUNCTIONS ---

    def client_info():
        return request.remote_addr, request.headers.get('User-Agent')

    def json_body():
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    def text_field(data, key):
        value = data.get(key)
        return value.strip() if isinstance(value, str) else ''

    def failure(message, e):
        db.session.rollback()
        app.logger.error(f"{message}: {e}")
        return jsonify({'error': message}), 500

    def finite_number(value):
        number = float(value)
        if not math.isfinite(number):
            raise ValueError('must be a finite number')
        return number

    def positive_number(value, cast=float):
        try:
            number = cast(value)
        except OverflowError:
            raise ValueError('must be a finite number')
        # nan and inf compare False against zero
        if not math.isfinite(number) or number <= 0:
            raise ValueError('must be greater than zero')
        return number

    # --- MAINTENANCE GATE ---

    @app.before_request
    def enforce_maintenance_mode():
        if request.method == 'OPTIONS' or not request.path.startswith('/api/'):
            return None
        if request.path.startswith(MAINTENANCE_EXEMPT_PREFIXES):
            return None

        setting = SystemSetting.query.first()
        if setting is None or not setting.maintenance_mode:
            return None

        # Officers keep working during maintenance
        try:
            verify_jwt_in_request(optional=True)
            if get_jwt().get('userType') == 'officer':
                return None
        except (PyJWTError, JWTExtendedException):
            app.logger.info('Rejected token during maintenance window')

        return jsonify({
            'error': setting.maintenance_message or 'The system is under maintenance. Please try again later.',
            'maintenance': True
        }), 503

    # ============ Service Routes ============

    @app.route('/')
    def index():
        return jsonify({'message': app.config['SERVICE_NAME']})

    @app.route('/health')
    def health():
        return jsonify({'status': 'OK', 'timestamp': datetime.utcnow().isoformat()}), 200

    # ============ Authentication Routes ============

    def _register(parser, register_fn, label):
        try:
            payload = parser(json_body())
            user = register_fn(payload, *client_info())
            return jsonify({'message': f'{label} registered successfully', 'user': user}), 201
        except PayloadError as e:
            return jsonify({'error': str(e)}), 400
        except AuthError as e:
            return jsonify({'error': e.message}), e.status_code
        except Exception as e:
            return failure(f'Failed to register {label.lower()}', e)

    @app.route('/api/auth/register/farmer', methods=['POST'])
    def register_farmer():
        return _register(FarmerRegistration.from_json, auth_service.register_farmer, 'Farmer')

    @app.route('/api/auth/register/buyer', methods=['POST'])
    def register_buyer():
        return _register(BuyerRegistration.from_json, auth_service.register_buyer, 'Buyer')

    @app.route('/api/auth/register/officer', methods=['POST'])
    def register_officer():
        def public_officer(data):
            # Super admin accounts are only created by another super admin
            payload = OfficerRegistration.from_json(data)
            payload.is_super_admin = False
            return payload
        return _register(public_officer, auth_service.register_officer, 'Officer')

    @app.route('/api/auth/login', methods=['POST'])
    def login():
        try:
            payload = LoginRequest.from_json(json_body())
            result = auth_service.login(payload, *client_info())
            return jsonify({'message': 'Login successful', **result}), 200
        except PayloadError as e:
            return jsonify({'error': str(e)}), 400
        except AuthError as e:
            return jsonify({'error': e.message}), e.status_code
        except Exception as e:
            return failure('Login failed', e)

    @app.route('/api/auth/refresh', methods=['POST'])
    def refresh():
        token = json_body().get('refreshToken')
        if not isinstance(token, str) or not token:
            return jsonify({'error': 'Refresh token is required'}), 400
        try:
            tokens = auth_service.refresh_tokens(token)
            return jsonify({'tokens': tokens}), 200
        except AuthError as e:
            return jsonify({'error': e.message}), e.status_code
        except Exception as e:
            return failure('Failed to refresh token', e)

    @app.route('/api/auth/logout', methods=['POST'])
    @jwt_required()
    def logout():
        try:
            auth_service.logout(get_jwt_identity(), current_user_type(), *client_info())
            return jsonify({'message': 'Logged out successfully'}), 200
        except Exception as e:
            return failure('Logout failed', e)

    @app.route('/api/auth/me', methods=['GET'])
    @jwt_required()
    def get_current_user():
        user_type = current_user_type()
        account = auth_service.get_account(user_type, get_jwt_identity())
        if account is None:
            return jsonify({'error': 'User not found'}), 404
        # The officer dashboard reads the raw profile columns as well
        return jsonify({**account.to_dict(), **public_user(user_type, account), 'userType': user_type}), 200

    # ============ User Management Routes (Officers) ============

    def _verify_account(account, label, key, sets_active, message):
        try:
            account.mark_verified(get_jwt_identity())
            if sets_active:
                account.is_active = True
            db.session.commit()
        except Exception as e:
            return failure(f'Failed to verify {label}', e)
        send_verification_notice(account, verified=True)
        return jsonify({'message': message, key: account.to_dict()}), 200

    def _reject_account(model, account_id, label, key, sets_active, message):
        reason = json_body().get('reason')
        if not isinstance(reason, str) or not reason.strip():
            return jsonify({'error': 'Rejection reason is required'}), 400

        account = db.get_or_404(model, account_id)
        try:
            account.mark_rejected(get_jwt_identity(), reason.strip())
            if sets_active:
                account.is_active = False
            db.session.commit()
        except Exception as e:
            return failure(f'Failed to reject {label}', e)
        send_verification_notice(account, verified=False, reason=reason.strip())
        return jsonify({'message': message, key: account.to_dict()}), 200

    def _update_account(model, account_id, editable, label, key):
        account = db.get_or_404(model, account_id)
        try:
            apply_updates(account, json_body(), editable)
            db.session.commit()
            return jsonify({'message': f'{label} updated successfully', key: account.to_dict()}), 200
        except ValueError as e:
            db.session.rollback()
            return jsonify({'error': f'Invalid value: {e}'}), 400
        except Exception as e:
            return failure(f'Failed to update {label.lower()}', e)

    def _delete_account(model, account_id, label):
        account = db.get_or_404(model, account_id)
        try:
            db.session.delete(account)
            db.session.commit()
            return jsonify({'message': f'{label} deleted successfully'}), 200
        except Exception as e:
            return failure(f'Failed to delete {label.lower()}', e)

    # --- Farmers ---

    @app.route('/api/users/farmers', methods=['GET'])
    @officer_required
    def get_farmers():
        try:
            farmers = Farmer.query.order_by(Farmer.created_at.desc()).all()
            return jsonify([farmer_summary(f) for f in farmers]), 200
        except Exception as e:
            return failure('Failed to fetch farmers', e)

    @app.route('/api/users/farmers/<farmer_id>', methods=['GET'])
    @officer_required
    def get_farmer(farmer_id):
        return jsonify(db.get_or_404(Farmer, farmer_id).to_dict()), 200

    @app.route('/api/users/farmers/<farmer_id>/verify', methods=['POST'])
    @officer_required
    def verify_farmer(farmer_id):
        farmer = db.get_or_404(Farmer, farmer_id)
        return _verify_account(farmer, 'farmer', 'farmer', True,
                               'Farmer verified successfully. They can now login to the system.')

    @app.route('/api/users/farmers/<farmer_id>/reject', methods=['POST'])
    @officer_required
    def reject_farmer(farmer_id):
        return _reject_account(Farmer, farmer_id, 'farmer', 'farmer', True,
                               'Farmer application rejected. They will be notified of the reason.')

    @app.route('/api/users/farmers/<farmer_id>', methods=['PUT'])
    @officer_required
    def update_farmer(farmer_id):
        return _update_account(Farmer, farmer_id, FARMER_EDITABLE, 'Farmer', 'farmer')

    @app.route('/api/users/farmers/<farmer_id>', methods=['DELETE'])
    @officer_required
    def delete_farmer(farmer_id):
        return _delete_account(Farmer, farmer_id, 'Farmer')

    # --- Buyers ---

    @app.route('/api/users/buyers', methods=['GET'])
    @officer_required
    def get_buyers():
        try:
            buyers = Buyer.query.order_by(Buyer.created_at.desc()).all()
            return jsonify([buyer_summary(b) for b in buyers]), 200
        except Exception as e:
            return failure('Failed to fetch buyers', e)

    @app.route('/api/users/buyers/<buyer_id>', methods=['GET'])
    @officer_required
    def get_buyer(buyer_id):
        return jsonify(db.get_or_404(Buyer, buyer_id).to_dict()), 200

    @app.route('/api/users/buyers/<buyer_id>/verify', methods=['POST'])
    @officer_required
    def verify_buyer(buyer_id):
        buyer = db.get_or_404(Buyer, buyer_id)
        return _verify_account(buyer, 'buyer', 'buyer', True,
                               'Buyer verified successfully. They can now login to the system.')

    @app.route('/api/users/buyers/<buyer_id>/reject', methods=['POST'])
    @officer_required
    def reject_buyer(buyer_id):
        return _reject_account(Buyer, buyer_id, 'buyer', 'buyer', True,
                               'Buyer application rejected. They will be notified of the reason.')

    @app.route('/api/users/buyers/<buyer_id>', methods=['PUT'])
    @officer_required
    def update_buyer(buyer_id):
        return _update_account(Buyer, buyer_id, BUYER_EDITABLE, 'Buyer', 'buyer')

    @app.route('/api/users/buyers/<buyer_id>', methods=['DELETE'])
    @officer_required
    def delete_buyer(buyer_id):
        return _delete_account(Buyer, buyer_id, 'Buyer')

    # --- Officers ---

    @app.route('/api/users/officers', methods=['GET'])
    @officer_required
    def get_officers():
        try:
            # Only self-registered officers go through review
            officers = AssociationOfficer.query.filter_by(profile_completed=True) \
                .order_by(AssociationOfficer.created_at.desc()).all()
            return jsonify([officer_summary(o) for o in officers]), 200
        except Exception as e:
            return failure('Failed to fetch officers', e)

    @app.route('/api/users/officers', methods=['POST'])
    @super_admin_required
    def create_officer():
        return _register(OfficerRegistration.from_json, auth_service.register_officer, 'Officer')

    @app.route('/api/users/officers/<officer_id>', methods=['GET'])
    @officer_required
    def get_officer(officer_id):
        return jsonify(db.get_or_404(AssociationOfficer, officer_id).to_dict()), 200

    @app.route('/api/users/officers/<officer_id>', methods=['PUT'])
    @officer_required
    def update_officer(officer_id):
        return _update_account(AssociationOfficer, officer_id, OFFICER_EDITABLE, 'Officer', 'officer')

    @app.route('/api/users/officers/<officer_id>/verify', methods=['POST'])
    @officer_required
    def verify_officer(officer_id):
        officer = db.get_or_404(AssociationOfficer, officer_id)
        return _verify_account(officer, 'officer', 'officer', False, 'Officer verified successfully')

    @app.route('/api/users/officers/<officer_id>/reject', methods=['POST'])
    @officer_required
    def reject_officer(officer_id):
        return _reject_account(AssociationOfficer, officer_id, 'officer', 'officer', False,
                               'Officer rejected successfully')

    @app.route('/api/users/officers/<officer_id>', methods=['DELETE'])
    @super_admin_required
    def delete_officer(officer_id):
        if officer_id == get_jwt_identity():
            return jsonify({'error': 'Cannot delete your own account'}), 400
        return _delete_account(AssociationOfficer, officer_id, 'Officer')

    # ============ MAO Routes ============

    @app.route('/api/mao/complete-profile', methods=['POST'])
    @officer_required
    def complete_profile():
        officer = db.get_or_404(AssociationOfficer, get_jwt_identity())
        try:
            updates = officer_profile_updates(json_body())
        except ValueError:
            return jsonify({'error': 'Invalid term date'}), 400

        try:
            for column, value in updates.items():
                setattr(officer, column, value)
            officer.profile_completed = True
            db.session.commit()
            return jsonify({'message': 'Profile completed successfully',
                            'officer': public_user('officer', officer)}), 200
        except Exception as e:
            return failure('Failed to complete profile', e)

    @app.route('/api/mao/farmers', methods=['GET'])
    @officer_required
    def get_verified_farmers():
        farmers = Farmer.query.filter_by(is_verified=True).order_by(Farmer.full_name.asc()).all()
        return jsonify([{
            'farmer_id': f.farmer_id,
            'full_name': f.full_name,
            'email': f.email,
            'association_name': f.association_name
        } for f in farmers]), 200

    @app.route('/api/mao/dashboard', methods=['GET'])
    @officer_required
    def get_dashboard_stats():
        def by_status(model):
            rows = db.session.query(model.is_verified, model.is_active, func.count()) \
                .group_by(model.is_verified, model.is_active).all()
            counts = {'total': 0, 'verified': 0, 'pending': 0, 'rejected': 0}
            for is_verified, is_active, count in rows:
                counts['total'] += count
                if is_verified:
                    counts['verified'] += count
                elif is_active:
                    counts['pending'] += count
                else:
                    counts['rejected'] += count
            return counts

        total_stock = db.session.query(func.coalesce(func.sum(InventoryItem.current_stock_kg), 0)).scalar()

        return jsonify({
            'farmers': by_status(Farmer),
            'buyers': by_status(Buyer),
            'pending_harvests': Harvest.query.filter_by(status='Pending Verification').count(),
            'total_stock_kg': float(total_stock or 0),
            'pending_sales_reports': SalesReport.query.filter_by(status='pending').count(),
            'seedlings_distributed': int(db.session.query(
                func.coalesce(func.sum(SeedlingDistribution.quantity_distributed), 0)).scalar() or 0)
        }), 200

    # ============ Harvest Routes ============

    @app.route('/api/harvests', methods=['POST'])
    @farmer_required
    def create_harvest():
        data = json_body()
        farmer = db.get_or_404(Farmer, get_jwt_identity())

        try:
            harvest_date = parse_date(data.get('harvest_date'))
            output = positive_number(data.get('dry_fiber_output_kg'))
            area = finite_number(data['area_hectares']) if data.get('area_hectares') not in (None, '') else None
        except (ValueError, TypeError):
            return jsonify({'error': 'A valid harvest_date and dry_fiber_output_kg are required'}), 400
        if harvest_date is None:
            return jsonify({'error': 'A valid harvest_date and dry_fiber_output_kg are required'}), 400

        try:
            harvest = Harvest(
                farmer_id=farmer.farmer_id,
                harvest_date=harvest_date,
                municipality=data.get('municipality') or farmer.municipality,
                barangay=data.get('barangay') or farmer.barangay,
                abaca_variety=data.get('abaca_variety') or farmer.type_of_abaca_planted,
                area_hectares=area,
                dry_fiber_output_kg=output,
                fiber_grade=data.get('fiber_grade'),
                remarks=data.get('remarks'),
                status='Pending Verification'
            )
            db.session.add(harvest)
            db.session.commit()
            return jsonify({'message': 'Harvest submitted for verification', 'harvest': harvest.to_dict()}), 201
        except Exception as e:
            return failure('Failed to submit harvest', e)

    @app.route('/api/harvests/my', methods=['GET'])
    @farmer_required
    def get_my_harvests():
        harvests = Harvest.query.filter_by(farmer_id=get_jwt_identity()) \
            .order_by(Harvest.harvest_date.desc()).all()
        return jsonify({'harvests': [h.to_dict() for h in harvests]}), 200

    @app.route('/api/harvests/mao/harvests', methods=['GET'])
    @officer_required
    def get_harvests_for_review():
        try:
            query = Harvest.query
            status = request.args.get('status')
            if status and status != 'all':
                query = query.filter(Harvest.status == status)
            harvests = query.order_by(Harvest.created_at.desc()).all()
            return jsonify({'harvests': [h.to_dict() for h in harvests]}), 200
        except Exception as e:
            return failure('Failed to fetch harvests', e)

    def _review_harvest(harvest_id, status):
        notes = json_body().get('verification_notes')
        if status == 'Rejected' and (not isinstance(notes, str) or not notes.strip()):
            return jsonify({'error': 'Rejection reason is required'}), 400

        harvest = db.get_or_404(Harvest, harvest_id)
        if harvest.status == 'In Inventory':
            return jsonify({'error': 'Harvest is already in inventory'}), 400

        try:
            harvest.status = status
            harvest.verification_notes = notes.strip() if isinstance(notes, str) and notes.strip() else None
            harvest.verified_by = get_jwt_identity()
            harvest.verified_at = datetime.utcnow()
            db.session.commit()
            return jsonify({'message': f'Harvest {status.lower()} successfully', 'harvest': harvest.to_dict()}), 200
        except Exception as e:
            return failure('Failed to update harvest', e)

    @app.route('/api/harvests/mao/harvests/<harvest_id>/verify', methods=['POST'])
    @officer_required
    def verify_harvest(harvest_id):
        return _review_harvest(harvest_id, 'Verified')

    @app.route('/api/harvests/mao/harvests/<harvest_id>/reject', methods=['POST'])
    @officer_required
    def reject_harvest(harvest_id):
        return _review_harvest(harvest_id, 'Rejected')

    @app.route('/api/harvests/<harvest_id>', methods=['DELETE'])
    @role_required('farmer', 'officer')
    def delete_harvest(harvest_id):
        harvest = db.get_or_404(Harvest, harvest_id)
        if current_user_type() == 'farmer':
            if harvest.farmer_id != get_jwt_identity():
                return jsonify({'error': 'Unauthorized'}), 403
            if harvest.status != 'Pending Verification':
                return jsonify({'error': 'Only pending harvests can be withdrawn'}), 400
        try:
            db.session.delete(harvest)
            db.session.commit()
            return jsonify({'message': 'Harvest deleted successfully'}), 200
        except Exception as e:
            return failure('Failed to delete harvest', e)

    # ============ Inventory Routes ============

    @app.route('/api/inventory/inventory', methods=['POST'])
    @officer_required
    def add_to_inventory():
        data = json_body()
        harvest_id = text_field(data, 'harvest_id')
        if not harvest_id:
            return jsonify({'error': 'harvest_id is required'}), 400

        harvest = db.get_or_404(Harvest, harvest_id)
        if harvest.status != 'Verified':
            return jsonify({'error': 'Only verified harvests can be added to inventory'}), 400

        try:
            weight = positive_number(data.get('stock_weight_kg') or harvest.dry_fiber_output_kg)
        except (ValueError, TypeError):
            return jsonify({'error': 'stock_weight_kg must be greater than zero'}), 400

        try:
            item = InventoryItem(
                harvest_id=harvest.harvest_id,
                stock_weight_kg=weight,
                current_stock_kg=weight,
                total_distributed_kg=0,
                fiber_grade=data.get('fiber_grade') or harvest.fiber_grade,
                fiber_quality_rating=data.get('fiber_quality_rating'),
                storage_location=data.get('storage_location'),
                remarks=data.get('remarks'),
                status='Stocked',
                added_by=get_jwt_identity()
            )
            harvest.status = 'In Inventory'
            db.session.add(item)
            db.session.commit()
            return jsonify({'message': 'Harvest added to inventory', 'inventory': item.to_dict()}), 201
        except Exception as e:
            return failure('Failed to add inventory item', e)

    @app.route('/api/inventory/inventory', methods=['GET'])
    @officer_required
    def get_inventory():
        try:
            query = InventoryItem.query
            status = request.args.get('status')
            if status and status != 'all':
                query = query.filter(InventoryItem.status == status)
            items = query.order_by(InventoryItem.created_at.desc()).all()
            return jsonify({'inventory': [i.to_dict() for i in items]}), 200
        except Exception as e:
            return failure('Failed to fetch inventory', e)

    @app.route('/api/inventory/inventory/statistics', methods=['GET'])
    @officer_required
    def get_inventory_statistics():
        try:
            total_items, total_stock, total_distributed = db.session.query(
                func.count(InventoryItem.inventory_id),
                func.coalesce(func.sum(InventoryItem.current_stock_kg), 0),
                func.coalesce(func.sum(InventoryItem.total_distributed_kg), 0)
            ).one()
            return jsonify({'statistics': {
                'total_inventory_items': total_items,
                'total_stock_kg': float(total_stock),
                'total_distributed_kg': float(total_distributed),
                'stocked_items': InventoryItem.query.filter_by(status='Stocked').count()
            }}), 200
        except Exception as e:
            return failure('Failed to fetch inventory statistics', e)

    @app.route('/api/inventory/inventory/<inventory_id>', methods=['PUT'])
    @officer_required
    def update_inventory(inventory_id):
        item = db.get_or_404(InventoryItem, inventory_id)
        data = json_body()
        if 'status' in data and data['status'] not in INVENTORY_STATUSES:
            return jsonify({'error': 'Invalid inventory status'}), 400
        try:
            apply_updates(item, data, INVENTORY_EDITABLE)
            db.session.commit()
            return jsonify({'message': 'Inventory updated', 'inventory': item.to_dict()}), 200
        except Exception as e:
            return failure('Failed to update inventory', e)

    @app.route('/api/inventory/inventory/<inventory_id>/distribute', methods=['POST'])
    @officer_required
    def distribute_inventory(inventory_id):
        item = db.get_or_404(InventoryItem, inventory_id)
        try:
            quantity = positive_number(json_body().get('quantity_kg'))
        except (ValueError, TypeError):
            return jsonify({'error': 'quantity_kg must be greater than zero'}), 400
        if quantity > item.current_stock_kg:
            return jsonify({'error': 'Quantity exceeds current stock'}), 400

        try:
            item.current_stock_kg = item.current_stock_kg - quantity
            item.total_distributed_kg = (item.total_distributed_kg or 0) + quantity
            item.status = 'Fully Distributed' if item.current_stock_kg <= 0 else 'Partially Distributed'
            db.session.commit()
            return jsonify({'message': 'Stock distributed', 'inventory': item.to_dict()}), 200
        except Exception as e:
            return failure('Failed to distribute stock', e)

    @app.route('/api/inventory/inventory/<inventory_id>', methods=['DELETE'])
    @officer_required
    def delete_inventory(inventory_id):
        item = db.get_or_404(InventoryItem, inventory_id)
        try:
            db.session.delete(item)
            db.session.commit()
            return jsonify({'message': 'Inventory item deleted'}), 200
        except Exception as e:
            return failure('Failed to delete inventory item', e)

    # ============ Seedling Distribution Routes ============

    @app.route('/api/seedlings/all', methods=['GET'])
    @officer_required
    def get_seedlings():
        try:
            query = SeedlingDistribution.query
            status = request.args.get('status')
            if status and status != 'all':
                query = query.filter(SeedlingDistribution.status == status)
            seedlings = query.order_by(SeedlingDistribution.date_distributed.desc()).all()
            return jsonify([s.to_dict() for s in seedlings]), 200
        except Exception as e:
            return failure('Failed to fetch seedlings', e)

    @app.route('/api/seedlings', methods=['POST'])
    @officer_required
    def create_seedling_distribution():
        data = json_body()
        variety = text_field(data, 'variety')
        if not variety:
            return jsonify({'error': 'Variety is required'}), 400
        try:
            quantity = positive_number(data.get('quantity_distributed'), int)
            date_distributed = parse_date(data.get('date_distributed'))
        except (ValueError, TypeError):
            return jsonify({'error': 'A positive quantity and a valid distribution date are required'}), 400
        if date_distributed is None:
            return jsonify({'error': 'A positive quantity and a valid distribution date are required'}), 400

        recipient_id = data.get('recipient_farmer_id') or None
        if recipient_id and (not isinstance(recipient_id, str) or db.session.get(Farmer, recipient_id) is None):
            return jsonify({'error': 'Recipient farmer not found'}), 400

        status = data.get('status') or 'distributed'
        if status not in SEEDLING_STATUSES:
            return jsonify({'error': 'Invalid seedling status'}), 400

        try:
            seedling = SeedlingDistribution(
                variety=variety,
                source_supplier=data.get('source_supplier'),
                quantity_distributed=quantity,
                date_distributed=date_distributed,
                recipient_farmer_id=recipient_id,
                recipient_association=data.get('recipient_association'),
                remarks=data.get('remarks'),
                status=status,
                distributed_by=get_jwt_identity(),
                seedling_photo=data.get('seedling_photo'),
                packaging_photo=data.get('packaging_photo'),
                quality_photo=data.get('quality_photo')
            )
            db.session.add(seedling)
            db.session.commit()
            return jsonify({'message': 'Seedling distribution recorded', 'seedling': seedling.to_dict()}), 201
        except Exception as e:
            return failure('Failed to record seedling distribution', e)

    @app.route('/api/seedlings/<seedling_id>', methods=['PUT'])
    @officer_required
    def update_seedling_distribution(seedling_id):
        seedling = db.get_or_404(SeedlingDistribution, seedling_id)
        data = json_body()
        if 'status' in data and data['status'] not in SEEDLING_STATUSES:
            return jsonify({'error': 'Invalid seedling status'}), 400
        if 'variety' in data and not text_field(data, 'variety'):
            return jsonify({'error': 'Variety is required'}), 400
        if 'quantity_distributed' in data:
            try:
                data['quantity_distributed'] = positive_number(data['quantity_distributed'], int)
            except (ValueError, TypeError):
                return jsonify({'error': 'quantity_distributed must be greater than zero'}), 400
        recipient_id = data.get('recipient_farmer_id')
        if recipient_id and (not isinstance(recipient_id, str) or db.session.get(Farmer, recipient_id) is None):
            return jsonify({'error': 'Recipient farmer not found'}), 400
        try:
            apply_updates(seedling, data, SEEDLING_EDITABLE)
            db.session.commit()
            return jsonify({'message': 'Seedling distribution updated', 'seedling': seedling.to_dict()}), 200
        except ValueError:
            db.session.rollback()
            return jsonify({'error': 'Invalid distribution date'}), 400
        except Exception as e:
            return failure('Failed to update seedling distribution', e)

    @app.route('/api/seedlings/<seedling_id>', methods=['DELETE'])
    @officer_required
    def delete_seedling_distribution(seedling_id):
        seedling = db.get_or_404(SeedlingDistribution, seedling_id)
        try:
            db.session.delete(seedling)
            db.session.commit()
            return jsonify({'message': 'Seedling distribution deleted'}), 200
        except Exception as e:
            return failure('Failed to delete seedling distribution', e)

    @app.route('/api/seedlings/my', methods=['GET'])
    @farmer_required
    def get_my_seedlings():
        seedlings = SeedlingDistribution.query.filter_by(recipient_farmer_id=get_jwt_identity()) \
            .order_by(SeedlingDistribution.date_distributed.desc()).all()
        return jsonify([s.to_dict() for s in seedlings]), 200

    @app.route('/api/seedlings/<seedling_id>/plant', methods=['PUT'])
    @farmer_required
    def record_planting(seedling_id):
        seedling = db.get_or_404(SeedlingDistribution, seedling_id)
        if seedling.recipient_farmer_id != get_jwt_identity():
            return jsonify({'error': 'Unauthorized'}), 403

        data = json_body()
        try:
            planting_date = parse_date(data.get('planting_date'))
        except ValueError:
            planting_date = None
        if planting_date is None:
            return jsonify({'error': 'A valid planting_date is required'}), 400

        try:
            seedling.planting_date = planting_date
            seedling.planting_location = data.get('planting_location')
            seedling.planting_notes = data.get('planting_notes')
            seedling.planting_photo_1 = data.get('planting_photo_1')
            seedling.planting_photo_2 = data.get('planting_photo_2')
            seedling.planting_photo_3 = data.get('planting_photo_3')
            seedling.planted_by = get_jwt_identity()
            seedling.planted_at = datetime.utcnow()
            seedling.status = 'planted'
            db.session.commit()
            return jsonify({'message': 'Planting recorded', 'seedling': seedling.to_dict()}), 200
        except Exception as e:
            return failure('Failed to record planting', e)

    # ============ Sales Report Routes ============

    @app.route('/api/sales/reports', methods=['POST'])
    @farmer_required
    def submit_sales_report():
        data = json_body()
        buyer_company_name = text_field(data, 'buyer_company_name')
        if not buyer_company_name:
            return jsonify({'error': 'buyer_company_name is required'}), 400
        try:
            quantity = positive_number(data.get('quantity_sold'))
            price = finite_number(data['price_per_kg']) if data.get('price_per_kg') not in (None, '') else None
            total = finite_number(data['total_amount']) if data.get('total_amount') not in (None, '') else None
            sale_date = parse_date(data.get('sale_date'))
        except (ValueError, TypeError):
            return jsonify({'error': 'Invalid quantity, price or date'}), 400

        if total is None and price is not None:
            total = round(quantity * price, 2)

        try:
            report = SalesReport(
                farmer_id=get_jwt_identity(),
                buyer_company_name=buyer_company_name,
                quantity_sold=quantity,
                price_per_kg=price,
                total_amount=total,
                sale_date=sale_date,
                fiber_grade=data.get('fiber_grade'),
                payment_method=data.get('payment_method'),
                remarks=data.get('remarks'),
                status='pending'
            )
            db.session.add(report)
            db.session.commit()
            return jsonify({'success': True, 'report': report.to_dict()}), 201
        except Exception as e:
            return failure('Failed to submit sales report', e)

    @app.route('/api/sales/reports', methods=['GET'])
    @role_required('farmer', 'officer')
    def get_sales_reports():
        try:
            query = SalesReport.query
            if current_user_type() == 'farmer':
                query = query.filter_by(farmer_id=get_jwt_identity())
            status = request.args.get('status')
            if status and status != 'all':
                query = query.filter(SalesReport.status == status)
            reports = query.order_by(SalesReport.submitted_at.desc()).all()
            return jsonify({'success': True, 'reports': [r.to_dict() for r in reports]}), 200
        except Exception as e:
            return failure('Failed to fetch sales reports', e)

    @app.route('/api/sales/reports/<report_id>/status', methods=['PUT'])
    @officer_required
    def update_sales_report_status(report_id):
        data = json_body()
        status = data.get('status')
        if status not in SALES_REPORT_STATUSES:
            return jsonify({'error': 'Invalid report status'}), 400

        report = db.get_or_404(SalesReport, report_id)
        try:
            report.status = status
            report.reviewed_by = get_jwt_identity()
            report.reviewed_at = datetime.utcnow()
            report.rejection_reason = data.get('rejection_reason') if status == 'rejected' else None
            db.session.commit()
            return jsonify({'success': True, 'report': report.to_dict()}), 200
        except Exception as e:
            return failure('Failed to update sales report', e)

    @app.route('/api/sales/reports/<report_id>', methods=['DELETE'])
    @role_required('farmer', 'officer')
    def delete_sales_report(report_id):
        report = db.get_or_404(SalesReport, report_id)
        if current_user_type() == 'farmer':
            if report.farmer_id != get_jwt_identity():
                return jsonify({'error': 'Unauthorized'}), 403
            if report.status != 'pending':
                return jsonify({'error': 'Only pending reports can be withdrawn'}), 400
        try:
            db.session.delete(report)
            db.session.commit()
            return jsonify({'success': True, 'message': 'Sales report deleted'}), 200
        except Exception as e:
            return failure('Failed to delete sales report', e)

    # ============ Buyer Routes ============

    @app.route('/api/buyers/profile', methods=['GET'])
    @buyer_required
    def get_buyer_profile():
        buyer = db.get_or_404(Buyer, get_jwt_identity())
        return jsonify(public_user('buyer', buyer)), 200

    @app.route('/api/buyers/transactions', methods=['GET'])
    @buyer_required
    def get_buyer_transactions():
        buyer = db.get_or_404(Buyer, get_jwt_identity())
        try:
            reports = SalesReport.query.filter(
                func.lower(SalesReport.buyer_company_name) == buyer.business_name.lower(),
                SalesReport.status == 'approved'
            ).order_by(SalesReport.submitted_at.desc()).all()
            return jsonify([r.to_dict() for r in reports]), 200
        except Exception as e:
            return failure('Failed to fetch buyer transactions', e)

    # ============ Maintenance & Admin Routes ============

    @app.route('/api/maintenance/status', methods=['GET'])
    def get_maintenance_status():
        return jsonify(SystemSetting.current().to_dict()), 200

    @app.route('/api/maintenance', methods=['PUT'])
    @super_admin_required
    def set_maintenance_mode():
        data = json_body()
        if not isinstance(data.get('enabled'), bool):
            return jsonify({'error': 'enabled must be true or false'}), 400

        setting = SystemSetting.current()
        try:
            setting.maintenance_mode = data['enabled']
            setting.maintenance_message = data.get('message') or setting.maintenance_message
            setting.updated_by = get_jwt_identity()
            db.session.commit()
            app.logger.info(f"Maintenance mode set to {setting.maintenance_mode} by {setting.updated_by}")
            return jsonify(setting.to_dict()), 200
        except Exception as e:
            return failure('Failed to update maintenance mode', e)

    @app.route('/api/admin/health', methods=['GET'])
    @officer_required
    def admin_health():
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.utcnow().isoformat(),
            'uptime': round(time.time() - app.config['STARTED_AT'], 2)
        }), 200

    # Initialize DB tables if they don't exist
    with app.app_context():
        db.create_all()

    return app

if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=3001)
