"""Registration, login and token lifecycle for farmers, buyers and officers.

Passwords are hashed with bcrypt at a fixed cost so hashes written by the
previous portal keep verifying. Tokens are flask-jwt-extended JWTs whose
identity is the account id; the account type travels as the ``userType``
claim. Refresh tokens are persisted (hashed) in ``refresh_tokens`` so they
can be rotated and revoked.
"""
import hashlib
from datetime import datetime

import bcrypt
from flask import current_app
from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from models import db, ACCOUNT_MODELS, Farmer, Buyer, AssociationOfficer, RefreshToken, AuthAuditLog
from schemas import public_user

INVALID_CREDENTIALS = 'Invalid email or password'
DEFAULT_REJECTION_REASON = 'Your application did not meet our requirements.'


class AuthError(Exception):
    def __init__(self, message, status_code=401):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# --- HELPERS ---

def hash_password(password):
    rounds = current_app.config.get('BCRYPT_LOG_ROUNDS', 10)
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds)).decode('utf-8')


def check_password(password, password_hash):
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        current_app.logger.error('Stored password hash is not a valid bcrypt hash')
        return False


def hash_token(token):
    # bcrypt only reads the first 72 bytes, which every JWT for the same
    # account shares, so refresh tokens are digested whole instead
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def log_auth_event(user_id, user_type, action, success, ip_address=None, user_agent=None, error_message=None):
    try:
        db.session.add(AuthAuditLog(
            user_id=user_id,
            user_type=user_type,
            action=action,
            success=success,
            ip_address=ip_address,
            user_agent=user_agent,
            error_message=error_message
        ))
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to log auth event: {e}")


def generate_tokens(user_id, user_type, email, is_super_admin=None):
    claims = {'userType': user_type, 'email': email}
    if user_type == 'officer':
        claims['isSuperAdmin'] = bool(is_super_admin)

    return {
        'accessToken': create_access_token(identity=str(user_id), additional_claims=claims),
        'refreshToken': create_refresh_token(identity=str(user_id), additional_claims=claims)
    }


def _refresh_expiry():
    return datetime.utcnow() + current_app.config['REFRESH_TOKEN_TTL']


def _ensure_email_available(model, user_type, email, ip_address, user_agent):
    if model.query.filter_by(email=email).first():
        log_auth_event(None, user_type, 'register', False, ip_address, user_agent, 'Email already exists')
        raise AuthError('Email already registered', 400)


# --- REGISTRATION ---

def register_farmer(payload, ip_address=None, user_agent=None):
    _ensure_email_available(Farmer, 'farmer', payload.email, ip_address, user_agent)

    farmer = Farmer(**payload.columns())
    farmer.password_hash = hash_password(payload.password)
    farmer.verification_status = 'pending'
    farmer.is_verified = False
    farmer.is_active = True

    db.session.add(farmer)
    db.session.commit()

    log_auth_event(farmer.farmer_id, 'farmer', 'register', True, ip_address, user_agent)
    return public_user('farmer', farmer)


def register_buyer(payload, ip_address=None, user_agent=None):
    _ensure_email_available(Buyer, 'buyer', payload.email, ip_address, user_agent)

    buyer = Buyer(**payload.columns())
    buyer.password_hash = hash_password(payload.password)
    buyer.verification_status = 'pending'
    buyer.is_verified = False
    buyer.is_active = True

    db.session.add(buyer)
    db.session.commit()

    log_auth_event(buyer.buyer_id, 'buyer', 'register', True, ip_address, user_agent)
    return public_user('buyer', buyer)


def register_officer(payload, ip_address=None, user_agent=None):
    """Create an officer account.

    Public sign-ups (position and association supplied) wait for review.
    Accounts created by an administrator are verified immediately and finish
    their profile on first login; super admins get a completed profile.
    """
    _ensure_email_available(AssociationOfficer, 'officer', payload.email, ip_address, user_agent)

    is_super_admin = payload.is_super_admin
    is_public = payload.is_public_registration

    officer = AssociationOfficer(
        full_name=payload.full_name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        profile_picture=payload.profile_picture,
        valid_id_photo=payload.valid_id_photo,
        is_super_admin=is_super_admin,
        position=payload.position or ('System Administrator' if is_super_admin else None),
        association_name=payload.association_name or (
            current_app.config['SUPER_ADMIN_ASSOCIATION'] if is_super_admin else None),
        contact_number=payload.contact_number,
        address=payload.address,
        term_duration=payload.term_duration,
        profile_completed=True if is_super_admin else is_public,
        is_active=True,
        verification_status='pending' if is_public else 'verified',
        is_verified=not is_public
    )

    db.session.add(officer)
    db.session.commit()

    log_auth_event(officer.officer_id, 'officer', 'register', True, ip_address, user_agent)
    return public_user('officer', officer)


# --- LOGIN ---

def _check_account_state(user, user_type, ip_address, user_agent):
    user_id = user.id

    if not user.is_active:
        log_auth_event(user_id, user_type, 'login', False, ip_address, user_agent, 'Account is inactive')
        raise AuthError('Account is inactive', 403)

    if not user.is_verified:
        log_auth_event(user_id, user_type, 'login', False, ip_address, user_agent, 'Account not verified')
        support = current_app.config['SUPPORT_EMAIL']
        if (user.verification_status or 'pending') == 'rejected':
            reason = user.rejection_reason or DEFAULT_REJECTION_REASON
            raise AuthError(
                f"Your account application was rejected. Reason: {reason}\n\n"
                f"Please contact {support} for assistance.", 403)
        raise AuthError(
            'Your account is pending verification. '
            'Please wait for our team to review your application. '
            'We will contact you via email or phone once verified. '
            'This usually takes 1-3 business days.', 403)


def _check_password(user, user_type, password, ip_address, user_agent):
    if not check_password(password, user.password_hash):
        log_auth_event(user.id, user_type, 'login', False, ip_address, user_agent, 'Invalid password')
        raise AuthError(INVALID_CREDENTIALS, 401)


def login(payload, ip_address=None, user_agent=None):
    user_type = payload.user_type
    if user_type not in ACCOUNT_MODELS:
        raise AuthError('Invalid user type', 400)

    model, _ = ACCOUNT_MODELS[user_type]
    user = model.query.filter_by(email=payload.email).first()

    if user is None:
        log_auth_event(None, user_type, 'login', False, ip_address, user_agent, 'User not found')
        raise AuthError(INVALID_CREDENTIALS, 401)

    if current_app.config.get('LOGIN_VERIFY_PASSWORD_FIRST'):
        _check_password(user, user_type, payload.password, ip_address, user_agent)
        _check_account_state(user, user_type, ip_address, user_agent)
    else:
        _check_account_state(user, user_type, ip_address, user_agent)
        _check_password(user, user_type, payload.password, ip_address, user_agent)

    tokens = generate_tokens(
        user.id, user_type, user.email,
        is_super_admin=getattr(user, 'is_super_admin', None)
    )

    user.last_login = datetime.utcnow()
    db.session.add(RefreshToken(
        user_id=user.id,
        user_type=user_type,
        token_hash=hash_token(tokens['refreshToken']),
        expires_at=_refresh_expiry()
    ))
    db.session.commit()

    log_auth_event(user.id, user_type, 'login', True, ip_address, user_agent)

    return {'user': public_user(user_type, user), 'tokens': tokens}


# --- TOKEN LIFECYCLE ---

def refresh_tokens(refresh_token):
    try:
        decoded = decode_token(refresh_token)
    except (PyJWTError, JWTExtendedException):
        raise AuthError('Invalid refresh token', 401)

    if decoded.get('type') != 'refresh':
        raise AuthError('Invalid refresh token', 401)

    user_id = decoded['sub']
    user_type = decoded.get('userType')

    stored = RefreshToken.query.filter(
        RefreshToken.user_id == user_id,
        RefreshToken.user_type == user_type,
        RefreshToken.token_hash == hash_token(refresh_token),
        RefreshToken.revoked.is_(False),
        RefreshToken.expires_at > datetime.utcnow()
    ).first()

    if stored is None:
        raise AuthError('Refresh token not found or revoked', 401)

    # Claims come from the current account row, not the presented token
    user = get_account(user_type, user_id)
    if user is None or not user.is_active or not user.is_verified:
        stored.revoked = True
        db.session.commit()
        raise AuthError('Account is no longer active', 401)

    tokens = generate_tokens(user.id, user_type, user.email, getattr(user, 'is_super_admin', None))

    stored.token_hash = hash_token(tokens['refreshToken'])
    stored.expires_at = _refresh_expiry()
    db.session.commit()

    return tokens


def logout(user_id, user_type, ip_address=None, user_agent=None):
    RefreshToken.query.filter_by(user_id=user_id, user_type=user_type).update(
        {'revoked': True}, synchronize_session=False)
    db.session.commit()

    log_auth_event(user_id, user_type, 'logout', True, ip_address, user_agent)


def get_account(user_type, user_id):
    if user_type not in ACCOUNT_MODELS:
        return None
    model, _ = ACCOUNT_MODELS[user_type]
    return db.session.get(model, user_id)
