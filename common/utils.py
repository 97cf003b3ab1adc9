import jwt
from datetime import timedelta
from functools import lru_cache
from urllib.parse import urlencode
from django.conf import settings
from django.utils import timezone

def generate_identity_token(uid, email=None, name=None, expires_in=None):
    """
    Generate an HS256 identity token shaped like the provider's ID tokens.
    Used by local development and the test-suite; production tokens are
    minted by the identity provider.
    """
    now = timezone.now()
    exp = now + timedelta(seconds=expires_in if expires_in is not None else settings.JWT_EXPIRATION_DELTA)

    payload = {
        'sub': uid,
        'user_id': uid,
        'email': email,
        'name': name,
        'exp': int(exp.timestamp()),
        'iat': int(now.timestamp()),
    }
    if settings.IDENTITY_AUDIENCE:
        payload['aud'] = settings.IDENTITY_AUDIENCE
    if settings.IDENTITY_ISSUER:
        payload['iss'] = settings.IDENTITY_ISSUER

    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

@lru_cache(maxsize=4)
def _jwks_client(url):
    return jwt.PyJWKClient(url)

def decode_identity_token(token):
    """
    Decode an identity-provider ID token and return its claims.
    Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError.
    """
    options = {'verify_aud': bool(settings.IDENTITY_AUDIENCE)}
    kwargs = {}
    if settings.IDENTITY_AUDIENCE:
        kwargs['audience'] = settings.IDENTITY_AUDIENCE
    if settings.IDENTITY_ISSUER:
        kwargs['issuer'] = settings.IDENTITY_ISSUER

    if settings.IDENTITY_JWKS_URL:
        try:
            signing_key = _jwks_client(settings.IDENTITY_JWKS_URL).get_signing_key_from_jwt(token)
        except jwt.PyJWKClientError as e:
            raise jwt.InvalidTokenError(str(e))
        return jwt.decode(token, signing_key.key, algorithms=['RS256'], options=options, **kwargs)

    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM], options=options, **kwargs)

def get_identity_uid(payload):
    """
    Provider uid carried by the token claims
    """
    return payload.get('user_id') or payload.get('sub')

def actor_name(user):
    """
    Name recorded in created_by / updated_by
    """
    if not user or not getattr(user, 'is_authenticated', False):
        return None
    return user.email or user.identity_uid

def soft_delete_object(obj, user):
    """
    Soft delete an object by setting deleted_at timestamp
    """
    obj.deleted_at = timezone.now()
    if hasattr(obj, 'updated_by'):
        obj.updated_by = actor_name(user)
    obj.save()

def calculate_age(birth_date):
    """
    Calculate age from birth date
    """
    today = timezone.localdate()
    return today.year - birth_date.year - ((today.month, today.day) < (birth_date.month, birth_date.day))

def normalize_medicine_name(name):
    """
    Collapse whitespace so stock lookups match what was typed or extracted
    """
    return ' '.join((name or '').split())

def build_prescription_link(appointment):
    """
    Frontend route that opens the prescription composer for an accepted appointment
    """
    query = urlencode({
        'appointmentId': str(appointment.id),
        'patientId': str(appointment.patient_id),
        'patientName': appointment.patient.user.name,
    })
    return f"/doctor/prescription?{query}"
