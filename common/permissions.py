from rest_framework import permissions

class HasIdentityToken(permissions.BasePermission):
    """
    Allow any request carrying a verified identity token, even before the
    user record exists (used by the session sync endpoint).
    """
    def has_permission(self, request, view):
        return bool(getattr(request, 'identity_claims', None))

class IsDoctorUser(permissions.BasePermission):
    """
    Custom permission to only allow doctor users.
    """
    message = 'Only doctors can access this resource.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_doctor)

class IsPharmacyUser(permissions.BasePermission):
    """
    Custom permission to only allow pharmacy users.
    """
    message = 'Only pharmacies can access this resource.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_pharmacy)
