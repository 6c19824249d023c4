# siteapi/auth/__init__.py
from .authenticator import (
    AccessResult,
    AuthResult,
    authenticate_api_request,
    has_permission,
    validate_site_access,
)
from .keys import extract_api_key, generate_api_key, hash_api_key
from .scopes import (
    Permission,
    PermissionSet,
    RestrictedTo,
    SiteScope,
    Unrestricted,
    site_scope_from_allowed_sites,
)

__all__ = [
    "AccessResult",
    "AuthResult",
    "authenticate_api_request",
    "has_permission",
    "validate_site_access",
    "extract_api_key",
    "generate_api_key",
    "hash_api_key",
    "Permission",
    "PermissionSet",
    "RestrictedTo",
    "SiteScope",
    "Unrestricted",
    "site_scope_from_allowed_sites",
]
