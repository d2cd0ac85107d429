"""
API Dependencies
Provides authentication, authorization and verification collaborators
"""
from atams.sso import create_atlas_client, create_auth_dependencies

from app.core.config import settings
from app.core.policy import VerificationPolicy
from app.services.evidence_service import EvidenceUploadService
from app.services.geocoding_service import GeocodingService
from app.services.storage_service import storage_client
from app.services.verification_service import VerificationService

# Initialize Atlas SSO client using factory
atlas_client = create_atlas_client(settings)

# Create auth dependencies using factory
get_current_user, require_auth, require_min_role_level, require_role_level = create_auth_dependencies(atlas_client)

verification_service = VerificationService(
    geocoder=GeocodingService(
        base_url=settings.GEOCODING_SERVICE_URL,
        user_agent=settings.GEOCODING_USER_AGENT,
        timeout=settings.GEOCODING_TIMEOUT_SECONDS,
    ),
    evidence=EvidenceUploadService(storage_client, key_prefix=settings.EVIDENCE_KEY_PREFIX),
)


def get_verification_policy() -> VerificationPolicy:
    """Organization verification policy, resolved once per request"""
    return VerificationPolicy.from_settings(settings)


def get_verification_service() -> VerificationService:
    return verification_service


# Export for use in endpoints
__all__ = [
    "atlas_client",
    "get_current_user",
    "require_auth",
    "require_min_role_level",
    "require_role_level",
    "get_verification_policy",
    "get_verification_service",
]
