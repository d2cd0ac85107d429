from typing import Optional

from atams import AtamsBaseSettings


class Settings(AtamsBaseSettings):
    """
    Application Settings

    Inherits from AtamsBaseSettings which includes:
    - DATABASE_URL (required)
    - ATLAS_SSO_URL, ATLAS_APP_CODE, ATLAS_ENCRYPTION_KEY, ATLAS_ENCRYPTION_IV
    - ENCRYPTION_ENABLED, ENCRYPTION_KEY, ENCRYPTION_IV (response encryption)
    - LOGGING_ENABLED, LOG_LEVEL, LOG_TO_FILE, LOG_FILE_PATH
    - CORS_ORIGINS, CORS_ALLOW_CREDENTIALS, CORS_ALLOW_METHODS, CORS_ALLOW_HEADERS
    - RATE_LIMIT_ENABLED, RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW
    - DEBUG

    All settings can be overridden via .env file or by redefining them here.
    """
    APP_NAME: str = "Address Verification Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Verification window catalogue (overnight, wraps past midnight)
    VERIFICATION_WINDOW_EARLIEST: str = "22:00"
    VERIFICATION_WINDOW_LATEST: str = "04:00"
    VERIFICATION_SLOT_MINUTES: int = 30
    DEFAULT_WINDOW_START: str = "22:00"
    DEFAULT_WINDOW_END: str = "04:00"

    # Distance flag threshold (km)
    DISTANCE_THRESHOLD_KM: float = 1.0

    # Geocoding provider
    GEOCODING_SERVICE_URL: str = "https://nominatim.openstreetmap.org/search"
    GEOCODING_USER_AGENT: str = "AddressVerification/1.0"
    GEOCODING_TIMEOUT_SECONDS: float = 10.0

    # Evidence object storage (S3-compatible)
    EVIDENCE_BUCKET: str = "address-verification-evidence"
    EVIDENCE_KEY_PREFIX: str = "inspections"
    EVIDENCE_PUBLIC_BASE_URL: Optional[str] = None
    EVIDENCE_MAX_FILE_SIZE_MB: int = 5
    AWS_REGION: str = "us-east-1"
    AWS_ENDPOINT_URL: Optional[str] = None


settings = Settings()
