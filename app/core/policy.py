"""
Verification Policy - Organization-wide rules passed explicitly into the engine
"""
from typing import Tuple

from pydantic import BaseModel, ConfigDict

from app.core.config import Settings
from app.services.window_validator import build_slot_catalogue


class VerificationPolicy(BaseModel):
    """Resolved once per request; never mutated by the services that receive it"""
    model_config = ConfigDict(frozen=True)

    window_slots: Tuple[str, ...]
    default_window_start: str
    default_window_end: str
    distance_threshold_km: float = 1.0
    max_file_size_bytes: int = 5 * 1024 * 1024

    @classmethod
    def from_settings(cls, settings: Settings) -> "VerificationPolicy":
        slots = build_slot_catalogue(
            settings.VERIFICATION_WINDOW_EARLIEST,
            settings.VERIFICATION_WINDOW_LATEST,
            settings.VERIFICATION_SLOT_MINUTES,
        )
        return cls(
            window_slots=tuple(slots),
            default_window_start=settings.DEFAULT_WINDOW_START,
            default_window_end=settings.DEFAULT_WINDOW_END,
            distance_threshold_km=settings.DISTANCE_THRESHOLD_KM,
            max_file_size_bytes=settings.EVIDENCE_MAX_FILE_SIZE_MB * 1024 * 1024,
        )
