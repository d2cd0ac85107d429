"""
Distance Classifier - Great-circle distance and internal risk tiers
"""
import math
from typing import NamedTuple, Optional

EARTH_RADIUS_KM = 6371.0

VERIFIED_MAX_METRES = 100
REVIEW_MAX_METRES = 500

RISK_VERIFIED = "VERIFIED"
RISK_REVIEW = "REVIEW"
RISK_FLAGGED = "FLAGGED"


class RiskAssessment(NamedTuple):
    tier: str
    reason: str


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two coordinates using Haversine formula

    Returns:
        float: Distance in kilometres, rounded to 2 decimal places
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return round(EARTH_RADIUS_KM * c, 2)


def classify_risk(distance_m: float) -> RiskAssessment:
    """
    Classify a distance in metres into an internal risk tier

    <= 100m -> VERIFIED, <= 500m -> REVIEW, otherwise FLAGGED.
    """
    rounded = f"{distance_m:.0f}"

    if distance_m <= VERIFIED_MAX_METRES:
        return RiskAssessment(RISK_VERIFIED, f"GPS within {rounded}m of declared address")
    if distance_m <= REVIEW_MAX_METRES:
        return RiskAssessment(
            RISK_REVIEW,
            f"GPS is {rounded}m from declared address, within review range"
        )
    return RiskAssessment(
        RISK_FLAGGED,
        f"GPS is {rounded}m from declared address, exceeds {REVIEW_MAX_METRES}m threshold"
    )


def classify_distance_km(distance_km: Optional[float]) -> Optional[RiskAssessment]:
    """Classify a kilometre distance; None when no distance could be computed"""
    if distance_km is None:
        return None
    return classify_risk(distance_km * 1000)


def exceeds_threshold(distance_km: Optional[float], threshold_km: float) -> bool:
    """Boolean distance flag used for lightweight admin triage"""
    if distance_km is None:
        return False
    return distance_km > threshold_km
