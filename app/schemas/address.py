"""
Declared Address Schemas - structured (current) and legacy flat address shapes

Records created before structured inspections only carry the flat
street/city/state/zip columns. Reads resolve the shape once, here, with
structured fields taking precedence over flat fields.
"""
from typing import Optional, Union, Literal, Any, Annotated
from pydantic import BaseModel, Field


class StructuredAddress(BaseModel):
    """Address block of an inspection submission"""
    kind: Literal["structured"] = "structured"
    full_address: str
    landmark: Optional[str] = None
    city: str
    lga: Optional[str] = None  # sub-region
    state: str  # region


class LegacyAddress(BaseModel):
    """Flat address block of the legacy address form"""
    kind: Literal["legacy"] = "legacy"
    street: str
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    landmark: Optional[str] = None


DeclaredAddress = Annotated[Union[StructuredAddress, LegacyAddress], Field(discriminator="kind")]


def resolve_declared_address(record: Any) -> Optional[DeclaredAddress]:
    """
    Resolve which address shape a record carries

    Works on ORM rows and on schemas exposing the same av_* attributes.

    Returns:
        StructuredAddress, LegacyAddress, or None if no address was declared
    """
    details = getattr(record, "av_address_details", None) or {}
    if details.get("full_address"):
        return StructuredAddress(
            full_address=details["full_address"],
            landmark=details.get("landmark"),
            city=details.get("city") or "",
            lga=details.get("lga"),
            state=details.get("state") or "",
        )

    street = getattr(record, "av_street", None)
    if street:
        return LegacyAddress(
            street=street,
            city=getattr(record, "av_city", None),
            state=getattr(record, "av_state", None),
            zip=getattr(record, "av_zip", None),
            landmark=getattr(record, "av_landmark", None),
        )

    return None


def format_address_for_display(address: Optional[DeclaredAddress]) -> Optional[str]:
    """Render the best available single-line address for either shape"""
    if address is None:
        return None

    if address.kind == "structured":
        parts = [address.full_address, address.city, address.lga, address.state]
    else:
        parts = [address.street, address.city, address.state, address.zip]

    return ", ".join(part for part in parts if part)
