"""
Evidence Upload Service - Validate and store inspection photographs

Pipeline: validate every file, upload (named slots in order, additional
images concurrently), then re-check the required slots against what was
actually stored. Any failed upload aborts the whole submission.
"""
import asyncio
import uuid
from typing import List, Optional

from pydantic import BaseModel, Field

from atams.exceptions import BadRequestException
from atams.logging import get_logger
from app.core.exceptions import EvidenceUploadException
from app.schemas.verification import EvidenceImages
from app.services.storage_service import ObjectStorageClient

logger = get_logger(__name__)

ALLOWED_MIME_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}
MAX_ADDITIONAL_IMAGES = 5
MAX_TOTAL_FILES = 8

# form field -> storage folder
SLOT_FOLDERS = {
    "frontView": "front_view",
    "gateView": "gate_view",
    "streetView": "street_view",
    "additionalImages": "additional",
}


class EvidenceFile(BaseModel):
    filename: Optional[str] = None
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class EvidenceBundle(BaseModel):
    """Files received for one inspection, keyed by form slot"""
    front_view: Optional[EvidenceFile] = None
    gate_view: Optional[EvidenceFile] = None
    street_view: Optional[EvidenceFile] = None
    additional_images: List[EvidenceFile] = Field(default_factory=list)

    def all_files(self) -> List[EvidenceFile]:
        named = [self.front_view, self.gate_view, self.street_view]
        return [f for f in named if f is not None] + list(self.additional_images)


def missing_required_images(
    front_view: Optional[object],
    street_view: Optional[object],
    gate_view: Optional[object],
    fence_or_gate_present: bool
) -> List[str]:
    missing = []
    if not front_view:
        missing.append("Front View of Building (frontView) is required")
    if not street_view:
        missing.append("Street View (streetView) is required")
    if fence_or_gate_present and not gate_view:
        missing.append("Gate/Fence View (gateView) is required when fence or gate is present")
    return missing


class EvidenceUploadService:
    def __init__(self, storage: ObjectStorageClient, key_prefix: str = "inspections") -> None:
        self.storage = storage
        self.key_prefix = key_prefix.strip("/")

    def validate(self, bundle: EvidenceBundle, max_file_size_bytes: int) -> None:
        """
        Validate file types, sizes and counts before anything is uploaded

        Raises:
            BadRequestException: On the first violated limit
        """
        files = bundle.all_files()

        if len(files) > MAX_TOTAL_FILES:
            raise BadRequestException(f"Too many files. Maximum is {MAX_TOTAL_FILES} images per submission.")
        if len(bundle.additional_images) > MAX_ADDITIONAL_IMAGES:
            raise BadRequestException(
                f"Too many additional images. Maximum is {MAX_ADDITIONAL_IMAGES} per submission."
            )

        max_mb = max_file_size_bytes // (1024 * 1024)
        for f in files:
            if f.content_type not in ALLOWED_MIME_TYPES:
                raise BadRequestException(
                    f'Invalid file type "{f.content_type}". Only JPG, PNG, and WebP images are accepted.'
                )
            if f.size > max_file_size_bytes:
                raise BadRequestException(f"File too large. Maximum size is {max_mb}MB per image.")

    def ensure_required(self, front_view, street_view, gate_view, fence_or_gate_present: bool) -> None:
        missing = missing_required_images(front_view, street_view, gate_view, fence_or_gate_present)
        if missing:
            raise BadRequestException(". ".join(missing))

    def build_key(self, employee_id: int, slot: str, content_type: str) -> str:
        """Object key: {prefix}/{employee_id}/{folder}/{uuid}.{ext}"""
        folder = SLOT_FOLDERS.get(slot, "additional")
        ext = ALLOWED_MIME_TYPES.get(content_type, "jpg")
        return f"{self.key_prefix}/{employee_id}/{folder}/{uuid.uuid4().hex}.{ext}"

    async def _upload_one(self, employee_id: int, slot: str, evidence: EvidenceFile) -> str:
        key = self.build_key(employee_id, slot, evidence.content_type)
        url = await self.storage.upload_file(key, evidence.content, evidence.content_type)
        if url is None:
            logger.error(f"Evidence upload failed for employee {employee_id} slot {slot}")
            raise EvidenceUploadException(details={"slot": slot})
        return url

    async def upload(self, employee_id: int, bundle: EvidenceBundle) -> EvidenceImages:
        """
        Upload every provided file and return the stored URLs

        Raises:
            EvidenceUploadException: If any single upload fails
        """
        images = EvidenceImages()

        if bundle.front_view:
            images.front_view = await self._upload_one(employee_id, "frontView", bundle.front_view)
        if bundle.gate_view:
            images.gate_view = await self._upload_one(employee_id, "gateView", bundle.gate_view)
        if bundle.street_view:
            images.street_view = await self._upload_one(employee_id, "streetView", bundle.street_view)

        if bundle.additional_images:
            urls = await asyncio.gather(*[
                self._upload_one(employee_id, "additionalImages", f)
                for f in bundle.additional_images
            ])
            images.additional_images = list(urls)

        return images

    async def process(
        self,
        employee_id: int,
        bundle: EvidenceBundle,
        fence_or_gate_present: bool,
        max_file_size_bytes: int
    ) -> EvidenceImages:
        """
        Run the full pipeline for one inspection submission

        Returns:
            EvidenceImages: Stored URLs, ready to persist on the record

        Raises:
            BadRequestException: Invalid file or missing required image
            EvidenceUploadException: Storage failure
        """
        self.validate(bundle, max_file_size_bytes)
        self.ensure_required(bundle.front_view, bundle.street_view, bundle.gate_view, fence_or_gate_present)

        images = await self.upload(employee_id, bundle)

        self.ensure_required(images.front_view, images.street_view, images.gate_view, fence_or_gate_present)
        return images
