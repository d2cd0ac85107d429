from fastapi import APIRouter
from app.api.v1.endpoints import verifications, admin_verifications

api_router = APIRouter()

# Register routes
api_router.include_router(verifications.router, prefix="/verifications", tags=["Verifications"])
api_router.include_router(admin_verifications.router, prefix="/admin/verifications", tags=["Admin Verifications"])
