from fastapi import APIRouter
from clinicrm.modules.patients.router import router as patients_router
from clinicrm.modules.appointments.router import router as appointments_router
from clinicrm.modules.documents.router import router as documents_router
from clinicrm.modules.custom_fields.router import router as custom_fields_router
from clinicrm.modules.saved_views.router import router as saved_views_router
from clinicrm.modules.portal.router import router as portal_router
from clinicrm.modules.audit.router import router as audit_router
from clinicrm.modules.events.router import router as events_router

api_router = APIRouter()
api_router.include_router(patients_router, prefix="/gabinet/patients", tags=["patients"])
api_router.include_router(appointments_router, prefix="/gabinet", tags=["appointments"])
# appointments_router carries both /treatments and /appointments
api_router.include_router(documents_router, prefix="/gabinet/documents", tags=["documents"])
api_router.include_router(custom_fields_router, prefix="/custom-fields", tags=["custom-fields"])
api_router.include_router(saved_views_router, prefix="/saved-views", tags=["saved-views"])
api_router.include_router(portal_router, prefix="/portal", tags=["portal"])
api_router.include_router(audit_router, tags=["audit"])
api_router.include_router(events_router, tags=["events"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
