from fastapi import APIRouter, Depends

from shopadmin.api.dependencies import get_catalog_adapter, get_session_service

router = APIRouter()


@router.get("/health", tags=["health"])
def health(catalog=Depends(get_catalog_adapter), sessions=Depends(get_session_service)):
    catalog_ok = False
    try:
        catalog_ok = catalog.health_check()
    except Exception:
        catalog_ok = False

    return {
        "status": "ok" if catalog_ok else "degraded",
        "catalog_adapter": catalog_ok,
        "open_sessions": sessions.count(),
    }
