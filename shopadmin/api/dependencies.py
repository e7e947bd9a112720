from functools import lru_cache
from typing import Optional

from fastapi import Header

from shopadmin.adapters.catalog_api import CatalogAdapter, HttpCatalogAdapter
from shopadmin.adapters.mock_catalog import MockCatalogAdapter
from shopadmin.config import settings
from shopadmin.services.edit_session_service import EditSessionService


@lru_cache
def get_catalog_adapter() -> CatalogAdapter:
    if settings.CATALOG_BACKEND == "mock":
        return MockCatalogAdapter()
    return HttpCatalogAdapter()


@lru_cache
def get_session_service() -> EditSessionService:
    return EditSessionService(get_catalog_adapter())


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Token from `Authorization: Bearer <token>`; None when absent."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
