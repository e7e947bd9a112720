from contextlib import contextmanager
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, UploadFile

from shopadmin.adapters.catalog_api import CatalogApiError
from shopadmin.api.dependencies import get_bearer_token, get_session_service
from shopadmin.config import settings
from shopadmin.models.draft import DraftError, Scope
from shopadmin.models.image import LocalFile
from shopadmin.models.ledger import LedgerError
from shopadmin.schemas.product_schema import OpenDraftIn, ProductFieldUpdate, VariantFieldUpdate
from shopadmin.services.commit_service import (
    CommitInProgressError,
    CommitPreconditionError,
    UnauthorizedError,
)
from shopadmin.services.edit_session_service import EditSession, EditSessionService, SessionNotFound
from shopadmin.utils.log import get_logger

router = APIRouter(prefix="/api/admin/product-drafts", tags=["product-drafts"])

log = get_logger("shopadmin.api", "API")


@contextmanager
def _service_errors():
    try:
        yield
    except HTTPException:
        raise
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except UnauthorizedError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except CommitInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (LedgerError, DraftError, CommitPreconditionError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CatalogApiError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        log.error(f"CRITICAL ERROR: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {type(e).__name__}")


def _scope(variant_index: Optional[int]) -> Scope:
    return Scope.product() if variant_index is None else Scope.variant(variant_index)


def _view(session: EditSession):
    return {**session.to_dict(), "notices": [n.to_dict() for n in session.notifier.drain()]}


def _session(session_id: str, svc: EditSessionService) -> EditSession:
    with _service_errors():
        return svc.get_session(session_id)


@router.post("", summary="Open an edit session (existing product or new)")
def open_draft(
    payload: Optional[OpenDraftIn] = Body(None),
    svc: EditSessionService = Depends(get_session_service),
    token: Optional[str] = Depends(get_bearer_token),
):
    with _service_errors():
        session = svc.open_session(payload.product_id if payload else None, token=token)
    return _view(session)


@router.get("/{session_id}", summary="Current draft and pending images")
def get_draft(session_id: str, svc: EditSessionService = Depends(get_session_service)):
    return _view(_session(session_id, svc))


@router.delete("/{session_id}", summary="Close the edit session and drop the draft")
def close_draft(session_id: str, svc: EditSessionService = Depends(get_session_service)):
    with _service_errors():
        svc.close_session(session_id)
    return {"ok": True}


@router.patch("/{session_id}/fields", summary="Update one product field")
def update_product_field(
    session_id: str,
    update: ProductFieldUpdate,
    svc: EditSessionService = Depends(get_session_service),
):
    session = _session(session_id, svc)
    with _service_errors():
        session.update_product_field(update)
    return _view(session)


@router.post("/{session_id}/variants", summary="Append an empty variant")
def add_variant(session_id: str, svc: EditSessionService = Depends(get_session_service)):
    session = _session(session_id, svc)
    with _service_errors():
        session.add_variant()
    return _view(session)


@router.delete("/{session_id}/variants/{index}", summary="Remove a variant from the draft")
def remove_variant(session_id: str, index: int, svc: EditSessionService = Depends(get_session_service)):
    session = _session(session_id, svc)
    with _service_errors():
        session.remove_variant(index)
    return _view(session)


@router.patch("/{session_id}/variants/{index}/fields", summary="Update one variant field")
def update_variant_field(
    session_id: str,
    index: int,
    update: VariantFieldUpdate,
    svc: EditSessionService = Depends(get_session_service),
):
    session = _session(session_id, svc)
    with _service_errors():
        session.update_variant_field(index, update)
    return _view(session)


@router.post("/{session_id}/images/uploads", summary="Stage an image for upload")
def mark_for_upload(
    session_id: str,
    image: UploadFile = File(...),
    alt_text: Optional[str] = Form(None),
    variant_index: Optional[int] = Form(None),
    svc: EditSessionService = Depends(get_session_service),
):
    session = _session(session_id, svc)
    content = image.file.read()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="Image is too large")
    local = LocalFile(
        filename=image.filename or "upload",
        content=content,
        content_type=image.content_type or "application/octet-stream",
    )
    with _service_errors():
        session.mark_for_upload(_scope(variant_index), local, alt_text)
    return _view(session)


@router.delete("/{session_id}/images/uploads/{index}", summary="Remove a staged upload")
def cancel_upload(
    session_id: str,
    index: int,
    variant_index: Optional[int] = Query(None),
    svc: EditSessionService = Depends(get_session_service),
):
    session = _session(session_id, svc)
    with _service_errors():
        session.cancel_upload(_scope(variant_index), index)
    return _view(session)


@router.post("/{session_id}/images/{index}/delete", summary="Mark an image for deletion")
def mark_for_deletion(
    session_id: str,
    index: int,
    variant_index: Optional[int] = Query(None),
    svc: EditSessionService = Depends(get_session_service),
):
    session = _session(session_id, svc)
    with _service_errors():
        session.mark_for_deletion(_scope(variant_index), index)
    return _view(session)


@router.post("/{session_id}/images/deletions/{index}/undo", summary="Undo a pending deletion")
def undo_deletion(
    session_id: str,
    index: int,
    variant_index: Optional[int] = Query(None),
    svc: EditSessionService = Depends(get_session_service),
):
    session = _session(session_id, svc)
    with _service_errors():
        session.undo_deletion(_scope(variant_index), index)
    return _view(session)


@router.post("/{session_id}/images/{index}/featured", summary="Promote an image to cover")
def set_featured(
    session_id: str,
    index: int,
    variant_index: Optional[int] = Query(None),
    svc: EditSessionService = Depends(get_session_service),
    token: Optional[str] = Depends(get_bearer_token),
):
    session = _session(session_id, svc)
    with _service_errors():
        session.set_featured(_scope(variant_index), index, token=token)
    return _view(session)


@router.post("/{session_id}/commit", summary="Commit all pending changes")
def commit(
    session_id: str,
    svc: EditSessionService = Depends(get_session_service),
    token: Optional[str] = Depends(get_bearer_token),
):
    session = _session(session_id, svc)
    with _service_errors():
        result = session.commit(token)
    return {**_view(session), "result": result.to_dict()}
