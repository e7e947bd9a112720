import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from uuid import uuid4

from shopadmin.adapters.catalog_api import CatalogAdapter
from shopadmin.config import settings
from shopadmin.models.draft import ProductDraft, Scope, VariantDraft
from shopadmin.models.image import ImageRef, LocalFile, PendingDeletion, PendingUpload
from shopadmin.models.ledger import LedgerError
from shopadmin.services.commit_service import CommitResult, CommitService
from shopadmin.services.notifier import Notifier
from shopadmin.services.reorder import build_reorder_items, set_featured
from shopadmin.utils.log import get_logger

log = get_logger("shopadmin.sessions", "SESSIONS")


class SessionNotFound(Exception):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EditSession:
    """
    One open product form: the draft, its ledgers and the commit gate.
    Nothing here talks to the backend except `set_featured` (eager reorder)
    and `commit`.
    """

    def __init__(self, catalog: CatalogAdapter, draft: Optional[ProductDraft] = None):
        self.id = uuid4().hex
        self.catalog = catalog
        self.draft = draft or ProductDraft()
        self.committer = CommitService(catalog)
        self.notifier = Notifier()
        self.last_touched = _now()

    def touch(self) -> None:
        self.last_touched = _now()

    @contextmanager
    def _editing(self):
        # a commit snapshots the ledgers, so edits and commit entry are serialized
        with self.committer.idle():
            self.touch()
            yield

    # --- scalar fields / variants ---

    def update_product_field(self, update) -> None:
        with self._editing():
            setattr(self.draft, update.field, update.value)

    def update_variant_field(self, index: int, update) -> None:
        with self._editing():
            setattr(self.draft.variant_at(index), update.field, update.value)

    def add_variant(self) -> VariantDraft:
        with self._editing():
            return self.draft.add_variant()

    def remove_variant(self, index: int) -> VariantDraft:
        with self._editing():
            return self.draft.remove_variant(index)

    # --- ledger ---

    def mark_for_upload(self, scope: Scope, file: LocalFile, alt_text: Optional[str] = None) -> PendingUpload:
        with self._editing():
            return self.draft.ledger_for(scope).mark_for_upload(file, alt_text)

    def cancel_upload(self, scope: Scope, index: int) -> PendingUpload:
        with self._editing():
            return self.draft.ledger_for(scope).cancel_upload(index)

    def mark_for_deletion(self, scope: Scope, index: int) -> Optional[PendingDeletion]:
        with self._editing():
            pending = self.draft.ledger_for(scope).mark_for_deletion(index)
        if pending is not None:
            what = "Image" if scope.is_product else "Variant image"
            label = "Update Product" if self.draft.identifier else "Create Product"
            self.notifier.info(f'{what} marked for deletion. Click "{label}" to confirm.')
        return pending

    def undo_deletion(self, scope: Scope, index: int) -> Optional[ImageRef]:
        with self._editing():
            restored = self.draft.ledger_for(scope).undo_deletion(index)
        if restored is None:
            log.warning(f"session {self.id}: undo found no original image for scope {scope}")
            self.notifier.warning("Image deletion cancelled, but the original image could not be restored")
        elif scope.is_product:
            self.notifier.success("Image deletion cancelled")
        else:
            self.notifier.success("Variant image deletion cancelled")
        return restored

    # --- featured image (eager) ---

    def set_featured(self, scope: Scope, index: int, token: Optional[str] = None) -> List[ImageRef]:
        """
        Reorder locally right away. When the product (and for a variant scope,
        the variant) exists on the server and a token is given, the new order
        is pushed immediately; a failure there is reported and the local order
        is kept.
        """
        with self._editing():
            ledger = self.draft.ledger_for(scope)
            try:
                ledger.replace_images(set_featured(ledger.images, index))
            except IndexError as e:
                raise LedgerError(str(e))
            images = ledger.images
            remote_id = self.draft.identifier
            if remote_id and not scope.is_product:
                remote_id = self.draft.variant_at(scope.variant_index).identifier

        if not (self.draft.identifier and remote_id and token):
            self.notifier.success("Set as featured image")
            return images

        items = build_reorder_items(images)
        try:
            if scope.is_product:
                self.catalog.reorder_product_images(token, remote_id, items)
            else:
                self.catalog.reorder_variant_images(token, remote_id, items)
        except Exception as e:
            log.warning(f"session {self.id}: reorder for {remote_id} failed: {e}")
            self.notifier.error("Failed to set featured image")
            return images
        self.notifier.success("Featured image updated")
        return images

    # --- commit ---

    def commit(self, token: Optional[str]) -> CommitResult:
        self.touch()
        result = self.committer.commit(self.draft, token)
        if result.reloaded is not None:
            # server truth replaces the local draft
            self.draft = ProductDraft.from_server(result.reloaded)
        return result

    def to_dict(self) -> Dict:
        return {
            "session_id": self.id,
            "is_submitting": self.committer.is_submitting,
            "draft": self.draft.to_dict(),
        }


class EditSessionService:
    """Registry of open edit sessions. Sessions live in memory only."""

    def __init__(self, catalog: CatalogAdapter):
        self.catalog = catalog
        self._sessions: Dict[str, EditSession] = {}
        self._lock = threading.Lock()

    def open_session(self, product_id: Optional[str] = None, token: Optional[str] = None) -> EditSession:
        draft = None
        if product_id:
            detail = self.catalog.get_product_detail(token, product_id)
            draft = ProductDraft.from_server(detail)
        session = EditSession(self.catalog, draft)
        with self._lock:
            self._sessions[session.id] = session
        log.info(f"opened session {session.id} for product {product_id or '<new>'}")
        return session

    def get_session(self, session_id: str) -> EditSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound("Edit session not found")
        return session

    def close_session(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFound("Edit session not found")
        log.info(f"closed session {session_id}")

    def expire_idle(self, ttl_seconds: Optional[int] = None) -> List[str]:
        """Drop sessions untouched for longer than the TTL; a submitting one is kept."""
        ttl = ttl_seconds if ttl_seconds is not None else settings.SESSION_TTL_SECONDS
        cutoff = _now() - timedelta(seconds=ttl)
        with self._lock:
            expired = [
                sid
                for sid, s in self._sessions.items()
                if s.last_touched <= cutoff and not s.committer.is_submitting
            ]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            log.info(f"expired {len(expired)} idle session(s)")
        return expired

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)
