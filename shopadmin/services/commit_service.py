import enum
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import ValidationError

from shopadmin.adapters.catalog_api import CatalogAdapter
from shopadmin.models.draft import ProductDraft, VariantDraft
from shopadmin.schemas.product_schema import CreatedProduct, ProductPayload, VariantPayload
from shopadmin.services.batch import BatchResult, run_batch
from shopadmin.services.notifier import Notice, Notifier
from shopadmin.services.variant_images import attach_new_variant_images, match_created_variant
from shopadmin.utils.log import get_logger

log = get_logger("shopadmin.commit", "COMMIT")


class UnauthorizedError(Exception):
    pass


class CommitPreconditionError(Exception):
    pass


class CommitInProgressError(Exception):
    pass


class CommitState(str, enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"


class CommitOutcome(str, enum.Enum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    FAILED = "failed"


@dataclass
class CommitResult:
    branch: str
    outcome: CommitOutcome = CommitOutcome.SUCCESS
    product_id: Optional[str] = None
    uploads: BatchResult = field(default_factory=BatchResult)
    deletions: BatchResult = field(default_factory=BatchResult)
    error: Optional[str] = None
    notices: List[Notice] = field(default_factory=list)
    # fresh product detail; None when the reload did not happen or failed
    reloaded: Optional[Dict] = None

    def to_dict(self) -> Dict:
        return {
            "branch": self.branch,
            "outcome": self.outcome.value,
            "product_id": self.product_id,
            "uploads": self.uploads.to_dict(),
            "deletions": self.deletions.to_dict(),
            "error": self.error,
            "notices": [n.to_dict() for n in self.notices],
        }


def _describe_validation_error(e: ValidationError) -> str:
    err = e.errors()[0]
    where = ".".join(str(p) for p in err.get("loc", ()))
    return f"{where}: {err.get('msg')}" if where else err.get("msg", str(e))


def _variant_payload(variant: VariantDraft, images: Optional[List] = None) -> VariantPayload:
    return VariantPayload(
        uuid=variant.identifier,
        title=variant.title,
        price=variant.price,
        sku=variant.sku,
        inventory_policy=variant.inventory_policy,
        option1=variant.option1,
        available=variant.available,
        cost=variant.cost,
        images=images,
    )


def _product_payload(draft: ProductDraft, with_empty_images: bool) -> Dict:
    if not draft.variants:
        raise CommitPreconditionError("A product needs at least one variant")
    # None is dropped from the request body, [] is sent as is
    images = [] if with_empty_images else None
    try:
        payload = ProductPayload(
            title=draft.title,
            description=draft.description,
            product_type=draft.product_type,
            vendor=draft.vendor,
            status=draft.status,
            tags=draft.tags,
            images=images,
            variants=[_variant_payload(v, images=images) for v in draft.variants],
        )
    except ValidationError as e:
        raise CommitPreconditionError(_describe_validation_error(e))
    return payload.to_request()


def build_create_payload(draft: ProductDraft) -> Dict:
    """Scalar fields and variants; image lists are always empty."""
    return _product_payload(draft, with_empty_images=True)


def build_update_payload(draft: ProductDraft) -> Dict:
    """Scalar fields and variants with no `images` key anywhere."""
    return _product_payload(draft, with_empty_images=False)


class CommitService:
    """
    Turns the pending state of one draft into remote calls.

    CREATE (no product id): create the product, then upload product images
    to the new id, then attach images to the new variants by title.
    UPDATE: deletes, then uploads, then the product upsert. Per-image
    failures are counted and reported but never stop the commit.
    """

    def __init__(self, catalog: CatalogAdapter):
        self.catalog = catalog
        self.state = CommitState.IDLE
        self._lock = threading.Lock()

    @property
    def is_submitting(self) -> bool:
        return self.state == CommitState.SUBMITTING

    @contextmanager
    def idle(self):
        """
        Hold the commit gate for a draft edit. A commit cannot start while the
        block runs, and the block is refused while a commit is running.
        """
        with self._lock:
            if self.state == CommitState.SUBMITTING:
                raise CommitInProgressError("A commit is in progress")
            yield

    def commit(self, draft: ProductDraft, token: Optional[str]) -> CommitResult:
        if not token:
            raise UnauthorizedError("Unauthorized")
        with self._lock:
            if self.state == CommitState.SUBMITTING:
                raise CommitInProgressError("A commit is already in progress")
            self.state = CommitState.SUBMITTING
        try:
            if draft.identifier:
                return self._commit_update(draft, token)
            return self._commit_create(draft, token)
        finally:
            self.state = CommitState.IDLE

    # --- CREATE ---

    def _commit_create(self, draft: ProductDraft, token: str) -> CommitResult:
        payload = build_create_payload(draft)
        notifier = Notifier()
        result = CommitResult(branch="create")
        log.info(f"create: {payload['title']!r} with {len(payload['variants'])} variant(s)")

        try:
            created = self.catalog.create_product(token, payload)
            result.product_id = created.identifier

            if draft.ledger.uploads:
                uploads = run_batch(
                    list(draft.ledger.uploads),
                    lambda p: self.catalog.upload_product_image(
                        token, created.identifier, p.file, p.alt_text, None
                    ),
                    label=f"product {created.identifier} uploads",
                )
                notifier.report_batch(
                    uploads,
                    "{n} product image(s) uploaded",
                    "{n} product image(s) failed to upload",
                )
                result.uploads = result.uploads + uploads

            created_titles = [v["title"] for v in payload["variants"]]
            variant_uploads = attach_new_variant_images(
                self.catalog, token, draft.variants, created.variants, created_titles, notifier
            )
            result.uploads = result.uploads + variant_uploads
        except Exception as e:
            # pending ledgers stay as they are so the operator can retry
            message = str(e) or "Failed to create product"
            log.error(f"create failed: {message}")
            notifier.error(message)
            result.outcome = CommitOutcome.FAILED
            result.error = message
            result.notices = notifier.notices
            return result

        draft.clear_pending()
        notifier.success("Product created successfully!")
        result.reloaded = self._reload(token, created.identifier, notifier)
        if result.reloaded is None:
            self._adopt_created_ids(draft, created)
        return self._finish(result, notifier)

    def _adopt_created_ids(self, draft: ProductDraft, created: CreatedProduct) -> None:
        # without a reload the draft must still point at what was created,
        # otherwise the next commit would create the product a second time
        draft.identifier = created.identifier
        claimed = set()
        titles = {v.title for v in created.variants}
        for variant in draft.variants:
            if variant.identifier:
                continue
            match = match_created_variant(variant, created.variants, titles, claimed)
            if match is not None:
                claimed.add(match.identifier)
                variant.identifier = match.identifier

    # --- UPDATE ---

    def _commit_update(self, draft: ProductDraft, token: str) -> CommitResult:
        product_id = draft.identifier
        payload = build_update_payload(draft)
        notifier = Notifier()
        result = CommitResult(branch="update", product_id=product_id)
        known_variant_ids = {v.identifier for v in draft.variants if v.identifier}
        log.info(f"update {product_id}: {len(payload['variants'])} variant(s)")

        # 1. product deletions
        if draft.ledger.deletions:
            deleted = run_batch(
                list(draft.ledger.deletions),
                lambda d: self.catalog.delete_product_image(token, product_id, d.remote_identifier),
                label=f"product {product_id} deletes",
            )
            notifier.report_batch(
                deleted, "{n} product image(s) deleted", "{n} product image(s) failed to delete"
            )
            result.deletions = result.deletions + deleted

        # 2. variant deletions
        for variant in draft.variants:
            if not variant.identifier or not variant.ledger.deletions:
                continue
            deleted = run_batch(
                list(variant.ledger.deletions),
                lambda d, vid=variant.identifier: self.catalog.delete_variant_image(
                    token, vid, d.remote_identifier
                ),
                label=f"variant {variant.identifier} deletes",
            )
            notifier.report_batch(
                deleted,
                f"{{n}} variant image(s) deleted from {variant.title}",
                "{n} variant image(s) failed to delete",
            )
            result.deletions = result.deletions + deleted

        # 3. product uploads
        if draft.ledger.uploads:
            uploaded = run_batch(
                list(draft.ledger.uploads),
                lambda p: self.catalog.upload_product_image(token, product_id, p.file, p.alt_text, None),
                label=f"product {product_id} uploads",
            )
            notifier.report_batch(
                uploaded,
                "{n} product image(s) uploaded successfully",
                "{n} product image(s) failed to upload",
            )
            result.uploads = result.uploads + uploaded

        # 4. variant uploads
        for variant in draft.variants:
            if not variant.identifier or not variant.ledger.uploads:
                continue
            uploaded = run_batch(
                list(variant.ledger.uploads),
                lambda p, vid=variant.identifier: self.catalog.upload_variant_image(
                    token, vid, p.file, p.alt_text, None
                ),
                label=f"variant {variant.identifier} uploads",
            )
            notifier.report_batch(
                uploaded,
                f"{{n}} variant image(s) uploaded for {variant.title}",
                "{n} variant image(s) failed to upload",
            )
            result.uploads = result.uploads + uploaded

        # 5-6. upsert, images never in the body
        try:
            self.catalog.update_product(token, product_id, payload)
        except Exception as e:
            message = str(e) or "Failed to save product"
            log.error(f"update {product_id} failed: {message}")
            notifier.error(message)
            result.outcome = CommitOutcome.FAILED
            result.error = message
            # 7. cleared regardless: the image calls above already happened
            draft.clear_pending()
            result.notices = notifier.notices
            return result

        try:
            # variants added in this edit only get ids from the upsert
            if any(not v.identifier and v.ledger.uploads for v in draft.variants):
                result.uploads = result.uploads + self._attach_added_variants(
                    draft, token, product_id, known_variant_ids, notifier
                )
        finally:
            # 7. the upsert went through, nothing pending may be sent twice
            draft.clear_pending()

        # 8.
        notifier.success("Product updated successfully!")
        result.reloaded = self._reload(token, product_id, notifier)
        return self._finish(result, notifier)

    def _attach_added_variants(self, draft, token, product_id, known_variant_ids, notifier) -> BatchResult:
        try:
            detail = self.catalog.get_product_detail(token, product_id)
            fresh = CreatedProduct.model_validate(detail).variants
        except Exception as e:
            log.warning(f"update {product_id}: could not fetch new variant ids: {e}")
            notifier.warning("Images for new variants could not be uploaded")
            return BatchResult()
        added = [v for v in fresh if v.identifier not in known_variant_ids]
        added_titles = [v.title for v in draft.variants if not v.identifier]
        return attach_new_variant_images(self.catalog, token, draft.variants, added, added_titles, notifier)

    # --- shared ---

    def _reload(self, token: str, product_id: str, notifier: Notifier) -> Optional[Dict]:
        try:
            return self.catalog.get_product_detail(token, product_id)
        except Exception as e:
            log.warning(f"reload of {product_id} failed: {e}")
            notifier.warning("Product saved, but reloading it failed")
            return None

    def _finish(self, result: CommitResult, notifier: Notifier) -> CommitResult:
        if result.uploads.fail_count or result.deletions.fail_count:
            result.outcome = CommitOutcome.PARTIAL_FAILURE
        result.notices = notifier.notices
        log.info(
            f"{result.branch} {result.product_id}: {result.outcome.value} "
            f"(uploads {result.uploads.success_count}/{result.uploads.total}, "
            f"deletes {result.deletions.success_count}/{result.deletions.total})"
        )
        return result
