from typing import Iterable, List, Optional, Set

from shopadmin.adapters.catalog_api import CatalogAdapter
from shopadmin.models.draft import VariantDraft
from shopadmin.schemas.product_schema import CreatedVariant
from shopadmin.services.batch import BatchResult, run_batch
from shopadmin.services.notifier import Notifier
from shopadmin.utils.log import get_logger

log = get_logger("shopadmin.variant_images", "VARIANT-IMAGES")


def match_created_variant(
    draft_variant: VariantDraft,
    created_variants: List[CreatedVariant],
    created_titles: Set[str],
    claimed: Set[str],
) -> Optional[CreatedVariant]:
    """
    First server variant with the same title that was part of this create call
    and has not been matched to an earlier draft variant yet.
    """
    for created in created_variants:
        if created.identifier in claimed:
            continue
        if created.title == draft_variant.title and created.title in created_titles:
            return created
    return None


def attach_new_variant_images(
    catalog: CatalogAdapter,
    token: str,
    draft_variants: List[VariantDraft],
    created_variants: List[CreatedVariant],
    created_titles: Iterable[str],
    notifier: Optional[Notifier] = None,
) -> BatchResult:
    """
    Upload the pending images of variants created by this commit.

    The create response carries no correlation token, so draft variants are
    matched to the returned ones by title. Variants that already had an
    identifier are left alone. A draft variant without a match is skipped and
    its pending uploads are dropped.
    """
    titles = set(created_titles)
    claimed: Set[str] = set()
    total = BatchResult()

    for index, variant in enumerate(draft_variants):
        if variant.identifier:
            continue
        match = match_created_variant(variant, created_variants, titles, claimed)
        if match is None:
            log.debug(f"no created variant titled {variant.title!r} (draft index {index}); skipping its uploads")
            continue
        claimed.add(match.identifier)

        uploads = list(variant.ledger.uploads)
        if not uploads:
            continue

        def upload(pending, variant_id=match.identifier):
            catalog.upload_variant_image(token, variant_id, pending.file, pending.alt_text, None)

        result = run_batch(uploads, upload, label=f"variant {match.identifier} uploads")
        if notifier is not None:
            notifier.report_batch(
                result,
                f"{{n}} variant image(s) uploaded for {variant.title}",
                "{n} variant image(s) failed to upload",
            )
        total = total + result

    return total
