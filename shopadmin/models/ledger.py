from typing import Dict, Iterable, List, Optional

from shopadmin.models.image import ImageRef, LocalFile, PendingDeletion, PendingUpload


class LedgerError(ValueError):
    pass


class ImageLedger:
    """
    Pending image state for one scope (the product, or one variant).

    `images` is the accepted list shown to the operator. `uploads` and
    `deletions` hold what will be sent on commit. `originals` is the image
    list as fetched from the server and is only used to rebuild an ImageRef
    when a deletion is undone.
    """

    def __init__(self, images: Optional[Iterable[ImageRef]] = None):
        self.images: List[ImageRef] = [img.copy() for img in images or []]
        self.originals: List[ImageRef] = [img.copy() for img in images or []]
        self.uploads: List[PendingUpload] = []
        self.deletions: List[PendingDeletion] = []

    @property
    def has_pending(self) -> bool:
        return bool(self.uploads or self.deletions)

    def mark_for_upload(self, file: LocalFile, alt_text: Optional[str] = None) -> PendingUpload:
        pending = PendingUpload(file=file, alt_text=alt_text or None)
        self.uploads.append(pending)
        return pending

    def mark_for_deletion(self, index: int) -> Optional[PendingDeletion]:
        """
        Move images[index] to the deletion list. An image without a remote
        identifier was never persisted: it is discarded and nothing is recorded.
        """
        if index < 0 or index >= len(self.images):
            raise LedgerError(f"No image at index {index}")
        image = self.images.pop(index)
        if not image.identifier:
            return None
        pending = PendingDeletion(remote_identifier=image.identifier, url=image.url)
        self.deletions.append(pending)
        return pending

    def cancel_upload(self, index: int) -> PendingUpload:
        if index < 0 or index >= len(self.uploads):
            raise LedgerError(f"No pending upload at index {index}")
        return self.uploads.pop(index)

    def undo_deletion(self, index: int) -> Optional[ImageRef]:
        """
        Drop deletions[index] and put the original image back where it sat in
        `originals`, ahead of the first remaining image that came after it.
        Returns None when the original can no longer be found.
        """
        if index < 0 or index >= len(self.deletions):
            raise LedgerError(f"No pending deletion at index {index}")
        pending = self.deletions.pop(index)
        order = {img.url: n for n, img in enumerate(self.originals)}
        if pending.url not in order:
            return None
        rank = order[pending.url]
        restored = self.originals[rank].copy()
        at = next(
            (n for n, img in enumerate(self.images) if order.get(img.url, -1) > rank),
            len(self.images),
        )
        self.images.insert(at, restored)
        return restored

    def replace_images(self, images: List[ImageRef]) -> None:
        self.images = images

    def clear_pending(self) -> None:
        self.uploads = []
        self.deletions = []

    def to_dict(self) -> Dict:
        return {
            "images": [img.to_dict() for img in self.images],
            "pending_uploads": [p.to_dict() for p in self.uploads],
            "pending_deletions": [p.to_dict() for p in self.deletions],
        }
