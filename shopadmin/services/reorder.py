from typing import List

from shopadmin.models.image import ImageRef, ReorderItem


def set_featured(images: List[ImageRef], index: int) -> List[ImageRef]:
    """
    Move images[index] to the front, keep the others in their relative order and
    renumber positions from 0. The input list is not modified.
    """
    if index < 0 or index >= len(images):
        raise IndexError(f"No image at index {index}")
    reordered = list(images)
    featured = reordered.pop(index)
    reordered.insert(0, featured)
    return [img.copy(position=pos) for pos, img in enumerate(reordered)]


def build_reorder_items(images: List[ImageRef]) -> List[ReorderItem]:
    # images that were never persisted have no id; they get their place when uploaded
    return [
        ReorderItem(image_identifier=img.identifier, position=pos)
        for pos, img in enumerate(images)
        if img.identifier
    ]
