import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from shopadmin.models.image import ImageRef
from shopadmin.models.ledger import ImageLedger, LedgerError


class ProductStatus(str, enum.Enum):
    ACTIVE = "active"
    DRAFT = "draft"
    ARCHIVED = "archived"


class InventoryPolicy(str, enum.Enum):
    DENY = "deny"
    CONTINUE = "continue"


class DraftError(ValueError):
    pass


@dataclass(frozen=True)
class Scope:
    """The product itself (variant_index=None) or one variant by its position."""

    variant_index: Optional[int] = None

    @classmethod
    def product(cls) -> "Scope":
        return cls(None)

    @classmethod
    def variant(cls, index: int) -> "Scope":
        return cls(index)

    @property
    def is_product(self) -> bool:
        return self.variant_index is None


def parse_tags(tags_input: str) -> List[str]:
    """Comma separated input -> trimmed, non-empty, de-duplicated tags in input order."""
    tags: List[str] = []
    for raw in (tags_input or "").split(","):
        tag = raw.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _enum_or_default(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


@dataclass
class VariantDraft:
    identifier: Optional[str] = None
    title: str = ""
    price: float = 0
    sku: str = ""
    inventory_policy: InventoryPolicy = InventoryPolicy.DENY
    option1: str = ""
    available: int = 0
    cost: float = 0
    ledger: ImageLedger = field(default_factory=ImageLedger)

    @property
    def images(self) -> List[ImageRef]:
        return self.ledger.images

    @classmethod
    def from_server(cls, data: Dict) -> "VariantDraft":
        available = data.get("available")
        if available is None:
            available = data.get("inventory_quantity") or 0
        return cls(
            identifier=data.get("uuid") or data.get("id"),
            title=data.get("title") or "",
            price=data.get("price") or 0,
            sku=data.get("sku") or "",
            inventory_policy=_enum_or_default(
                InventoryPolicy, data.get("inventory_policy"), InventoryPolicy.DENY
            ),
            option1=data.get("option1") or "",
            available=available,
            cost=data.get("cost") or 0,
            ledger=ImageLedger(ImageRef.from_server(img) for img in data.get("images") or []),
        )

    def to_dict(self) -> Dict:
        return {
            "identifier": self.identifier,
            "title": self.title,
            "price": self.price,
            "sku": self.sku,
            "inventory_policy": self.inventory_policy.value,
            "option1": self.option1,
            "available": self.available,
            "cost": self.cost,
            **self.ledger.to_dict(),
        }


@dataclass
class ProductDraft:
    identifier: Optional[str] = None
    title: str = ""
    description: str = ""
    product_type: str = ""
    vendor: str = ""
    status: ProductStatus = ProductStatus.DRAFT
    # raw text from the tags box; parsed only when the payload is built
    tags_input: str = ""
    ledger: ImageLedger = field(default_factory=ImageLedger)
    variants: List[VariantDraft] = field(default_factory=lambda: [VariantDraft()])

    @property
    def images(self) -> List[ImageRef]:
        return self.ledger.images

    @property
    def tags(self) -> List[str]:
        return parse_tags(self.tags_input)

    @classmethod
    def from_server(cls, data: Dict) -> "ProductDraft":
        """
        Seed a draft from a product detail response. Product-level images are the
        ones not attached to a variant.
        """
        product_images = [
            ImageRef.from_server(img)
            for img in data.get("images") or []
            if not (img.get("variant_id") or img.get("variantId"))
        ]
        variants = [VariantDraft.from_server(v) for v in data.get("variants") or []]
        return cls(
            identifier=data.get("uuid") or data.get("id"),
            title=data.get("title") or "",
            description=data.get("description") or "",
            product_type=data.get("product_type") or "",
            vendor=data.get("vendor") or "",
            status=_enum_or_default(ProductStatus, data.get("status"), ProductStatus.DRAFT),
            tags_input=", ".join(data.get("tags") or []),
            ledger=ImageLedger(product_images),
            variants=variants or [VariantDraft()],
        )

    def ledger_for(self, scope: Scope) -> ImageLedger:
        if scope.is_product:
            return self.ledger
        return self.variant_at(scope.variant_index).ledger

    def variant_at(self, index: int) -> VariantDraft:
        if index is None or index < 0 or index >= len(self.variants):
            raise LedgerError(f"No variant at index {index}")
        return self.variants[index]

    def all_ledgers(self) -> List[ImageLedger]:
        return [self.ledger] + [v.ledger for v in self.variants]

    @property
    def has_pending(self) -> bool:
        return any(ledger.has_pending for ledger in self.all_ledgers())

    def clear_pending(self) -> None:
        for ledger in self.all_ledgers():
            ledger.clear_pending()

    def add_variant(self) -> VariantDraft:
        variant = VariantDraft()
        self.variants.append(variant)
        return variant

    def remove_variant(self, index: int) -> VariantDraft:
        self.variant_at(index)
        if len(self.variants) == 1:
            raise DraftError("A product needs at least one variant")
        return self.variants.pop(index)

    def to_dict(self) -> Dict:
        return {
            "identifier": self.identifier,
            "title": self.title,
            "description": self.description,
            "product_type": self.product_type,
            "vendor": self.vendor,
            "status": self.status.value,
            "tags_input": self.tags_input,
            "tags": self.tags,
            **self.ledger.to_dict(),
            "variants": [v.to_dict() for v in self.variants],
        }
