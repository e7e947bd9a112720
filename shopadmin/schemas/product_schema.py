# shopadmin/schemas/product_schema.py
import math
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from shopadmin.models.draft import InventoryPolicy, ProductStatus


def _nan_to_zero(v):
    if isinstance(v, float) and math.isnan(v):
        return 0
    return v


# --- field updates: one model per editable scalar field ---

class TitleUpdate(BaseModel):
    field: Literal["title"]
    value: str


class DescriptionUpdate(BaseModel):
    field: Literal["description"]
    value: str


class ProductTypeUpdate(BaseModel):
    field: Literal["product_type"]
    value: str


class VendorUpdate(BaseModel):
    field: Literal["vendor"]
    value: str


class StatusUpdate(BaseModel):
    field: Literal["status"]
    value: ProductStatus


class TagsInputUpdate(BaseModel):
    field: Literal["tags_input"]
    value: str


ProductFieldUpdate = Annotated[
    Union[
        TitleUpdate,
        DescriptionUpdate,
        ProductTypeUpdate,
        VendorUpdate,
        StatusUpdate,
        TagsInputUpdate,
    ],
    Field(discriminator="field"),
]


class VariantTitleUpdate(BaseModel):
    field: Literal["title"]
    value: str


class PriceUpdate(BaseModel):
    field: Literal["price"]
    value: float

    @field_validator("value", mode="before")
    @classmethod
    def nan_to_zero(cls, v):
        return _nan_to_zero(v)


class SkuUpdate(BaseModel):
    field: Literal["sku"]
    value: str


class InventoryPolicyUpdate(BaseModel):
    field: Literal["inventory_policy"]
    value: InventoryPolicy


class Option1Update(BaseModel):
    field: Literal["option1"]
    value: str


class AvailableUpdate(BaseModel):
    field: Literal["available"]
    value: int

    @field_validator("value", mode="before")
    @classmethod
    def nan_to_zero(cls, v):
        return _nan_to_zero(v)


class CostUpdate(BaseModel):
    field: Literal["cost"]
    value: float

    @field_validator("value", mode="before")
    @classmethod
    def nan_to_zero(cls, v):
        return _nan_to_zero(v)


VariantFieldUpdate = Annotated[
    Union[
        VariantTitleUpdate,
        PriceUpdate,
        SkuUpdate,
        InventoryPolicyUpdate,
        Option1Update,
        AvailableUpdate,
        CostUpdate,
    ],
    Field(discriminator="field"),
]


# --- payloads sent to the catalog backend ---

class VariantPayload(BaseModel):
    uuid: Optional[str] = None
    title: str
    price: float = Field(ge=0)
    sku: str
    inventory_policy: InventoryPolicy = InventoryPolicy.DENY
    option1: str = ""
    available: int = Field(ge=0)
    cost: float = Field(ge=0)
    # CREATE sends [], UPDATE leaves it out of the body entirely
    images: Optional[List[dict]] = None

    @field_validator("sku")
    @classmethod
    def sku_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("SKU must not be empty")
        return v


class ProductPayload(BaseModel):
    title: str
    description: str = ""
    product_type: str = ""
    vendor: str = ""
    status: ProductStatus = ProductStatus.DRAFT
    tags: List[str] = Field(default_factory=list)
    images: Optional[List[dict]] = None
    variants: List[VariantPayload] = Field(min_length=1)

    def to_request(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


# --- responses from the catalog backend ---

# details are keyed by "uuid", some endpoints answer with "id"
_ID = AliasChoices("uuid", "id", "identifier")


class CreatedVariant(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    identifier: str = Field(validation_alias=_ID)
    title: str = ""

    @field_validator("title", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or ""


class CreatedProduct(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    identifier: str = Field(validation_alias=_ID)
    variants: List[CreatedVariant] = Field(default_factory=list)


# --- request bodies for the draft endpoints ---

class OpenDraftIn(BaseModel):
    product_id: Optional[str] = None
