"""Cart entities: line items, shipments, customer, discounts, and the cart.

All entities are frozen pydantic models. A cart is an immutable snapshot;
the ``with_*`` / ``without_*`` helpers return a new cart instead of
mutating the current one, so a calculator never observes a change
mid-computation.

Wire shape is the pydantic JSON dump of these models. Collections on the
cart may be given as lists or as mappings; either way they end up keyed by
each entry's ``id``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cartcalc.domain.conditions import ConditionNode
from cartcalc.domain.money import (
    DEFAULT_CALCULATOR_PRECISION,
    DEFAULT_PRECISION,
    ZERO,
    to_decimal,
)
from cartcalc.domain.types import DiscountTarget, DiscountTiming, ValueKind


def _key(value: Any) -> str:
    return str(value).strip()


class LineItem(BaseModel):
    """A product line in the cart. ``price`` is the unit price."""

    model_config = ConfigDict(frozen=True)

    id: str
    price: Decimal = ZERO
    qty: Decimal = Field(default=Decimal(1), ge=0)
    is_taxable: bool = False
    is_discountable: bool = True
    weight: Decimal = ZERO
    sku: str = ""
    category_ids: tuple[str, ...] = ()
    custom: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> str:
        return _key(value)

    @field_validator("price", "qty", "weight", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @field_validator("category_ids", mode="before")
    @classmethod
    def _categories(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return tuple(_key(v) for v in value)


class ShipmentLine(BaseModel):
    """A shipment line. ``price`` is already the line total.

    ``items`` records which item keys the shipment carries; it is
    informational and does not participate in allocation.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    price: Decimal = ZERO
    is_taxable: bool = False
    is_discountable: bool = True
    weight: Decimal = ZERO
    method: str = ""
    vendor: str = ""
    items: frozenset[str] = frozenset()

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> str:
        return _key(value)

    @field_validator("price", "weight", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @property
    def code(self) -> str:
        """Carrier code, ``vendor_method`` (e.g. ``ups_ground``)."""
        return f"{self.vendor}_{self.method}"


class Customer(BaseModel):
    """The shopper. Only used as a condition source."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    group: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    billing_street: str = ""
    billing_city: str = ""
    billing_state: str = ""
    billing_zipcode: str = ""
    is_shipping_same: bool = True
    shipping_street: str = ""
    shipping_city: str = ""
    shipping_state: str = ""
    shipping_zipcode: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> str:
        return "" if value is None else _key(value)


class DiscountRule(BaseModel):
    """A flat or percentage discount on items, shipments, or a specified set.

    ``items`` (item key -> qty) and ``shipments`` (shipment keys) are only
    read when ``target`` is ``specified``. References to lines that are not
    in the cart are skipped at calculation time.

    ``condition`` is the eligibility tree evaluated for auto-applied
    discounts; ``None`` means unconditional.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    value: Decimal = ZERO
    value_kind: ValueKind = ValueKind.FLAT
    target: DiscountTarget = DiscountTarget.ITEMS
    timing: DiscountTiming = DiscountTiming.PRE_TAX
    items: dict[str, Annotated[Decimal, Field(ge=0)]] = Field(default_factory=dict)
    shipments: frozenset[str] = frozenset()
    condition: ConditionNode | None = None
    is_auto: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> str:
        return _key(value)

    @field_validator("value", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @field_validator("items", mode="before")
    @classmethod
    def _item_refs(cls, value: Any) -> dict[str, Decimal]:
        if value is None:
            return {}
        return {_key(k): to_decimal(qty) for k, qty in dict(value).items()}

    @property
    def is_specified(self) -> bool:
        return self.target is DiscountTarget.SPECIFIED


def _entry_id(entry: Any, fallback: str | None = None) -> tuple[str, Any]:
    if isinstance(entry, BaseModel):
        return _key(entry.id), entry
    if not isinstance(entry, dict):
        msg = f"Expected an object, got {type(entry).__name__}"
        raise ValueError(msg)
    if entry.get("id") is None:
        if fallback is None:
            msg = "Entry has no id"
            raise ValueError(msg)
        entry = {**entry, "id": fallback}
    return _key(entry["id"]), entry


def _keyed(value: Any) -> dict[str, Any]:
    """Key a list or mapping of entities by each entity's ``id``.

    Mapping entries without an ``id`` take it from their key; an entry
    whose ``id`` disagrees with its key is rejected.
    """
    keyed: dict[str, Any] = {}
    if isinstance(value, (list, tuple)):
        for entry in value:
            key, entry = _entry_id(entry)
            keyed[key] = entry
        return keyed
    if isinstance(value, dict):
        for raw_key, entry in value.items():
            key, entry = _entry_id(entry, _key(raw_key))
            if key != _key(raw_key):
                msg = f"Key {raw_key!r} does not match id {key!r}"
                raise ValueError(msg)
            keyed[key] = entry
        return keyed
    msg = f"Expected a list or mapping, got {type(value).__name__}"
    raise ValueError(msg)


class Cart(BaseModel):
    """Immutable cart snapshot consumed by the calculator.

    Attributes:
        include_tax: When False the tax total is always zero.
        tax_rate: Single flat rate applied to the discounted taxable base.
        discount_taxable_last: Tax policy switch. True applies pre-tax
            discounts to non-taxable lines first; False subtracts them
            from the taxable base directly.
        precision: Display precision of report values.
        calculator_precision: Precision of every intermediate subtotal.
    """

    model_config = ConfigDict(frozen=True)

    items: dict[str, LineItem] = Field(default_factory=dict)
    shipments: dict[str, ShipmentLine] = Field(default_factory=dict)
    discounts: dict[str, DiscountRule] = Field(default_factory=dict)
    customer: Customer | None = None
    include_tax: bool = False
    tax_rate: Decimal = ZERO
    discount_taxable_last: bool = True
    precision: int = Field(default=DEFAULT_PRECISION, ge=0)
    calculator_precision: int = Field(default=DEFAULT_CALCULATOR_PRECISION, ge=0)

    @field_validator("items", "shipments", "discounts", mode="before")
    @classmethod
    def _collections(cls, value: Any) -> Any:
        if value is None:
            return {}
        return _keyed(value)

    @field_validator("tax_rate", mode="before")
    @classmethod
    def _rate(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @model_validator(mode="after")
    def _precision_order(self) -> Cart:
        if self.calculator_precision < self.precision:
            msg = (
                f"calculator_precision ({self.calculator_precision}) must be >= "
                f"precision ({self.precision})"
            )
            raise ValueError(msg)
        return self

    # --- Lookup ---

    def get_item(self, key: str) -> LineItem | None:
        return self.items.get(key)

    def get_shipment(self, key: str) -> ShipmentLine | None:
        return self.shipments.get(key)

    def get_discount(self, key: str) -> DiscountRule | None:
        return self.discounts.get(key)

    # --- Snapshot updates ---

    def with_item(self, item: LineItem) -> Cart:
        return self.model_copy(update={"items": {**self.items, item.id: item}})

    def without_item(self, key: str) -> Cart:
        items = {k: v for k, v in self.items.items() if k != key}
        return self.model_copy(update={"items": items})

    def with_shipment(self, shipment: ShipmentLine) -> Cart:
        return self.model_copy(update={"shipments": {**self.shipments, shipment.id: shipment}})

    def without_shipment(self, key: str) -> Cart:
        shipments = {k: v for k, v in self.shipments.items() if k != key}
        return self.model_copy(update={"shipments": shipments})

    def with_discount(self, discount: DiscountRule) -> Cart:
        return self.model_copy(update={"discounts": {**self.discounts, discount.id: discount}})

    def without_discount(self, key: str) -> Cart:
        discounts = {k: v for k, v in self.discounts.items() if k != key}
        return self.model_copy(update={"discounts": discounts})

    def with_customer(self, customer: Customer | None) -> Cart:
        return self.model_copy(update={"customer": customer})
