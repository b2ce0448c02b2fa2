"""Field resolvers: supply condition source values from cart entities.

Each entity kind owns one field table. A resolver is bound to a single
entity and answers ``resolve(source_field)`` with a :class:`Resolution`.
Unknown fields resolve to ``found=False`` with a ``None`` value; the leaf
is then evaluated against ``None`` like any other value.

Field tables:

- item: ``id``, ``price``, ``qty``, ``weight``, ``sku``, ``category_ids``
  (CSV), ``is_taxable``, ``is_discountable``, ``custom.<key>``
- shipment: ``id``, ``code`` (``vendor_method``), ``vendor``, ``method``,
  ``weight``, ``price``
- customer: ``id``, ``group``, ``email``, ``billing_state``,
  ``billing_zipcode``, ``shipping_state``, ``shipping_zipcode``
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from cartcalc.domain.entities import Customer, LineItem, ShipmentLine
from cartcalc.domain.types import EntityType

CUSTOM_PREFIX = "custom."


@dataclass(frozen=True)
class Resolution:
    """Outcome of a field lookup."""

    found: bool
    value: Any = None


UNKNOWN = Resolution(found=False)


class FieldResolver(Protocol):
    """Capability contract consumed by the condition evaluator."""

    @property
    def entity_type(self) -> EntityType: ...

    def resolve(self, source_field: str) -> Resolution: ...


_ITEM_FIELDS: dict[str, Callable[[LineItem], Any]] = {
    "id": lambda item: item.id,
    "price": lambda item: item.price,
    "qty": lambda item: item.qty,
    "weight": lambda item: item.weight,
    "sku": lambda item: item.sku,
    "category_ids": lambda item: ",".join(item.category_ids),
    "is_taxable": lambda item: item.is_taxable,
    "is_discountable": lambda item: item.is_discountable,
}

_SHIPMENT_FIELDS: dict[str, Callable[[ShipmentLine], Any]] = {
    "id": lambda shipment: shipment.id,
    "code": lambda shipment: shipment.code,
    "vendor": lambda shipment: shipment.vendor,
    "method": lambda shipment: shipment.method,
    "weight": lambda shipment: shipment.weight,
    "price": lambda shipment: shipment.price,
}

_CUSTOMER_FIELDS: dict[str, Callable[[Customer], Any]] = {
    "id": lambda customer: customer.id,
    "group": lambda customer: customer.group,
    "email": lambda customer: customer.email,
    "billing_state": lambda customer: customer.billing_state,
    "billing_zipcode": lambda customer: customer.billing_zipcode,
    "shipping_state": lambda customer: customer.shipping_state,
    "shipping_zipcode": lambda customer: customer.shipping_zipcode,
}


class ItemFieldResolver:
    """Resolve condition fields against a :class:`LineItem`."""

    entity_type = EntityType.ITEM

    def __init__(self, item: LineItem) -> None:
        self._item = item

    def resolve(self, source_field: str) -> Resolution:
        getter = _ITEM_FIELDS.get(source_field)
        if getter is not None:
            return Resolution(found=True, value=getter(self._item))
        if source_field.startswith(CUSTOM_PREFIX):
            key = source_field[len(CUSTOM_PREFIX) :]
            if key in self._item.custom:
                return Resolution(found=True, value=self._item.custom[key])
        return UNKNOWN


class ShipmentFieldResolver:
    """Resolve condition fields against a :class:`ShipmentLine`."""

    entity_type = EntityType.SHIPMENT

    def __init__(self, shipment: ShipmentLine) -> None:
        self._shipment = shipment

    def resolve(self, source_field: str) -> Resolution:
        getter = _SHIPMENT_FIELDS.get(source_field)
        if getter is None:
            return UNKNOWN
        return Resolution(found=True, value=getter(self._shipment))


class CustomerFieldResolver:
    """Resolve condition fields against a :class:`Customer`."""

    entity_type = EntityType.CUSTOMER

    def __init__(self, customer: Customer) -> None:
        self._customer = customer

    def resolve(self, source_field: str) -> Resolution:
        getter = _CUSTOMER_FIELDS.get(source_field)
        if getter is None:
            return UNKNOWN
        return Resolution(found=True, value=getter(self._customer))


def resolver_for(entity: LineItem | ShipmentLine | Customer) -> FieldResolver:
    """Return the resolver matching *entity*'s kind."""
    if isinstance(entity, LineItem):
        return ItemFieldResolver(entity)
    if isinstance(entity, ShipmentLine):
        return ShipmentFieldResolver(entity)
    if isinstance(entity, Customer):
        return CustomerFieldResolver(entity)
    msg = f"No field resolver for {type(entity).__name__}"
    raise TypeError(msg)
