"""Command: select auto-applied discounts for a cart."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from cartcalc.commands._base import JSON_INPUT, CartcalcCommand, read_json

if TYPE_CHECKING:
    from cartcalc.commands._context import AppContext


@click.command(
    cls=CartcalcCommand,
    examples="""\
  cartcalc eligible cart.json discounts.json
  cartcalc -v eligible cart.json discounts.json
  cartcalc -q eligible cart.json discounts.json""",
)
@click.argument("cart_json", type=JSON_INPUT)
@click.argument("discounts_json", type=JSON_INPUT)
@click.pass_obj
def eligible(app: AppContext, cart_json: Path, discounts_json: Path) -> None:
    """Evaluate DISCOUNTS_JSON conditions against CART_JSON and reprice.

    DISCOUNTS_JSON is a list of discounts, or an object with a
    ``discounts`` list.
    """
    from cartcalc.services.eligibility import EligibilityService

    cart_data = read_json(cart_json)
    if not isinstance(cart_data, dict):
        raise click.ClickException("Cart JSON must be an object")
    candidates = read_json(discounts_json)
    if isinstance(candidates, dict):
        candidates = candidates.get("discounts", [])
    if not isinstance(candidates, list):
        raise click.ClickException("Discounts JSON must be a list")
    app.emit(EligibilityService(app.config).apply(cart_data, candidates))
