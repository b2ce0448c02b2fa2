"""Command: price a cart."""

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
  cartcalc totals cart.json
  cartcalc totals cart.json --breakdown
  cartcalc totals cart.json --without summer-sale
  cartcalc --json totals cart.json
  cat cart.json | cartcalc -q totals -""",
)
@click.argument("cart_json", type=JSON_INPUT)
@click.option("--breakdown", is_flag=True, help="Show every intermediate amount.")
@click.option(
    "--without",
    "without",
    multiple=True,
    metavar="DISCOUNT_ID",
    help="Remove a discount from the cart before pricing (repeatable).",
)
@click.pass_obj
def totals(app: AppContext, cart_json: Path, breakdown: bool, without: tuple[str, ...]) -> None:
    """Compute items, shipments, discounts, tax, and total for CART_JSON."""
    from cartcalc.services.pricing import PricingService

    cart_data = read_json(cart_json)
    if not isinstance(cart_data, dict):
        raise click.ClickException("Cart JSON must be an object")
    app.emit(PricingService(app.config).quote(cart_data, breakdown=breakdown, without=without))
