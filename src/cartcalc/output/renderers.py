"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from cartcalc.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from cartcalc.services.result import ServiceResult

Renderer = Callable[..., None]

_TOTAL_ROWS = ("items", "shipments", "discounts", "tax", "total")


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a string via Rich."""
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output: the grand total, or the applied discount ids."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"
    if result.op == "totals":
        return str(result.data["totals"]["total"])
    if result.op == "eligible":
        return "\n".join(result.data["applied"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="cart.ok"), Text(f"  {result.op}", style="cart.op"))


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="cart.key")
    v = Text(str(value), style="cart.id" if key == "id" else "")
    console.print(k, v, sep="")


def _totals_table(totals: dict[str, str], *, title: str | None = None) -> Table:
    table = Table(title=title, show_header=True, pad_edge=False, expand=False)
    table.add_column("", style="cart.key")
    table.add_column("Amount", justify="right", style="cart.amount")
    for key in _TOTAL_ROWS:
        if key in totals:
            style = "cart.discount" if key == "discounts" else ""
            table.add_row(key.title(), Text(totals[key], style=style))
    return table


def _render_meta(console: Console, result: ServiceResult) -> None:
    if not result.meta:
        return
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            _render_span(console, value, indent=4)
        else:
            console.print(f"    {key}: {value}")


def _render_span(console: Console, span: dict[str, Any], indent: int) -> None:
    extras = ", ".join(f"{k}={v}" for k, v in span.get("annotations", {}).items())
    line = f"{' ' * indent}{span.get('duration_ms', 0.0):>8.2f}ms  {span.get('name', '?')}"
    console.print(f"{line}  ({extras})" if extras else line, markup=False)
    for child in span.get("children", []):
        _render_span(console, child, indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = f" [{err.code}]" if err else ""
    console.print(
        Text("ERROR", style="cart.error"),
        Text(f"  {result.op}", style="cart.op"),
        Text(f"{code} {msg}"),
        sep="",
    )
    if err and err.detail:
        for error in err.detail.get("errors", []):
            console.print(f"  {error['loc']}: {error['msg']}", markup=False)
        if verbose:
            for key, value in err.detail.items():
                if key != "errors":
                    console.print(f"  {key}: {value}", markup=False)


# ── Operation renderers ───────────────────────────────────────────────


def _render_totals(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    data = result.data
    if data.get("removed"):
        _field(console, "removed", ", ".join(data["removed"]))
    console.print(_totals_table(data["totals"]))
    if verbose:
        console.print(_totals_table(data["discounted"], title="Net of discounts"))
    breakdown = data.get("breakdown")
    if breakdown:
        table = Table(title="Breakdown", show_header=True, pad_edge=False)
        table.add_column("Amount", style="cart.key")
        table.add_column("Value", justify="right")
        for key, value in breakdown.items():
            table.add_row(key, value)
        console.print(table)
    if verbose:
        _render_meta(console, result)


def _render_eligible(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    decisions = result.data["decisions"]
    if decisions:
        table = Table(show_header=True, pad_edge=False, expand=False)
        table.add_column("Discount", style="cart.id", no_wrap=True)
        table.add_column("Applied")
        table.add_column("Reason")
        if verbose:
            table.add_column("Matched")
        for decision in decisions:
            applied = decision["applied"]
            row = [
                decision["id"],
                Text("yes", style="cart.applied") if applied else Text("no", style="cart.rejected"),
                decision["reason"],
            ]
            if verbose:
                row.append(", ".join(decision.get("matched", [])))
            table.add_row(*row)
        console.print(table)
    else:
        console.print(Text("  No candidate discounts.", style="dim"))
    console.print(_totals_table(result.data["totals"]))
    if verbose:
        _render_meta(console, result)


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Renderer] = {
    "totals": _render_totals,
    "eligible": _render_eligible,
}
