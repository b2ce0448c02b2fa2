"""Rich Console factory and theme for cartcalc output.

Consoles render into a StringIO buffer so renderers return plain strings.
Outside a terminal (tests, pipes) Rich drops the color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

CARTCALC_THEME = Theme(
    {
        "cart.ok": "bold green",
        "cart.error": "bold red",
        "cart.warning": "bold yellow",
        "cart.op": "bold cyan",
        "cart.key": "dim",
        "cart.id": "bold blue",
        "cart.amount": "bold",
        "cart.discount": "magenta",
        "cart.applied": "green",
        "cart.rejected": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=CARTCALC_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 100,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
