"""Click base command with ``--examples`` support.

``--examples`` prints usage examples and exits, keeping ``--help`` short.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

JSON_INPUT = click.Path(path_type=Path, exists=True, allow_dash=True, dir_okay=False)


def _add_examples_option(cmd: click.Command, examples: str) -> None:
    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


class CartcalcCommand(click.Command):
    """Click Command subclass that supports an ``--examples`` flag."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


def read_json(path: Path) -> Any:
    """Load a JSON document given on the command line.

    ``-`` reads standard input.

    Raises:
        click.ClickException: If the file is not valid JSON.
    """
    try:
        if str(path) == "-":
            return json.loads(click.get_text_stream("stdin").read())
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in {path}: {exc}"
        raise click.ClickException(msg) from exc
