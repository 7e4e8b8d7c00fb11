"""Submit and display general / variable metadata.

``--general KEY=VALUE`` sets a global attribute; ``--variable NAME:KEY=VALUE``
sets one attribute of one variable.  Both may be repeated.  The stored JSON
of each submitted kind (or of ``--show``) is printed afterwards.
"""

from __future__ import annotations

import click

from ncomatic.models import MetadataKind

from ._common import get_wizard, session_argument, wizard_errors


def _split_pairs(ctx, param, values):
    """Click callback turning ``KEY=VALUE`` strings into a dict."""
    out: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected KEY=VALUE, got {item!r}")
        out[key.strip()] = value
    return out


def _split_variable_pairs(ctx, param, values):
    """Click callback turning ``NAME:KEY=VALUE`` strings into a nested dict."""
    out: dict[str, dict[str, str]] = {}
    for item in values:
        target, sep, value = item.partition("=")
        name, colon, key = target.partition(":")
        if not sep or not colon or not name.strip() or not key.strip():
            raise click.BadParameter(f"expected NAME:KEY=VALUE, got {item!r}")
        out.setdefault(name.strip(), {})[key.strip()] = value
    return out


@click.command(name="metadata", help="Submit or show general / variable metadata.")
@session_argument
@click.option("--general", "general", multiple=True, callback=_split_pairs, metavar="KEY=VALUE")
@click.option(
    "--variable", "variable", multiple=True, callback=_split_variable_pairs,
    metavar="NAME:KEY=VALUE",
)
@click.option(
    "--show", "show", multiple=True,
    type=click.Choice([k.value for k in MetadataKind]),
    help="Print stored metadata of this kind.",
)
@click.pass_obj
def cli(ctx_obj, session_id: str, general: dict, variable: dict, show: tuple[str, ...]) -> None:
    wizard = get_wizard(ctx_obj)
    kinds = list(show)
    with wizard_errors(session_id):
        if general:
            wizard.process_general_metadata(session_id, general)
            kinds.append(MetadataKind.GENERAL.value)
        if variable:
            wizard.process_variable_metadata(session_id, variable)
            kinds.append(MetadataKind.VARIABLE.value)
        if not kinds:
            kinds = [k.value for k in MetadataKind]
        for kind in dict.fromkeys(kinds):
            click.echo(f"{kind}: {wizard.get_metadata_for_client(session_id, kind)}")
