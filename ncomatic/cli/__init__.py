"""Expose the project-wide Click group for the ``ncomatic-cli`` script.

The module:

* declares a single Click *group* called :pyfunc:`main`;
* wires common global flags (config file, verbosity, log mirror);
* loads the YAML configuration and sets up logging via
  :pyfunc:`ncomatic.utils.logging.setup_logging`;
* builds a :class:`~ncomatic.pipelines.WizardOrchestrator` backed by the JSON
  stores under ``directories.store`` and stashes it in the Click context;
* registers every sub-command located in sibling modules.

Sessions persist between invocations, so a full run looks like::

    ncomatic-cli new --platform Argo_Float --file-type Custom_File_Type
    ncomatic-cli upload <id> --data obs.csv
    ncomatic-cli custom-attrs <id> --delimiter Comma --header-lines 0
    ncomatic-cli metadata <id> --general title="Float 42"
    ncomatic-cli convert <id>
"""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Dict

import click

from ncomatic import __version__
from ncomatic.config import ConfigProperties, load_config
from ncomatic.utils.errors import NcomaticError
from ncomatic.utils.logging import setup_logging


class LazyGroup(click.Group):
    """Click group that imports sub-commands lazily."""

    def __init__(self, *args, **kwargs):
        self._lazy: dict[str, str] = {}
        super().__init__(*args, **kwargs)

    def set_lazy_command(self, name: str, target: str) -> None:
        """Register *name* to be imported from ``target`` on first use."""
        self._lazy[name] = target

    def list_commands(self, ctx):
        return sorted(set(super().list_commands(ctx)) | set(self._lazy))

    def get_command(self, ctx, cmd_name):  # noqa: D401 - Click signature
        cmd = super().get_command(ctx, cmd_name)
        if cmd is not None:
            return cmd
        target = self._lazy.get(cmd_name)
        if not target:
            return None
        module_name, attr = target.split(":", 1)
        module = importlib.import_module(module_name)
        cmd = getattr(module, attr)
        self.add_command(cmd, name=cmd_name)
        return cmd


_CTX: Dict[str, Any] = dict(
    help_option_names=["-h", "--help"],
    show_default=True,
    max_content_width=120,
)

# Commands that report progress at INFO level even without --verbose.
_PROGRESS_COMMANDS = {"upload", "convert"}


@click.group(
    cls=LazyGroup,
    context_settings=_CTX,
    help="""\b
ncomatic-cli – stage scientific data files and convert them to netCDF.

""",
)
@click.version_option(__version__)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML configuration (default: $NCOMATIC_CONFIG, then the packaged one).",
)
@click.option("-v", "--verbose", is_flag=True, help="INFO-level console output.")
@click.option("--debug", is_flag=True, help="DEBUG console + JSON logfile.")
@click.option(
    "--save-logfile",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Mirror console output into this plain-text file.",
)
@click.pass_context
def main(  # noqa: D401 – Click requires the callback to be named “main”.
    ctx: click.Context,
    config_path: Path | None,
    verbose: bool,
    debug: bool,
    save_logfile: Path | None,
) -> None:
    """Root command executed by *ncomatic-cli*.

    Raises:
        click.ClickException: When the configuration cannot be loaded.
    """
    from ncomatic.pipelines import WizardOrchestrator
    from ncomatic.store import JsonMetadataStore, JsonSessionStore

    try:
        cfg = load_config(config_path)
    except NcomaticError as exc:
        raise click.ClickException(f"{type(exc).__name__}: {exc}") from exc

    subcmd = ctx.invoked_subcommand or ""
    setup_logging(
        log_dir=cfg.directories.store / "logs",
        verbose=verbose,
        debug=debug,
        force_info=subcmd in _PROGRESS_COMMANDS and not (verbose or debug),
        extra_text_log=save_logfile,
    )

    store_root = cfg.directories.store
    ctx.obj = {
        "cfg": cfg,
        "wizard": WizardOrchestrator(
            JsonSessionStore(store_root),
            JsonMetadataStore(store_root),
            ConfigProperties(cfg),
            cfg,
        ),
        "verbose": verbose,
        "debug": debug,
    }


main.set_lazy_command("new", "ncomatic.cli.session:new")
main.set_lazy_command("show", "ncomatic.cli.session:show")
main.set_lazy_command("delete", "ncomatic.cli.session:delete")
main.set_lazy_command("upload", "ncomatic.cli.upload:cli")
main.set_lazy_command("custom-attrs", "ncomatic.cli.attrs:cli")
main.set_lazy_command("metadata", "ncomatic.cli.metadata:cli")
main.set_lazy_command("next-step", "ncomatic.cli.steps:next_step")
main.set_lazy_command("previous-step", "ncomatic.cli.steps:previous_step")
main.set_lazy_command("preview", "ncomatic.cli.steps:preview")
main.set_lazy_command("convert", "ncomatic.cli.convert:cli")

cli = main
__all__: list[str] = ["main"]
