from __future__ import annotations

import importlib
import sys
import threading
import traceback
import types
import typing as t
from pathlib import Path

import pydantic as p

import markbook
import markbook.lib.cli as click
from markbook.core import MarkbookContainer
from markbook.model import DeploymentEnvironment

_MarkbookRoot = Path(markbook.__file__).resolve().parents[1]

# subcommand modules are imported while the command line is parsed, before the
# container boots, and are wired once it does
_loaded: list[types.ModuleType] = []
_booted = False


class MarkbookMultiCommand(click.Group):
    commands_available: t.ClassVar[dict[str, str]] = {
        "grade": "Grade sheets: template, validate, import, overview, lock.",
        "override": "Review and resolve midterm/final override proposals.",
        "period": "Create and inspect grading periods.",
        "roster": "Enroll students into class rosters.",
        "schema": "Manage the database schema.",
        "web": "Run the HTTP API.",
    }

    def list_commands(self, ctx: click.Context) -> list[str]:
        return sorted(self.commands_available)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name not in self.commands_available:
            return None
        mod = importlib.import_module(f"markbook.cli.{cmd_name}")
        _loaded.append(mod)
        return getattr(mod, cmd_name)


@click.group(cls=MarkbookMultiCommand)
@click.option("-E", "--env", default=DeploymentEnvironment.Local, type=click.EnumType(DeploymentEnvironment))
@click.option("-c", "--config-root", default=_MarkbookRoot / "config", type=click.URIParamType(dir_ok=True))
@click.option(
    "-o",
    "--override",
    multiple=True,
    help="override a configuration value, e.g. -o grading.summary_precision=2",
)
@click.option("-D", "--debug", is_flag=True, default=False)
@click.pass_obj
def main(
    ct: MarkbookContainer,
    env: DeploymentEnvironment,
    config_root: p.FileUrl,
    override: tuple[str, ...],
    debug: bool,
):
    """Markbook grade management."""
    global _booted
    MarkbookContainer.boot(ct, debug=debug, env=env, config_root=config_root, override=override, wiring=tuple(_loaded))
    _booted = True


def execute_command(*argv: str) -> None:
    threading.current_thread().name = "markbook-0"
    args = list(argv or sys.argv)
    prog = Path(args[0]).name
    container = MarkbookContainer()

    try:
        with main.make_context(prog, args=args[1:]) as ctx:
            ctx.obj = container
            sys.exit(t.cast(int | None, main.invoke(ctx)))
    except (EOFError, KeyboardInterrupt, click.Abort):
        click.echo("Aborted!", file=sys.stderr)
        sys.exit(1)
    except click.exceptions.Exit as e:
        sys.exit(e.exit_code)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except Exception as e:
        click.echo(click.style("ERROR ", fg="red") + str(e), file=sys.stderr)
        if container.debug() if _booted else ("-D" in args[1:] or "--debug" in args[1:]):
            traceback.print_exc()
        sys.exit(2)
    finally:
        container.shutdown_resources()


if __name__ == "__main__":
    execute_command(*sys.argv)
