from __future__ import annotations

import importlib
import sys
import traceback
import types
import typing as t
from pathlib import Path

import pydantic as p

import gradebook
import gradebook.lib.cli as click
from gradebook.core import GradebookContainer
from gradebook.grading import GradeConflictError, GradeNotFoundError, GradeValidationError, GradingError, \
    WeightPolicyError
from gradebook.model import DeploymentEnvironment

_GradebookRoot = Path(gradebook.__file__).resolve().parents[1]

# subcommand modules are imported lazily; they are wired when the container boots
_wiring: list[types.ModuleType] = []

# most specific first
ExitCodes: tuple[tuple[type[Exception], int], ...] = (
    (GradeValidationError, 2),
    (GradeNotFoundError, 3),
    (GradeConflictError, 4),
    (WeightPolicyError, 5),
    (GradingError, 1),
)


class GradebookMultiCommand(click.Group):
    commands_available = ("audit", "course", "grade", "schema")

    def list_commands(self, ctx: click.Context) -> list[str]:
        return list(self.commands_available)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name not in self.commands_available:
            return None
        mod = importlib.import_module(f"gradebook.cli.{cmd_name}")
        _wiring.append(mod)
        return getattr(mod, "command")


@click.group(cls=GradebookMultiCommand)
@click.option("-E", "--env", default=DeploymentEnvironment.Local.value, type=click.EnumType(DeploymentEnvironment))
@click.option("-c", "--config-root", default=_GradebookRoot / "config", type=click.ConfigRootType())
@click.option(
    "-o",
    "--override",
    multiple=True,
    help="override a configuration value, e.g. -o grading.verify_trusted=true",
)
@click.option("-D", "--debug", is_flag=True, default=False, help="print tracebacks for errors")
@click.pass_obj
def main(
    ct: GradebookContainer,
    env: DeploymentEnvironment,
    config_root: p.FileUrl,
    override: tuple[str, ...],
    debug: bool,
):
    """Record, correct and aggregate grades."""
    GradebookContainer.boot(ct, debug=debug, env=env, config_root=config_root, override=override, wiring=tuple(_wiring))


def exit_code_for(ex: Exception) -> int:
    if isinstance(ex, click.ClickException):
        return ex.exit_code
    for kind, code in ExitCodes:
        if isinstance(ex, kind):
            return code
    return 70  # EX_SOFTWARE


def execute_command(*_args: str) -> None:
    args = list(_args or sys.argv)
    prog = Path(args[0]).name
    container = GradebookContainer()
    debug = "-D" in args[1:] or "--debug" in args[1:]

    try:
        with main.make_context(prog, args=args[1:]) as ctx:
            ctx.obj = container
            main.invoke(ctx)
    except (EOFError, KeyboardInterrupt, click.Abort):
        click.echo("Aborted!", file=sys.stderr)
        sys.exit(1)
    except click.exceptions.Exit as ex:
        sys.exit(ex.exit_code)
    except click.ClickException as ex:
        ex.show()
        sys.exit(ex.exit_code)
    except Exception as ex:
        click.echo(click.style("ERROR ", fg="red") + str(ex), file=sys.stderr)
        if debug:
            traceback.print_exc()
        sys.exit(exit_code_for(ex))
    finally:
        container.shutdown_resources()
    sys.exit(0)


if __name__ == "__main__":
    execute_command(*sys.argv)
