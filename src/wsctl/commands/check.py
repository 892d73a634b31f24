"""Command: check and fix workspace dependency constraints."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from wsctl.commands._base import WsCommand

if TYPE_CHECKING:
    from wsctl.commands._context import AppContext


@click.command(
    cls=WsCommand,
    examples="""\
  wsctl check
  wsctl check --fix
  wsctl check --fix --no-install
  wsctl check --set-version 2.3.0 --fix
  wsctl check --debug-requirements
  wsctl --json check""",
)
@click.option("--fix", is_flag=True, help="Write the required changes to package.json files.")
@click.option(
    "--set-version",
    "packages_version",
    default=None,
    metavar="VERSION",
    help="Stamp VERSION on every public workspace instead of checking dependencies.",
)
@click.option(
    "--debug-requirements",
    is_flag=True,
    help="Log the aggregated peer requirements of every workspace.",
)
@click.option("--no-install", is_flag=True, help="Skip the install command after --fix.")
@click.pass_obj
def check(
    app: AppContext,
    fix: bool,
    packages_version: str | None,
    debug_requirements: bool,
    no_install: bool,
) -> None:
    """Check that every workspace declares the dependency ranges it needs.

    Exits with status 1 when changes are needed and --fix was not given.
    """
    from wsctl.services.enforce import EnforceService

    app.override(
        packages_version=packages_version,
        debug_requirements=debug_requirements or None,
    )
    svc = EnforceService(app.project)

    if fix:
        app.emit(svc.fix(install=not no_install))
        return

    result = svc.check()
    app.emit(result)
    if result.data.get("count"):
        raise SystemExit(1)
