"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from wsctl.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from wsctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
        if verbose:
            _render_meta(console, result)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    data = result.data
    if "mutations" in data:
        lines = [
            f"{m['workspace']} {'.'.join(m['path'])}={m['value']}" for m in data["mutations"]
        ]
    elif "requirements" in data:
        lines = [f"{r['name']} {r['range']}" for r in data["requirements"]]
    elif result.op == "cycles":
        lines = [" -> ".join(cycle) for cycle in data.get("items", [])]
    else:
        lines = [_extract_name(item) for item in data.get("items", [])]

    lines = [line for line in lines if line]
    return "\n".join(lines) if lines else f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_name(item: Any) -> str:
    if isinstance(item, dict):
        for key in ("name", "workspace"):
            val = item.get(key)
            if val is not None:
                return str(val)
    return ""


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    console.print(Text("OK", style="ws.ok"), Text(f"  {result.op}", style="ws.op"))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="ws.key")
    style = "ws.path" if key in ("cwd", "path") else ""
    console.print(k, Text(str(value), style=style), sep="")


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{ak}={av}" for ak, av in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _mutation_table(mutations: list[dict[str, Any]]) -> Table:
    """Build a table of manifest changes, one row per field."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Workspace", style="ws.name", no_wrap=True)
    table.add_column("Field")
    table.add_column("Current", style="ws.previous")
    table.add_column("Expected", style="ws.value")
    for m in mutations:
        previous = m.get("previous")
        table.add_row(
            str(m["workspace"]),
            ".".join(m["path"]),
            "-" if previous is None else str(previous),
            str(m["value"]),
        )
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(Text("ERROR", style="ws.error"), Text(f"  {result.op}", style="ws.op"), msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Enforcement renderers ─────────────────────────────────────────────


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the mutations a check pass found."""
    mutations = result.data.get("mutations", [])
    workspaces = result.data.get("workspaces", 0)

    if not mutations:
        console.print(f"[ws.ok]OK[/ws.ok]  {workspaces} workspaces satisfy all constraints.")
        return

    console.print(_mutation_table(mutations))
    console.print(
        f"\n[ws.warning]{len(mutations)} change(s) needed[/ws.warning]"
        "; run [bold]wsctl check --fix[/bold] to apply them."
    )


def _render_fix(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the changes written by a fix."""
    _status_line(console, result)
    mutations = result.data.get("mutations", [])
    _field(console, "changes", result.data.get("count", len(mutations)))
    _field(console, "passes", result.data.get("passes", 1))
    if not result.data.get("converged", True):
        _field(console, "converged", False)
    for path in result.data.get("files", []):
        _field(console, "path", path)
    if mutations and verbose:
        console.print(_mutation_table(mutations))


def _render_explain(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render aggregated peer requirements of one workspace."""
    data = result.data
    console.print(
        f"[ws.name]{data.get('workspace')}[/ws.name]  [ws.path]{data.get('cwd')}[/ws.path]"
    )
    requirements = data.get("requirements", [])
    if not requirements:
        console.print("  No peer requirements.")
        return

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Peer", style="ws.name", no_wrap=True)
    table.add_column("Range", style="ws.range")
    table.add_column("Required")
    table.add_column("Requested by")
    for req in requirements:
        requested_by = ", ".join(f"{dep} ({rng})" for dep, rng in req["requested_by"].items())
        required = "yes" if req["required"] else "optional"
        table.add_row(req["name"], req["range"], required, requested_by)
    console.print(table)


# ── Graph renderers ───────────────────────────────────────────────────


def _render_order(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    for index, item in enumerate(items, start=1):
        console.print(
            f"{index:>3}. [ws.name]{item['name']}[/ws.name]  [ws.path]{item['cwd']}[/ws.path]"
        )


def _render_dependents(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    name = result.data.get("name", "?")
    if not items:
        console.print(f"No workspace depends on {name}.")
        return
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Workspace", style="ws.name", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Range", style="ws.range")
    for item in items:
        table.add_row(item["workspace"], item["kind"], item["range"])
    console.print(table)


def _render_cycles(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    if not items:
        console.print("[ws.ok]OK[/ws.ok]  No dependency cycles.")
        return
    for cycle in items:
        console.print(" → ".join(f"[ws.name]{n}[/ws.name]" for n in [*cycle, cycle[0]]))


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "check": _render_check,
    "fix": _render_fix,
    "explain": _render_explain,
    "order": _render_order,
    "dependents": _render_dependents,
    "cycles": _render_cycles,
}
