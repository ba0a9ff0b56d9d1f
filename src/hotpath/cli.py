"""Click CLI entry point with lazy-loaded subcommands."""

import os
import sys

# Fix Unicode output on Windows consoles (cp1253, cp1252, etc.)
if sys.platform == "win32" and not os.environ.get("PYTHONIOENCODING"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import click

# Lazy-loading command group: imports command modules only when invoked.
# This keeps tree-sitter grammars and networkx off the `--help` path.
_COMMANDS = {
    "analyze": ("hotpath.commands.cmd_analyze", "analyze"),
    "rules":   ("hotpath.commands.cmd_rules",   "rules"),
}


class LazyGroup(click.Group):
    """A Click group that lazy-loads command modules on first access."""

    def list_commands(self, ctx):
        return sorted(_COMMANDS.keys())

    def get_command(self, ctx, cmd_name):
        if cmd_name not in _COMMANDS:
            return None
        module_path, attr_name = _COMMANDS[cmd_name]
        import importlib
        mod = importlib.import_module(module_path)
        return getattr(mod, attr_name)


@click.group(cls=LazyGroup)
@click.version_option(package_name="hotpath-engine")
@click.option('--json', 'json_mode', is_flag=True, help='Output in JSON format')
@click.option('--sarif', 'sarif_mode', is_flag=True, help='Output findings as SARIF 2.1.0')
@click.pass_context
def cli(ctx, json_mode, sarif_mode):
    """hotpath: find performance anti-patterns and estimate complexity."""
    ctx.ensure_object(dict)
    ctx.obj['json'] = json_mode
    ctx.obj['sarif'] = sarif_mode
