"""
Asset Mirror — CLI Entry Point

Usage:
    python -m asset_mirror.main mirrors
    python -m asset_mirror.main select
    python -m asset_mirror.main activate [REMOTE_URL]
    python -m asset_mirror.main status
"""

from __future__ import annotations

# Load .env file FIRST, before any other imports that might read env vars
from pathlib import Path
from dotenv import load_dotenv

_project_root = Path(__file__).parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

from typing import Optional

import click

from .cli.mirror import activate, list_mirrors, probe, select, status
from .cli.ops import check_config, health
from .config.loader import load_settings
from .logging_config import setup_logging

setup_logging()


def get_project_root() -> Path:
    """Get the project root directory."""
    return _project_root


@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="Remote config YAML (default: ASSET_MIRROR_CONFIG or config/remotes.yaml)")
@click.option("--root", type=click.Path(path_type=Path), default=None,
              help="Directory for state/ and audit/ (default: project root)")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], root: Optional[Path]) -> None:
    """Asset Mirror — pick, activate and route to the fastest CDN mirror."""
    ctx.ensure_object(dict)
    ctx.obj["root"] = root or get_project_root()
    ctx.obj["settings"] = load_settings(config_path)


cli.add_command(list_mirrors)
cli.add_command(probe)
cli.add_command(select)
cli.add_command(activate)
cli.add_command(status)
cli.add_command(health)
cli.add_command(check_config)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
