"""
CLI ops commands — health and configuration checks.

Usage:
    python -m asset_mirror.main health [--json]
    python -m asset_mirror.main check-config [--json]
"""

from __future__ import annotations

import json

import click


@click.command("health")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def health(ctx: click.Context, as_json: bool) -> None:
    """Check service health (without activating anything)."""
    from ..location.service import build_service
    from ..adapters.manifest_http import HttpManifestLoader
    from ..observability.health import HealthChecker, HealthStatus

    root = ctx.obj["root"]
    service, _ = build_service(ctx.obj["settings"], state_dir=root / "state")
    loader = service.loader if isinstance(service.loader, HttpManifestLoader) else None
    result = HealthChecker(service, loader=loader).check()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        status_colors = {
            HealthStatus.HEALTHY: ("✅", "green"),
            HealthStatus.DEGRADED: ("⚠️", "yellow"),
            HealthStatus.UNHEALTHY: ("❌", "red"),
        }
        icon, color = status_colors.get(result.status, ("❓", "white"))

        click.echo()
        click.secho(f"{icon} Health: {result.status.value.upper()}", fg=color, bold=True)
        click.echo()
        for component in result.components:
            c_icon, c_color = status_colors.get(component.status, ("❓", "white"))
            click.echo(f"  {c_icon} ", nl=False)
            click.secho(component.name, fg=c_color, bold=True, nl=False)
            click.echo(f": {component.message}")
        click.echo()

    if result.status == HealthStatus.UNHEALTHY:
        raise SystemExit(1)


@click.command("check-config")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def check_config(ctx: click.Context, as_json: bool) -> None:
    """Validate config/remotes.yaml and environment overrides."""
    from ..config.validator import LEVEL_ERROR, LEVEL_WARNING, ConfigValidator

    issues = ConfigValidator().validate(ctx.obj["settings"])
    errors = [i for i in issues if i.level == LEVEL_ERROR]

    if as_json:
        click.echo(json.dumps([i.to_dict() for i in issues], indent=2))
    elif not issues:
        click.secho("✅ Configuration looks good", fg="green")
    else:
        icons = {LEVEL_ERROR: ("❌", "red"), LEVEL_WARNING: ("⚠️", "yellow")}
        for issue in issues:
            icon, color = icons.get(issue.level, ("•", None))
            prefix = f"{issue.remote}: " if issue.remote else ""
            click.secho(f"{icon} {prefix}{issue.message}", fg=color)
            if issue.guidance:
                click.echo(f"   → {issue.guidance}")

    if errors:
        raise SystemExit(1)
