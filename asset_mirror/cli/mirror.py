"""
CLI mirror commands — list, probe, select and activate remote locations.

Usage:
    python -m asset_mirror.main mirrors [--json]
    python -m asset_mirror.main probe URL [--timeout S]
    python -m asset_mirror.main select [--tries N] [--timeout S] [--json]
    python -m asset_mirror.main activate [REMOTE_URL] [--json]
    python -m asset_mirror.main status [--json]
"""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import click


def _build(ctx: click.Context):
    from ..location.service import build_service

    root = ctx.obj["root"]
    return build_service(
        ctx.obj["settings"],
        state_dir=root / "state",
        audit_path=root / "audit" / "activations.ndjson",
    )


@click.command("mirrors")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_mirrors(ctx: click.Context, as_json: bool) -> None:
    """Show configured remote locations."""
    settings = ctx.obj["settings"]

    if as_json:
        click.echo(json.dumps(
            {
                "enabled": settings.enabled,
                "remotes": [m.model_dump() for m in settings.remotes],
            },
            indent=2,
        ))
        return

    click.echo(f"\n🌐 Remote locations ({'enabled' if settings.enabled else 'disabled'})\n")
    if not settings.remotes:
        click.echo("  No remotes configured.")
        click.echo("  Add entries under 'remotes' in config/remotes.yaml")
        click.echo()
        return

    for m in settings.remotes:
        icon = "✅" if m.enabled else "⏸️"
        click.echo(f"  {icon} {m.display_name}")
        click.echo(f"      remote:  {m.remote_url}")
        click.echo(f"      test:    {m.probe_url}")
        click.echo(f"      catalog: {m.catalog_name or '(base URL only)'}")
    click.echo()


@click.command("probe")
@click.argument("url")
@click.option("--timeout", default=5.0, show_default=True, help="Timeout in seconds")
def probe(url: str, timeout: float) -> None:
    """Probe a single URL once."""
    from ..network.probe import EndpointProbe

    result = asyncio.run(EndpointProbe().probe(url, timeout))
    if result.success:
        click.secho(f"✅ {url}: HTTP {result.status_code} in {result.elapsed * 1000:.1f}ms", fg="green")
    else:
        click.secho(f"❌ {url}: {result.error} after {result.elapsed * 1000:.1f}ms", fg="red")
        raise SystemExit(1)


@click.command("select")
@click.option("--tries", type=int, default=None, help="Rounds to race (default: from config)")
@click.option("--timeout", type=float, default=None, help="Round deadline in seconds (default: from config)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def select(ctx: click.Context, tries: Optional[int], timeout: Optional[float], as_json: bool) -> None:
    """Race all remotes and report the fastest (does not activate)."""
    service, _ = _build(ctx)
    result = asyncio.run(service.select_remote_location(tries=tries, timeout=timeout))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.success:
        click.secho(f"🏁 Fastest: {result.url} ({result.elapsed * 1000:.1f}ms)", fg="green")
    else:
        click.secho(f"❌ Selection failed: {result.error}", fg="red")

    if not result.success:
        raise SystemExit(1)


@click.command("activate")
@click.argument("remote_url", required=False)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def activate(ctx: click.Context, remote_url: Optional[str], as_json: bool) -> None:
    """
    Activate a remote location.

    With REMOTE_URL, activate that registered remote. Without it, run
    the bootstrap policy (persisted selection or fastest remote).
    """
    service, _ = _build(ctx)

    if remote_url:
        result = asyncio.run(service.activate(remote_url))
    else:
        result = asyncio.run(service.select_and_activate())

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.success:
        click.secho(f"✅ Active remote: {result.url}", fg="green")
        if result.catalog_url:
            click.echo(f"   Catalog: {result.catalog_url}")
    else:
        click.secho(f"❌ Activation failed: {result.error}", fg="red")

    if not result.success:
        raise SystemExit(1)


@click.command("status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show settings and the persisted mirror selection."""
    settings = ctx.obj["settings"]
    service, _ = _build(ctx)
    persisted = service.controller.restore_selection()

    result = {
        "enabled": settings.enabled,
        "is_permanent_remote": settings.is_permanent_remote,
        "local_mode": settings.local_mode,
        "url_tries_count": settings.url_tries_count,
        "timeout_seconds": settings.timeout_seconds,
        "registered": len(service.registry),
        "persisted_selection": persisted,
        "persisted_registered": bool(persisted and service.lookup(persisted)),
    }

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    click.echo("\n🔀 Remote Location Status\n")
    click.echo(f"  Enabled:     {'Yes' if settings.enabled else 'No'}")
    click.echo(f"  Permanent:   {'Yes' if settings.is_permanent_remote else 'No'}")
    click.echo(f"  Local mode:  {'Yes' if settings.local_mode else 'No'}")
    click.echo(f"  Racing:      {settings.url_tries_count} tries, {settings.timeout_seconds}s deadline")
    click.echo(f"  Registered:  {result['registered']} remote(s)")
    if persisted:
        marker = "" if result["persisted_registered"] else " (no longer configured)"
        click.echo(f"  Last active: {persisted}{marker}")
    else:
        click.echo("  Last active: none")
    click.echo()
