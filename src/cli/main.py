"""
CLI entry point: tradier-triggers poll | run | triggers | cursor | health.

Every command loads config from --config (default config.yaml), prints a
human-readable line per trigger, and journals emitted events.
"""

import logging
import sys

import click
from dotenv import load_dotenv

from config import load_config
from config.loader import AppConfig
from poll_core.errors import PreconditionError
from poll_core.triggers import TriggerSpec, resolve_scope, trigger_key

load_dotenv()

logger = logging.getLogger("triggers")


def _setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )


def _make_fetcher(cfg: AppConfig):
    from data import get_tradier_fetcher

    return get_tradier_fetcher(
        cfg.api.access_token, cfg.api.environment, cfg.api.timeout_seconds
    )


def _make_store(cfg: AppConfig):
    from data.cursor_store import MemoryCursorStore, SqliteCursorStore

    if cfg.state.backend == "memory":
        return MemoryCursorStore()
    return SqliteCursorStore(cfg.state.path)


def _build_driver(cfg: AppConfig, on_events=None):
    from poller import PollDriver

    return PollDriver(
        _make_fetcher(cfg),
        _make_store(cfg),
        default_account_id=cfg.api.account_id or None,
        fetch_attempts=cfg.poll.fetch_attempts,
        backoff_seconds=cfg.poll.backoff_seconds,
        max_backoff_seconds=cfg.poll.max_backoff_seconds,
        on_events=on_events,
    )


def _select(cfg: AppConfig, name: str | None) -> list[TriggerSpec]:
    if name is None:
        return list(cfg.triggers)
    matches = [s for s in cfg.triggers if s.name == name]
    if not matches:
        raise click.ClickException(f"No trigger named '{name}' in config.")
    return matches


def _resolved_key(cfg: AppConfig, spec: TriggerSpec) -> str | None:
    try:
        return trigger_key(resolve_scope(spec, cfg.api.account_id or None))
    except PreconditionError:
        return None


@click.group()
@click.option("--config", "config_path", default="config.yaml", help="Path to config file.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: str, verbose: bool) -> None:
    """tradier-triggers: turn periodic Tradier snapshots into edge-triggered events."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------- tradier-triggers poll ----------


@cli.command()
@click.option("--trigger", "trigger_name", default=None, help="Only poll the trigger with this name.")
@click.pass_context
def poll(ctx: click.Context, trigger_name: str | None) -> None:
    """Run one poll cycle and print any events."""
    cfg = load_config(ctx.obj["config_path"])
    from cli.scheduler import make_event_sink, run_cycle_once
    from cli.structured_log import StructuredEventLogger
    from journal import EventJournal

    specs = _select(cfg, trigger_name)
    if not specs:
        click.echo("No triggers configured. Add a 'triggers' list to the config.")
        return

    journal = EventJournal(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout)
    slog = StructuredEventLogger(
        enabled=cfg.alerting.structured_logs, webhook_url=cfg.alerting.webhook_url
    )
    driver = _build_driver(cfg, on_events=make_event_sink(journal, slog))
    results = run_cycle_once(driver, specs, max_workers=cfg.poll.max_workers, slog=slog)
    total = sum(len(r.events) for r in results)
    click.echo(f"\n{total} event(s) from {len(results)} trigger(s).")


# ---------- tradier-triggers run ----------


@cli.command()
@click.option("--interval", default=None, type=float, help="Seconds between cycles (default: poll.interval_seconds).")
@click.option("--max-cycles", default=None, type=int, help="Stop after N cycles (default: run until Ctrl+C).")
@click.pass_context
def run(ctx: click.Context, interval: float | None, max_cycles: int | None) -> None:
    """Poll all triggers continuously at a fixed cadence."""
    cfg = load_config(ctx.obj["config_path"])
    from cli.scheduler import make_event_sink, run_poll_loop
    from cli.structured_log import StructuredEventLogger
    from journal import EventJournal

    if not cfg.triggers:
        click.echo("No triggers configured. Add a 'triggers' list to the config.")
        return

    journal = EventJournal(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout)
    slog = StructuredEventLogger(
        enabled=cfg.alerting.structured_logs, webhook_url=cfg.alerting.webhook_url
    )
    driver = _build_driver(cfg, on_events=make_event_sink(journal, slog))
    run_poll_loop(
        driver,
        list(cfg.triggers),
        interval=interval if interval is not None else cfg.poll.interval_seconds,
        max_workers=cfg.poll.max_workers,
        slog=slog,
        max_cycles=max_cycles,
    )


# ---------- tradier-triggers triggers ----------


@cli.command()
@click.pass_context
def triggers(ctx: click.Context) -> None:
    """List configured triggers and their cursor keys."""
    cfg = load_config(ctx.obj["config_path"])
    from cli.output import format_trigger_list

    specs = list(cfg.triggers)
    click.echo(format_trigger_list(specs, [_resolved_key(cfg, s) for s in specs]))


# ---------- tradier-triggers cursor ----------


@cli.group()
def cursor() -> None:
    """Inspect or reset stored cursors."""


@cursor.command("show")
@click.argument("name")
@click.pass_context
def cursor_show(ctx: click.Context, name: str) -> None:
    """Show the stored cursor for trigger NAME."""
    cfg = load_config(ctx.obj["config_path"])
    from cli.output import format_cursor

    spec = _select(cfg, name)[0]
    key = _resolved_key(cfg, spec)
    if key is None:
        raise click.ClickException(f"Trigger '{name}' has no resolvable scope (account id or symbol).")
    click.echo(format_cursor(key, _make_store(cfg).load(key)))


@cursor.command("reset")
@click.argument("name")
@click.pass_context
def cursor_reset(ctx: click.Context, name: str) -> None:
    """Delete the stored cursor for trigger NAME; its next poll only re-seeds."""
    cfg = load_config(ctx.obj["config_path"])
    spec = _select(cfg, name)[0]
    key = _resolved_key(cfg, spec)
    if key is None:
        raise click.ClickException(f"Trigger '{name}' has no resolvable scope (account id or symbol).")
    if _make_store(cfg).delete(key):
        click.echo(f"Deleted cursor {key}")
    else:
        click.echo(f"No cursor stored for {key}")


# ---------- tradier-triggers health ----------


@cli.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check system health: config, trigger scopes, cursor store, API token.

    Exit code 0 = healthy, 1 = unhealthy. Designed for Docker HEALTHCHECK.
    """
    checks: list[tuple[str, bool, str]] = []

    try:
        cfg = load_config(ctx.obj["config_path"])
        checks.append(("config", True, f"loaded ({len(cfg.triggers)} trigger(s), {cfg.api.environment})"))
    except Exception as e:
        checks.append(("config", False, str(e)))
        _print_health(checks)
        raise SystemExit(1)

    unresolved = [s.label for s in cfg.triggers if _resolved_key(cfg, s) is None]
    if unresolved:
        checks.append(("triggers", False, f"missing scope: {', '.join(unresolved)}"))
    else:
        checks.append(("triggers", True, f"{len(cfg.triggers)} resolvable"))

    try:
        store = _make_store(cfg)
        checks.append(("cursor_store", True, f"{cfg.state.backend}, {len(store.keys())} cursor(s)"))
    except Exception as e:
        checks.append(("cursor_store", False, str(e)))

    if cfg.api.access_token:
        checks.append(("api_token", True, "TRADIER_ACCESS_TOKEN set"))
    else:
        checks.append(("api_token", False, "TRADIER_ACCESS_TOKEN not set"))

    _print_health(checks)
    healthy = all(ok for _, ok, _ in checks)
    raise SystemExit(0 if healthy else 1)


def _print_health(checks: list[tuple[str, bool, str]]) -> None:
    for name, ok, detail in checks:
        status = "OK" if ok else "FAIL"
        click.echo(f"  [{status}] {name}: {detail}")
    healthy = all(ok for _, ok, _ in checks)
    click.echo(f"\nHealth: {'HEALTHY' if healthy else 'UNHEALTHY'}")


if __name__ == "__main__":
    cli()
