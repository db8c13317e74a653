"""CLI interface for jobrunner."""

import asyncio
import json
import sys
from typing import NoReturn, Optional

import click

from .exceptions import JobNotFoundError
from .logging_config import setup_logging
from .models import Config
from .registry import get_job, load_modules, registered_jobs
from .settings import Settings
from .storage import Storage

BUILTIN_MODULE = "jobrunner.builtin"

CONFIG_KEYS = {
    "max-retries": "max_retries",
    "backoff-ms": "backoff_ms",
    "timeout-ms": "timeout_ms",
}


def get_storage(ctx: click.Context) -> Storage:
    """Get or create the storage instance for this invocation."""
    obj = ctx.find_root().obj
    if "storage" not in obj:
        obj["storage"] = Storage(obj["settings"].data_dir)
    return obj["storage"]


def _fail(message: str) -> NoReturn:
    click.echo(f"✗ {message}", err=True)
    sys.exit(1)


@click.group()
@click.option("--module", "-m", "modules", multiple=True, help="Module to import for job registration (repeatable)")
@click.pass_context
def cli(ctx: click.Context, modules):
    """jobrunner - Async job runner with retry, backoff and dead-letter queue"""
    try:
        settings = Settings()
    except ValueError as e:
        _fail(f"Invalid settings: {e}")
    setup_logging(settings.log_level, settings.log_json, settings.log_file)
    ctx.obj = {"settings": settings}
    try:
        load_modules([BUILTIN_MODULE, *settings.modules, *modules])
    except ImportError as e:
        _fail(f"Cannot import job module: {e}")


@cli.command()
@click.pass_context
def jobs(ctx: click.Context):
    """List registered jobs.

    Example:
        jobrunner -m myapp.jobs jobs
    """
    config = get_storage(ctx).get_config()

    click.echo(f"\n{'Name':<20} {'Retries':<8} {'Backoff':<10} {'Timeout':<10} {'Description':<30}")
    click.echo("-" * 80)
    for name, registered in sorted(registered_jobs().items()):
        resolved = registered.resolve(config)
        click.echo(
            f"{name:<20} {resolved.max_retries:<8} {str(resolved.backoff_ms) + 'ms':<10} "
            f"{str(resolved.timeout_ms) + 'ms':<10} {registered.description[:30]:<30}"
        )
    click.echo()


@cli.command()
@click.argument("name")
@click.option("--payload", default="{}", help="JSON payload handed to the job")
@click.option("--max-retries", type=int, help="Override max retries")
@click.option("--backoff-ms", type=int, help="Override backoff base (ms)")
@click.option("--timeout-ms", type=int, help="Override per-attempt timeout (ms)")
@click.pass_context
def run(ctx: click.Context, name: str, payload: str, max_retries: Optional[int],
        backoff_ms: Optional[int], timeout_ms: Optional[int]):
    """Run a registered job.

    Example:
        jobrunner run echo --payload '{"hello": "world"}'
        jobrunner run fail --max-retries 1 --backoff-ms 0
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON: {e}")

    storage = get_storage(ctx)
    try:
        runner = get_job(name).build_runner(
            storage.get_config(),
            store=storage,
            max_retries=max_retries,
            backoff_ms=backoff_ms,
            timeout_ms=timeout_ms,
        )
    except (JobNotFoundError, ValueError) as e:
        _fail(str(e))

    try:
        result = asyncio.run(runner.run(data))
    except Exception as e:
        _fail(f"Job {name} failed: {e}")

    click.echo(json.dumps(result, default=str))


@cli.command()
@click.pass_context
def status(ctx: click.Context):
    """Show dead-letter statistics and configuration.

    Example:
        jobrunner status
    """
    storage = get_storage(ctx)
    stats = storage.get_stats()
    config = storage.get_config()

    click.echo("\n" + "=" * 50)
    click.echo("jobrunner Status")
    click.echo("=" * 50)
    click.echo(f"Dead Letters:   {stats['total']}")
    for name, count in sorted(stats["by_job"].items()):
        click.echo(f"  {name + ':':<14}{count}")
    click.echo("\nConfiguration:")
    click.echo(f"  Max Retries:  {config.max_retries}")
    click.echo(f"  Backoff:      {config.backoff_ms}ms")
    click.echo(f"  Timeout:      {config.timeout_ms}ms")
    click.echo("=" * 50 + "\n")


@cli.group()
def dlq():
    """Manage the Dead Letter Queue"""
    pass


@dlq.command("list")
@click.option("--job", "job_name", help="Only show dead letters of this job")
@click.option("--limit", default=10, help="Maximum records to display")
@click.pass_context
def dlq_list(ctx: click.Context, job_name: Optional[str], limit: int):
    """List dead letters.

    Example:
        jobrunner dlq list --job send-email
    """
    records = get_storage(ctx).get_dead_letters(job_name)[:limit]

    if not records:
        click.echo("Dead Letter Queue is empty")
        return

    click.echo(f"\n{'ID':<34} {'Job':<20} {'Attempts':<10} {'Reason':<30}")
    click.echo("-" * 96)
    for record in records:
        click.echo(f"{record.id:<34} {record.job_name[:20]:<20} {record.attempts:<10} {record.reason[:30]:<30}")
    click.echo()


@dlq.command("show")
@click.argument("dead_letter_id")
@click.pass_context
def dlq_show(ctx: click.Context, dead_letter_id: str):
    """Show one dead letter as JSON."""
    record = get_storage(ctx).get_dead_letter(dead_letter_id)
    if record is None:
        _fail(f"Dead letter {dead_letter_id} not found")
    click.echo(record.model_dump_json(indent=2))


@dlq.command("retry")
@click.argument("dead_letter_id")
@click.pass_context
def dlq_retry(ctx: click.Context, dead_letter_id: str):
    """Replay a dead letter's payload through its job.

    The record is removed once the replay has run; a failed replay is
    dead-lettered again as a new record.

    Example:
        jobrunner dlq retry 3f2a...
    """
    storage = get_storage(ctx)
    record = storage.get_dead_letter(dead_letter_id)
    if record is None:
        _fail(f"Dead letter {dead_letter_id} not found")

    try:
        runner = get_job(record.job_name).build_runner(storage.get_config(), store=storage)
    except JobNotFoundError as e:
        _fail(str(e))

    try:
        result = asyncio.run(runner.run(record.payload))
    except Exception as e:
        storage.remove_dead_letter(dead_letter_id)
        _fail(f"Replay of {dead_letter_id} failed again: {e}")

    storage.remove_dead_letter(dead_letter_id)
    click.echo(f"✓ Dead letter {dead_letter_id} replayed successfully")
    click.echo(json.dumps(result, default=str))


@dlq.command("remove")
@click.argument("dead_letter_id")
@click.pass_context
def dlq_remove(ctx: click.Context, dead_letter_id: str):
    """Remove one dead letter."""
    if not get_storage(ctx).remove_dead_letter(dead_letter_id):
        _fail(f"Dead letter {dead_letter_id} not found")
    click.echo(f"✓ Dead letter {dead_letter_id} removed")


@dlq.command("purge")
@click.option("--job", "job_name", help="Only purge dead letters of this job")
@click.pass_context
def dlq_purge(ctx: click.Context, job_name: Optional[str]):
    """Remove all dead letters (or those of one job)."""
    removed = get_storage(ctx).purge_dead_letters(job_name)
    click.echo(f"✓ Purged {removed} dead letter(s)")


@cli.group()
def config():
    """Manage runner defaults"""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Show current configuration.

    Example:
        jobrunner config show
    """
    cfg = get_storage(ctx).get_config()

    click.echo("\nCurrent Configuration:")
    click.echo(f"  max-retries:  {cfg.max_retries}")
    click.echo(f"  backoff-ms:   {cfg.backoff_ms}")
    click.echo(f"  timeout-ms:   {cfg.timeout_ms}")
    click.echo()


@config.command("set", context_settings={"ignore_unknown_options": True})
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str):
    """Set a configuration value.

    Example:
        jobrunner config set max-retries 5
        jobrunner config set backoff-ms 500
    """
    if key not in CONFIG_KEYS:
        _fail(f"Unknown config key: {key}")

    storage = get_storage(ctx)
    try:
        cfg = Config(**{**storage.get_config().model_dump(), CONFIG_KEYS[key]: int(value)})
    except ValueError as e:
        _fail(f"Invalid value: {e}")

    storage.set_config(cfg)
    click.echo(f"✓ Configuration updated: {key} = {value}")


if __name__ == "__main__":
    cli()
