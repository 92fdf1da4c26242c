"""CLI entry point for CareerForge."""

import json
import logging
import os
import sys
from functools import wraps
from pathlib import Path

import click
import structlog
from dotenv import load_dotenv

from careerforge import __version__
from careerforge.config import Config, load_config
from careerforge.exceptions import ConfigError, NotFoundError, StorageError, ValidationError
from careerforge.orchestrator import build_orchestrator
from careerforge.providers import resolve_candidates
from careerforge.schemas import shape_json_schema
from careerforge.schemas.evidence import EvidenceBundle, GoalProfile
from careerforge.tasks import TASK_CLASSES, get_task_class

# Load environment variables from .env file
load_dotenv()

DEFAULT_LOG_LEVEL = "info"


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Console logging to stderr so stdout stays clean JSON."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


logger = structlog.get_logger(__name__)

TASK_CHOICE = click.Choice(sorted(TASK_CLASSES))


def evidence_options(func):
    """Shared evidence flags for commands that take an evidence bundle."""
    options = [
        click.option("--resume", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                     help="Resume text file"),
        click.option("--notes", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                     help="Notes text file"),
        click.option("--projects", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                     help="Projects summary file"),
        click.option("--tech", "technologies", multiple=True, help="Declared technology (repeatable)"),
        click.option("--target-role", "target_roles", multiple=True, help="Target role (repeatable)"),
        click.option("--interest", "interests", multiple=True, help="Interest (repeatable)"),
        click.option("--question", default=None, help="Question for the chat_query task"),
        click.option("--context", "context_text", default=None, help="Explicit context for chat_query"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _read_optional(path: Path | None) -> str | None:
    if path is None:
        return None
    return path.read_text(encoding="utf-8")


def build_evidence(
    resume: Path | None,
    notes: Path | None,
    projects: Path | None,
    technologies: tuple[str, ...],
    target_roles: tuple[str, ...],
    interests: tuple[str, ...],
    question: str | None,
    context_text: str | None,
) -> EvidenceBundle:
    goals = None
    if target_roles or interests:
        goals = GoalProfile(target_roles=list(target_roles), interests=list(interests))
    return EvidenceBundle(
        resume_text=_read_optional(resume),
        notes=_read_optional(notes),
        projects=_read_optional(projects),
        technologies=list(technologies),
        goals=goals,
        question=question,
        context=context_text,
    )


def with_config(func):
    """Load configuration into the command; ConfigError exits with code 2."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        try:
            cfg = load_config(ctx.obj.get("config_path"))
            configure_logging(cfg.logging.get("level", DEFAULT_LOG_LEVEL))
            return func(cfg, *args, **kwargs)
        except ConfigError as e:
            click.echo(f"❌ AI service unavailable: {e}", err=True)
            logger.error("config_error", error=str(e))
            ctx.exit(2)

    return wrapper


def _echo_json(data: dict) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", default=None, type=click.Path(path_type=Path),
              help="Configuration file path (default: $CAREERFORGE_CONFIG or ./config.yaml)")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None):
    """CareerForge: stable AI insights over career evidence."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    configure_logging()


@cli.command()
@click.argument("task", type=TASK_CHOICE)
@click.option("--user", "-u", "user_id", required=True, help="User identifier")
@evidence_options
@click.option("--no-cache", is_flag=True, default=False,
              help="Disable the result cache (always recompute)")
@with_config
def run(cfg: Config, task: str, user_id: str, no_cache: bool, **evidence_kwargs):
    """Run a task and print its JSON result."""
    evidence = build_evidence(**evidence_kwargs)
    orchestrator = build_orchestrator(cfg, disable_cache=no_cache)

    try:
        record = orchestrator.execute(task, user_id, evidence)
    except ValidationError as e:
        click.echo(f"❌ Invalid input: {e}", err=True)
        sys.exit(1)
    except StorageError as e:
        click.echo(f"❌ Result store error: {e}", err=True)
        sys.exit(1)

    logger.info(
        "task_completed",
        task=task,
        origin=record.origin.value,
        provider=record.provider,
        model=record.model,
    )
    _echo_json(record.response())


@cli.command()
@click.argument("task", type=TASK_CHOICE)
@click.option("--user", "-u", "user_id", required=True, help="User identifier")
@with_config
def latest(cfg: Config, task: str, user_id: str):
    """Print the most recent stored result for a user and task."""
    orchestrator = build_orchestrator(cfg)
    try:
        record = orchestrator.latest(user_id, task)
    except NotFoundError:
        click.echo("No result found", err=True)
        sys.exit(1)
    _echo_json(record.response())


@cli.command()
@click.argument("task", type=TASK_CHOICE)
@evidence_options
def fingerprint(task: str, **evidence_kwargs):
    """Print the cache fingerprint for the given evidence."""
    evidence = build_evidence(**evidence_kwargs)
    click.echo(get_task_class(task)().fingerprint(evidence))


@cli.command()
@click.argument("task", type=TASK_CHOICE)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the schema to a file instead of stdout")
def schema(task: str, output: Path | None):
    """Print the JSON schema of a task's result shape."""
    document = shape_json_schema(get_task_class(task).shape)
    if output is None:
        _echo_json(document)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    click.echo(f"✅ Schema written to {output}", err=True)


@cli.command()
@with_config
def providers(cfg: Config):
    """List each task's provider chain and whether credentials are set."""
    for task in sorted(TASK_CLASSES):
        click.echo(f"{task}:")
        if not cfg.fallback_chain.get(task):
            click.echo("   (no candidates configured)")
            continue
        for position, candidate in enumerate(resolve_candidates(task, cfg), start=1):
            env_var = cfg.api_key_env(candidate.provider)
            status = "✅" if os.environ.get(env_var, "").strip() else f"❌ missing {env_var}"
            click.echo(f"   {position}. {candidate.label()} {status}")


if __name__ == "__main__":
    cli()
