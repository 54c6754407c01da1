"""
CLI interface for stepwright.

Provides commands to discover, inspect, and run framework steps.

Frameworks live in sub-directories of the framework root (from
config.yaml, $STEPWRIGHT_FRAMEWORK_ROOT or --root). Each holds a
framework.yaml/json descriptor and a steps/ directory of Python files.
"""

import json
from pathlib import Path

import click

from stepwright import __version__
from stepwright.config import LOG_LEVELS


def _echo_error(message: str) -> None:
    click.echo(f"✗ {message}", err=True)


@click.group()
@click.version_option(version=__version__, prog_name="stepwright")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override the configured log level",
)
@click.pass_context
def main(ctx, log_level):
    """
    stepwright - Dynamic step registry.

    Discover framework steps, inspect them, and run them by key.
    """
    from stepwright.config import StepwrightConfig, apply_env_overrides, load_config
    from stepwright.utils import setup_logging

    ctx.ensure_object(dict)
    try:
        config = load_config()
    except Exception as e:
        # Commands fall back to defaults, $STEPWRIGHT_FRAMEWORK_ROOT and --root; `init` creates the file
        ctx.obj["config_error"] = str(e)
        config = apply_env_overrides(StepwrightConfig())
    ctx.obj["config"] = config

    setup_logging(
        log_level=log_level or config.log_level,
        log_format=config.log_format,
        log_file=config.log_file_path,
    )


def _resolve_root(ctx, root: str | None) -> Path:
    """Pick the framework root from --root or config; exit if neither is set."""
    if root:
        return Path(root)
    config = ctx.obj["config"]
    if config.framework_root_path is None:
        _echo_error("No framework root configured.")
        if "config_error" in ctx.obj:
            click.echo(f"  Config not loaded: {ctx.obj['config_error']}", err=True)
        click.echo("Pass --root or set framework_root in config.yaml.", err=True)
        raise SystemExit(1)
    return config.framework_root_path


def _build_registry(ctx, workers: int | None = None, timeout: float | None = None):
    from stepwright.discovery import DiscoveryEngine
    from stepwright.registry import FrameworkStepRegistry
    from stepwright.runtime import StepRuntime

    config = ctx.obj["config"]
    engine = DiscoveryEngine(
        load_timeout_s=timeout if timeout is not None else config.load_timeout_s,
        max_workers=workers if workers is not None else config.max_workers,
    )
    return FrameworkStepRegistry(StepRuntime(), engine)


def _initialize(registry, root: Path):
    from stepwright.errors import FrameworkRootError

    try:
        return registry.initialize(root)
    except FrameworkRootError as e:
        _echo_error(str(e))
        raise SystemExit(1)


root_option = click.option(
    "--root", "root", type=click.Path(file_okay=False), help="Framework root directory"
)


@main.command("discover")
@root_option
@click.option("--workers", type=int, default=None, help="Frameworks discovered concurrently")
@click.option("--timeout", type=float, default=None, help="Per-load timeout in seconds")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.pass_context
def discover(ctx, root: str | None, workers: int | None, timeout: float | None, as_json: bool):
    """
    Discover and register all framework steps, then print a report.

    Examples:

        stepwright discover --root ./frameworks

        stepwright discover --json --workers 4
    """
    from stepwright.render import print_report
    from stepwright.utils import console

    framework_root = _resolve_root(ctx, root)
    registry = _build_registry(ctx, workers=workers, timeout=timeout)
    report = _initialize(registry, framework_root)

    if as_json:
        data = report.to_dict()
        data["registered"] = registry.registered_keys
        click.echo(json.dumps(data, indent=2))
    else:
        print_report(report, console, registered=registry.registered_keys)


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
@click.option("--root", "root", default=None, help="Framework root to write into the config")
def init(force: bool, root: str | None):
    """Initialize stepwright configuration."""
    import yaml

    from stepwright.config import CONFIG_FILENAME, StepwrightConfig, get_stepwright_home

    home = get_stepwright_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / CONFIG_FILENAME
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = StepwrightConfig(
        framework_root=root or "~/frameworks",
        env_file=str(home / ".env"),
    ).to_dict()
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    click.echo(f"Initialized stepwright config at {cfg_path}")


@main.group("steps")
def steps_group():
    """Inspect discovered steps."""
    pass


@steps_group.command("list")
@root_option
@click.option("--framework", "framework", default=None, help="Only list steps of this framework")
@click.pass_context
def list_steps(ctx, root: str | None, framework: str | None):
    """List loaded steps, grouped by framework."""
    framework_root = _resolve_root(ctx, root)
    registry = _build_registry(ctx)
    _initialize(registry, framework_root)

    by_framework: dict[str, list[str]] = {}
    for key in registry.get_framework_steps():
        step = registry.get_framework_step_info(key)
        by_framework.setdefault(step.framework, []).append(key)

    if framework:
        if framework not in by_framework:
            available = ", ".join(sorted(by_framework)) or "none"
            click.echo(f"No steps for framework '{framework}'. Available frameworks: {available}")
            return
        by_framework = {framework: by_framework[framework]}

    if not by_framework:
        click.echo("No steps found.")
        return

    for name in sorted(by_framework):
        click.echo(f"{name}:")
        for key in sorted(by_framework[name]):
            click.echo(f"  {key}")


@steps_group.command("show")
@click.argument("key")
@root_option
@click.pass_context
def show_step(ctx, key: str, root: str | None):
    """Show details of a loaded step."""
    framework_root = _resolve_root(ctx, root)
    registry = _build_registry(ctx)
    report = _initialize(registry, framework_root)

    step = registry.get_framework_step_info(key)
    if step is None:
        skipped = [entry for entry in report.skipped if entry.key == key]
        if skipped:
            entry = skipped[0]
            _echo_error(f"{key} was skipped [{entry.reason.value}]: {entry.detail}")
        else:
            _echo_error(f"Unknown step: {key}")
        raise SystemExit(1)

    data = step.to_dict()
    data["registered"] = key in registry.registered_keys
    click.echo(json.dumps(data, indent=2))


def _parse_options(pairs: tuple[str, ...]) -> dict[str, str]:
    options = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--option")
        options[name] = value
    return options


@main.command("run")
@click.argument("key")
@root_option
@click.option("--context", "context_json", default="{}", help="Call context as a JSON object")
@click.option("--option", "option_pairs", multiple=True, help="Step option as KEY=VALUE (repeatable)")
@click.pass_context
def run(ctx, key: str, root: str | None, context_json: str, option_pairs: tuple[str, ...]):
    """
    Discover steps and invoke one by KEY (framework.step_name).

    Examples:

        stepwright run refactoring_management.refactor_step

        stepwright run testing.run_tests --context '{"project_path": "/repo"}'
    """
    from stepwright.errors import StepNotFoundError

    try:
        call_context = json.loads(context_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint="--context")
    if not isinstance(call_context, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--context")
    options = _parse_options(option_pairs)

    framework_root = _resolve_root(ctx, root)
    registry = _build_registry(ctx)
    _initialize(registry, framework_root)

    try:
        result = registry.runtime.invoke(key, call_context, options)
    except StepNotFoundError:
        _echo_error(f"Unknown step: {key}")
        available = registry.runtime.list_keys()
        if available:
            click.echo("\nAvailable steps:", err=True)
            for k in available:
                click.echo(f"  {k}", err=True)
        raise SystemExit(1)
    except Exception as e:
        _echo_error(f"{key} failed: {e}")
        raise SystemExit(1)

    click.echo(json.dumps(result, indent=2, default=str))
    click.echo(f"✓ {key} completed", err=True)
