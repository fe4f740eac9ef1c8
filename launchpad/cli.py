"""Command-line entry point for ``python -m launchpad``.

Sub-commands:
    status   Show which provider CLIs are available
    deploy   Deploy a project directory to Railway or Netlify
    select   Pick a provider from template and connected service lists
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
import time
from pathlib import Path
from typing import Optional

from rich.markup import escape

from launchpad.config import Config
from launchpad.env_files import load_env_files, split_by_target
from launchpad.models import DeploymentRequest, Provider
from launchpad.providers.netlify import load_site_id
from launchpad.service import DeploymentService
from launchpad.utils import console, format_duration, get_head_commit, print_summary_table

TOKEN_ENV_VARS: dict[Provider, str] = {
    Provider.RAILWAY: "RAILWAY_API_TOKEN",
    Provider.NETLIFY: "NETLIFY_AUTH_TOKEN",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="launchpad",
        description="Launchpad -- deploy web projects to Railway or Netlify",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  launchpad status\n"
            "  launchpad deploy netlify ./my-site --name 'My Site'\n"
            "  launchpad deploy railway ./my-app --env SECRET_KEY=abc\n"
            "  launchpad select --template railway,netlify --connected netlify\n"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON config file (default: LAUNCHPAD_* environment variables)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show provider CLI availability")

    deploy = sub.add_parser("deploy", help="Deploy a project")
    deploy.add_argument("provider", choices=[p.value for p in Provider])
    deploy.add_argument("project_path", help="Project directory")
    deploy.add_argument("--name", default=None, help="Display name (default: directory name)")
    deploy.add_argument(
        "--token",
        default=None,
        help="Auth token (default: RAILWAY_API_TOKEN / NETLIFY_AUTH_TOKEN)",
    )
    deploy.add_argument(
        "--existing-id",
        default=None,
        help="Site id (Netlify) or project id (Railway) to redeploy",
    )
    deploy.add_argument(
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Environment variable to set remotely (repeatable)",
    )
    deploy.add_argument(
        "--no-env-files",
        action="store_true",
        help="Do not read the project's .env files",
    )

    select = sub.add_parser("select", help="Choose a provider")
    select.add_argument("--template", required=True, help="Comma-separated template services")
    select.add_argument("--connected", required=True, help="Comma-separated connected services")

    return parser


def parse_env_pairs(pairs: list[str]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` arguments; the value may itself contain ``=``."""
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid --env value (expected KEY=VALUE): {pair}")
        env[key.strip()] = value
    return env


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _print_progress(text: str) -> None:
    sys.stdout.write(text if text.endswith("\n") else text + "\n")
    sys.stdout.flush()


# ---------------------------------------------------------------------------
# Sub-commands
# ---------------------------------------------------------------------------


async def run_status(service: DeploymentService) -> int:
    status = await service.get_status()
    for provider in Provider:
        cli = status.for_provider(provider)
        print_summary_table(
            {
                "Available": "yes" if cli.available else "no",
                "Path": cli.path or "-",
                "Version": cli.version or "-",
                "Error": cli.error or "-",
            },
            title=f"{provider.display_name} CLI",
        )
    return 0


async def run_deploy(service: DeploymentService, args: argparse.Namespace) -> int:
    provider = Provider(args.provider)
    project_path = Path(args.project_path).resolve()
    if not project_path.is_dir():
        console.print(f"[bold red]Error:[/bold red] Project directory not found: {project_path}")
        return 1

    token = args.token or os.environ.get(TOKEN_ENV_VARS[provider], "")
    if not token:
        console.print(
            f"[bold red]Error:[/bold red] No auth token: pass --token or set "
            f"{TOKEN_ENV_VARS[provider]}"
        )
        return 1

    try:
        cli_env = parse_env_pairs(args.env)
    except ValueError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        return 1
    env_vars = {} if args.no_env_files else load_env_files(project_path)
    env_vars.update(cli_env)

    existing_id = args.existing_id
    if existing_id is None and provider is Provider.NETLIFY:
        existing_id = load_site_id(project_path, service.config.netlify)

    groups = split_by_target(env_vars)
    print_summary_table(
        {
            "Provider": provider.display_name,
            "Project": str(project_path),
            "Existing ID": existing_id or "-",
            "Frontend vars": str(len(groups["frontend"])),
            "Backend vars": str(len(groups["backend"])),
        },
        title="Deployment",
    )

    request = DeploymentRequest(
        provider=provider,
        project_path=project_path,
        project_name=args.name or project_path.name,
        auth_token=token,
        env_vars=env_vars,
        existing_resource_id=existing_id,
        progress_sink=_print_progress,
    )
    started = time.monotonic()
    result = await service.deploy(request)
    elapsed = format_duration(time.monotonic() - started)
    if not result.success:
        console.print(
            f"[bold red]Deploy failed:[/bold red] {escape(result.error or '')} (after {elapsed})"
        )
        return 1

    commit = await get_head_commit(project_path)
    print_summary_table(
        {
            "URL": result.url or "-",
            "Resource ID": result.resource_id or "-",
            "Commit": commit[:7] if commit else "-",
            "Duration": elapsed,
        },
        title="Deployed",
    )
    return 0


async def run_select(service: DeploymentService, args: argparse.Namespace) -> int:
    await service.initialize()
    provider = service.select_provider(_split_list(args.template), _split_list(args.connected))
    if provider is None:
        console.print("[bold yellow]No connected provider with an available CLI.[/bold yellow]")
        return 1
    print(provider.value)
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for ``python -m launchpad``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            console.print(f"[bold red]Error:[/bold red] Config file not found: {config_path}")
            sys.exit(1)
        config = Config.load(config_path)
    else:
        config = Config.from_env()

    service = DeploymentService(config)
    if args.command == "status":
        code = asyncio.run(run_status(service))
    elif args.command == "deploy":
        code = asyncio.run(run_deploy(service, args))
    else:
        code = asyncio.run(run_select(service, args))

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
