"""Migrate BAW process apps, with their toolkit dependencies, from one server to another.

Usage:
  projectxfer --source-url URL --source-user U --source-password P \\
              --target-url URL --target-user U --target-password P \\
              (--project NAME | --projects PA1,PA2 | --all) [--export-dir DIR] [--ignore-branches] [-v]

Notes:
- All snapshots of all branches are migrated unless --ignore-branches is given
- Toolkits already present on the target (same full name) are skipped
- Connection flags fall back to PROJECTXFER_* environment variables (.env honoured)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from projectxfer import config
from projectxfer.adapters.repository_client import RepositoryApiError, RepositoryClient
from projectxfer.services.migration_service import MigrationError, MigrationService

log = logging.getLogger(__name__)

_EXAMPLES = """\
examples:
  migrate one process app by name (all branches):
    projectxfer --source-url https://source:9443 --source-user admin --source-password pass1 \\
      --target-url https://target:9443 --target-user admin --target-password pass2 \\
      --project "My Process App"

  only the default branch:
    projectxfer ... --project "My Process App" --ignore-branches

  several process apps by acronym:
    projectxfer ... --projects PA1,PA2,PA3

  every process app:
    projectxfer ... --all
"""


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="projectxfer",
        description="Export process apps with their toolkit dependencies from one BAW system and import them into another",
        epilog=_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    for side in ("source", "target"):
        ap.add_argument(
            f"--{side}-url",
            default=config.endpoint_default(f"{side}_url"),
            help=f"{side.capitalize()} system base URL, e.g. https://{side}-server:9443",
        )
        ap.add_argument(
            f"--{side}-user",
            default=config.endpoint_default(f"{side}_user"),
            help=f"{side.capitalize()} system username",
        )
        ap.add_argument(
            f"--{side}-password",
            default=config.endpoint_default(f"{side}_password"),
            help=f"{side.capitalize()} system password",
        )

    selection = ap.add_mutually_exclusive_group(required=True)
    selection.add_argument("-p", "--project", default=None, help="Name of a specific Process App to migrate")
    selection.add_argument(
        "--projects",
        default=None,
        help="Comma-separated Process App acronyms to migrate (e.g. PA1,PA2,PA3)",
    )
    selection.add_argument("-a", "--all", dest="migrate_all", action="store_true", help="Migrate all Process Apps")

    ap.add_argument(
        "-e",
        "--export-dir",
        default=config.export_dir(),
        help=f"Directory for exported files (default: {config.DEFAULT_EXPORT_DIR})",
    )
    ap.add_argument(
        "--ignore-branches",
        action="store_true",
        help="Only export/import snapshots from each project's default branch",
    )
    ap.add_argument(
        "--timeout",
        type=float,
        default=config.http_timeout(),
        help="HTTP timeout in seconds per request",
    )
    ap.add_argument(
        "--verify-tls",
        action=argparse.BooleanOptionalAction,
        default=config.verify_tls(),
        help="Verify server TLS certificates (default from PROJECTXFER_VERIFY_TLS, else off for self-signed servers)",
    )
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    config.load_env()
    ap = _build_parser()
    args = ap.parse_args(argv)

    missing = [f"--{opt.replace('_', '-')}" for opt in config.ENDPOINT_ENV_VARS if not getattr(args, opt)]
    if missing:
        ap.error(f"missing required option(s): {', '.join(missing)}")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    log.info("Connecting to source system: %s", args.source_url)
    source = RepositoryClient(
        args.source_url,
        args.source_user,
        args.source_password,
        timeout=args.timeout,
        verify=args.verify_tls,
    )
    log.info("Connecting to target system: %s", args.target_url)
    target = RepositoryClient(
        args.target_url,
        args.target_user,
        args.target_password,
        timeout=args.timeout,
        verify=args.verify_tls,
    )

    try:
        service = MigrationService(
            source,
            target,
            Path(args.export_dir),
            default_branch_only=args.ignore_branches,
        )
        log.info("Using export directory: %s", service.export_dir.resolve())

        if args.migrate_all:
            service.migrate_all_process_apps()
        elif args.projects is not None:
            service.migrate_projects_by_acronym(args.projects.split(","))
        else:
            log.info("Starting migration of Process App: %s", args.project)
            project = source.find_project_by_name(args.project)
            if project is None:
                log.error("Process App not found: %s", args.project)
                return 1
            service.migrate_project(project)
    except (RepositoryApiError, MigrationError, OSError) as e:
        log.error("Migration failed with error: %s", e, exc_info=True)
        return 1

    stats = service.get_migration_stats()
    log.info(
        "Migration finished: %d/%d projects succeeded, %d snapshots attempted, %d snapshots failed, %d toolkits skipped",
        stats.successful_projects,
        stats.total_projects,
        stats.total_snapshots,
        stats.failed_snapshots,
        stats.skipped_toolkits,
    )
    print(f"Migration complete: {stats.successful_projects}/{stats.total_projects} projects succeeded")
    return 0


if __name__ == "__main__":
    sys.exit(main())
