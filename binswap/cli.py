# SPDX-License-Identifier: MIT
"""Command-line interface for binswap."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from binswap.config import Settings
from binswap.core.backup import BackupCoordinator
from binswap.core.errors import BinswapError
from binswap.core.graph import ProjectGraph
from binswap.core.hasher import TargetHasher
from binswap.core.interfaces import (
    LibrariesPatcher,
    NullLibrariesPatcher,
    NullSupportFilesPatcher,
    ProjectModel,
    SupportFilesPatcher,
)
from binswap.core.orchestrator import SubstitutionOrchestrator
from binswap.core.scope import ProjectTargetsResolver, TargetScope, TargetSelector
from binswap.core.store import BinaryStore

# Set up logging
logger = logging.getLogger("binswap")


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt)


def load_project(path: Path) -> ProjectModel:
    """Open a project: an .xcodeproj bundle or a JSON graph.

    Raises:
        BinswapError: If the path is not a supported project.
    """
    if path.suffix == ".xcodeproj":
        from binswap.xcode.project import XcodeProjectModel

        return XcodeProjectModel.load(path)
    if path.suffix == ".json":
        return ProjectGraph.load(path)
    raise BinswapError(f"unsupported project: {path} (expected .xcodeproj or .json)")


def source_root(project: ProjectModel) -> Path:
    """Directory relative source paths of project resolve against."""
    return project.path.parent


def project_patchers(
    project: ProjectModel, support_files: str | None
) -> tuple[LibrariesPatcher, SupportFilesPatcher]:
    """Libraries and support files patchers suited to project."""
    from binswap.xcode.patchers import CocoaPodsSupportFilesPatcher, XcodeLibrariesPatcher
    from binswap.xcode.project import XcodeProjectModel

    libraries: LibrariesPatcher = NullLibrariesPatcher()
    if isinstance(project, XcodeProjectModel):
        libraries = XcodeLibrariesPatcher(project)
    support: SupportFilesPatcher = NullSupportFilesPatcher()
    if support_files:
        support = CocoaPodsSupportFilesPatcher(Path(support_files))
    return libraries, support


def scope_from_args(args: argparse.Namespace) -> TargetScope | None:
    """Build the target scope from --targets / --regex / --except."""
    if args.targets:
        if args.except_regex:
            logger.error("--except only applies to --regex")
            return None
        return TargetScope.exact(args.targets)
    if args.regex:
        return TargetScope.filter(args.regex, args.except_regex)
    logger.error("Select targets with --targets or --regex")
    return None


def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings.from_env().override(
        home=Path(args.home).expanduser() if args.home else None,
        configuration=args.configuration,
        jobs=args.jobs,
    )


def backups_for(settings: Settings, project_path: Path, support_files: str | None) -> BackupCoordinator:
    extra = [Path(support_files)] if support_files else []
    return BackupCoordinator(settings.backup_dir / project_path.stem, extra)


def cmd_use(args: argparse.Namespace) -> int:
    """Replace the selected targets of a project with prebuilt binaries."""
    setup_logging(args.verbose, args.debug)

    scope = scope_from_args(args)
    if scope is None:
        return 1
    project_path = Path(args.project)
    try:
        settings = settings_from_args(args)
        project = load_project(project_path)
        libraries, support = project_patchers(project, args.support_files)
        orchestrator = SubstitutionOrchestrator(
            project,
            store=BinaryStore(settings.bin_dir, settings.configuration),
            backup=backups_for(settings, project_path, args.support_files),
            hasher=TargetHasher(source_root(project), jobs=settings.jobs),
            libraries_patcher=libraries,
            support_files_patcher=support,
            jobs=settings.jobs,
        )
        result = orchestrator.substitute(
            scope,
            try_mode=args.try_mode,
            build_flags=args.xcargs,
            delete_sources=args.delete_sources,
        )
    except (BinswapError, ValueError) as e:
        logger.error("%s", e)
        return 1

    if result.try_mode or result.skipped:
        return 0
    logger.info(
        "Substituted %d target(s), kept %d as source",
        len(result.substituted),
        len(result.excluded),
    )
    for name in result.excluded:
        logger.warning("Kept %s as source: its product is a resource bundle", name)
    return 0


def cmd_drop(args: argparse.Namespace) -> int:
    """Delete the selected targets from a project."""
    setup_logging(args.verbose, args.debug)

    scope = scope_from_args(args)
    if scope is None:
        return 1
    project_path = Path(args.project)
    try:
        settings = settings_from_args(args)
        project = load_project(project_path)
        orchestrator = SubstitutionOrchestrator(
            project,
            store=BinaryStore(settings.bin_dir, settings.configuration),
            backup=backups_for(settings, project_path, None),
            jobs=settings.jobs,
        )
        result = orchestrator.drop(
            scope, try_mode=args.try_mode, keep_groups=not args.delete_sources
        )
    except (BinswapError, ValueError) as e:
        logger.error("%s", e)
        return 1

    if not (result.try_mode or result.skipped):
        logger.info("Dropped %d target(s)", result.deleted)
    return 0


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore the project saved before the last substitution."""
    setup_logging(args.verbose, args.debug)

    project_path = Path(args.project)
    try:
        settings = settings_from_args(args)
        backups = backups_for(settings, project_path, None)
        if not backups.has_backup():
            logger.error("No backup of %s in %s", project_path, backups.root)
            return 1
        project = load_project(project_path)
        backups.restore(project)
    except (BinswapError, ValueError) as e:
        logger.error("%s", e)
        return 1
    return 0


def cmd_hash(args: argparse.Namespace) -> int:
    """Print the cache keys of the selected targets and whether they are built."""
    setup_logging(args.verbose, args.debug)

    scope = scope_from_args(args)
    if scope is None:
        return 1
    try:
        settings = settings_from_args(args)
        project = load_project(Path(args.project))
        targets = TargetSelector(ProjectTargetsResolver(project)).select(scope)
        keys = TargetHasher(source_root(project), jobs=settings.jobs).hash(
            targets, args.xcargs
        )
    except (BinswapError, ValueError) as e:
        logger.error("%s", e)
        return 1

    store = BinaryStore(settings.bin_dir, settings.configuration)
    for name in sorted(keys):
        state = "built" if store.contains(targets[name]) else "missing"
        print(f"{name} {keys[name]} {state}")
    return 0


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser."""
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")
    parser.add_argument("project", help="Path to an .xcodeproj bundle or a JSON graph")
    parser.add_argument("--home", help="State directory (default: $BINSWAP_HOME or ~/.binswap)")
    parser.add_argument(
        "-c", "--configuration", help="Build configuration of the binaries"
    )
    parser.add_argument("-j", "--jobs", type=int, help="Number of parallel workers")


def add_selection_args(parser: argparse.ArgumentParser) -> None:
    """Add target selection and build flag arguments."""
    parser.add_argument("-t", "--targets", nargs="+", metavar="NAME", help="Exact target names")
    parser.add_argument("-r", "--regex", metavar="PATTERN", help="Include targets matching PATTERN")
    parser.add_argument(
        "-e",
        "--except",
        dest="except_regex",
        metavar="PATTERN",
        help="Exclude targets matching PATTERN (with --regex)",
    )
    parser.add_argument(
        "--xcarg",
        dest="xcargs",
        action="append",
        default=[],
        metavar="FLAG",
        help="Build flag the binaries were built with (repeatable)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the binswap CLI."""
    parser = argparse.ArgumentParser(
        prog="binswap",
        description="Replace source targets of a native project with prebuilt binaries.",
        epilog="Run 'binswap <command> --help' for command-specific help.",
    )
    from binswap import __version__

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # binswap use
    use_parser = subparsers.add_parser("use", help="Use prebuilt binaries for targets")
    add_common_args(use_parser)
    add_selection_args(use_parser)
    use_parser.add_argument(
        "--try",
        dest="try_mode",
        action="store_true",
        help="Only print the targets that would be substituted",
    )
    use_parser.add_argument(
        "--delete-sources",
        action="store_true",
        help="Also delete the groups of substituted targets",
    )
    use_parser.add_argument(
        "--support-files",
        metavar="DIR",
        help="CocoaPods 'Target Support Files' directory to rewrite",
    )
    use_parser.set_defaults(func=cmd_use)

    # binswap restore
    restore_parser = subparsers.add_parser(
        "restore", help="Restore the project saved before substitution"
    )
    add_common_args(restore_parser)
    restore_parser.set_defaults(func=cmd_restore)

    # binswap hash
    hash_parser = subparsers.add_parser("hash", help="Print cache keys of targets")
    add_common_args(hash_parser)
    add_selection_args(hash_parser)
    hash_parser.set_defaults(func=cmd_hash)

    # binswap drop
    drop_parser = subparsers.add_parser("drop", help="Delete targets from a project")
    add_common_args(drop_parser)
    add_selection_args(drop_parser)
    drop_parser.add_argument(
        "--try",
        dest="try_mode",
        action="store_true",
        help="Only print the targets that would be deleted",
    )
    drop_parser.add_argument(
        "--delete-sources",
        action="store_true",
        help="Also delete the groups of deleted targets",
    )
    drop_parser.set_defaults(func=cmd_drop)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    # Run the specified command
    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
