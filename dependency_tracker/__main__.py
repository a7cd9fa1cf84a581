"""
Command line entry point.

    python -m dependency_tracker [PATH] [--output DIR] [--config FILE] [--watch] [--verbose]
"""

import argparse
import os
import sys
import time

from .config import configure_logging, load_settings
from .errors import ConfigError
from .service import AnalysisService
from .triggers import ChangeWatcher, DebouncedTrigger, PollingTrigger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dependency_tracker",
        description="Find used, unused and unresolved exports in a Next.js project.",
    )
    parser.add_argument("path", nargs="?", default=".", help="project root (default: current directory)")
    parser.add_argument("--output", help="report directory (default: <root>/.dependencies)")
    parser.add_argument("--config", help="settings file (default: <root>/.dependency-tracker.yaml)")
    parser.add_argument("--watch", action="store_true",
                        help="re-run after source changes (and on the polling interval if enabled)")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser


def print_summary(result, duration: float) -> None:
    summary = result.summary()
    print(f"\n[OK] Analysis complete in {duration:.2f}s.")
    print("\n[SUMMARY]:")
    print(f"   Exports: {summary['exports']} ({summary['used_exports']} used, {summary['unused_exports']} unused)")
    print(f"   Missing imports: {summary['missing_imports']}")
    print(f"   Interfaces: {summary['interfaces']}")
    print(f"   Routes: {summary['routes']}")
    print(f"   Server actions: {summary['server_actions']}  Hooks: {summary['hooks']}")
    if summary["errors"]:
        print(f"   [WARN] {summary['errors']} errors/warnings, see analysis.json")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    project_root = os.path.abspath(args.path)
    if not os.path.isdir(project_root):
        print(f"[ERROR] The folder '{project_root}' does not exist.")
        return 1

    try:
        settings = load_settings(project_root, args.config)
    except ConfigError as e:
        print(f"[ERROR] {e}")
        return 1
    if args.output:
        settings.output_dir = os.path.abspath(args.output)

    def notify(level: str, message: str) -> None:
        print(f"[{level.upper()}] {message}")

    service = AnalysisService(project_root, settings=settings, notify=notify)

    print(f"[*] Analyzing project: {project_root}...")
    result = service.run_full_analysis()
    if result is None:
        return 1
    print_summary(result, service.last_duration or 0.0)
    print(f"[SAVE] Reports saved to: {os.path.join(project_root, settings.output_dir)}")

    if not args.watch:
        return 0

    def rerun():
        if service.run_full_analysis() is not None:
            print_summary(service.last_result, service.last_duration or 0.0)

    debounced = DebouncedTrigger(rerun, settings.debounce_delay_ms)
    watcher = ChangeWatcher(project_root, settings, debounced.trigger)
    poller = PollingTrigger(rerun, settings.polling_interval_seconds) if settings.enable_polling else None

    print("\n[*] Watching for changes (Ctrl+C to stop)...")
    watcher.start()
    if poller:
        poller.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n[*] Stopping...")
    finally:
        watcher.stop()
        debounced.cancel()
        if poller:
            poller.stop()
        service.cancel()
    return 0


if __name__ == "__main__":
    sys.exit(main())
