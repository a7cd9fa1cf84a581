"""
Analysis pipeline entry point.

`AnalysisService.run_full_analysis` performs discovery -> extraction ->
analysis -> report writing. Manual, debounced and polling triggers all call
it; at most one run is active at a time and a trigger that arrives during a
run is dropped.
"""

import logging
import os
import threading
import time
from typing import Callable, Optional

from .config import TrackerSettings, load_settings
from .core.compiler_config import CompilerConfigCache
from .core.entities import AnalysisResult
from .core.resolver import ModuleResolver
from .errors import AnalysisCancelled, ConfigError, DiscoveryError
from .graph.builder import DependencyGraphBuilder
from .liveness import LivenessRuleEngine
from .parsing.file_finder import find_project_files
from .parsing.parser import parse_project
from .report.markdown import write_reports

logger = logging.getLogger(__name__)


Notifier = Callable[[str, str], None]


def log_notifier(level: str, message: str) -> None:
    """Default notifier: user-visible messages go to the log."""
    logger.log(logging.ERROR if level == "error" else logging.INFO, "Dependency Tracker: %s", message)


class AnalysisService:
    """
    Owns the per-process state of the tracker: the compiler config cache,
    the reentrancy lock, the cancellation signal and the last result.
    """

    def __init__(
        self,
        project_root: str,
        settings: Optional[TrackerSettings] = None,
        config_path: Optional[str] = None,
        notify: Optional[Notifier] = None,
        write_output: bool = True,
    ):
        self.project_root = os.path.abspath(project_root)
        self.config_path = config_path
        self._settings = settings
        self.notify = notify or log_notifier
        self.write_output = write_output

        self.config_cache = CompilerConfigCache()
        self.cancel_event = threading.Event()
        self.last_result: Optional[AnalysisResult] = None
        self.last_duration: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def settings(self) -> TrackerSettings:
        """Explicit settings, or settings re-read from the project."""
        if self._settings is not None:
            return self._settings
        return load_settings(self.project_root, self.config_path)

    def cancel(self) -> None:
        """Ask the active run (if any) to stop before it publishes."""
        self.cancel_event.set()

    def run_full_analysis(self, project_root: Optional[str] = None) -> Optional[AnalysisResult]:
        """
        Run the full pipeline once.

        Args:
            project_root: Override the service's project root for this run

        Returns:
            The new AnalysisResult, or None if the run was skipped, cancelled
            or failed
        """
        if not self._lock.acquire(blocking=False):
            logger.info("Analysis is already in progress. Skipping trigger.")
            return None

        root = os.path.abspath(project_root) if project_root else self.project_root
        self.cancel_event.clear()
        start_time = time.time()
        logger.info("Starting full dependency analysis cycle...")

        try:
            result = self._run(root)
        except AnalysisCancelled as e:
            logger.info("Analysis cancelled: %s", e)
            return None
        except DiscoveryError as e:
            logger.error("File discovery failed: %s", e)
            self.notify("error", f"Could not find project files. {e}")
            return None
        except ConfigError as e:
            logger.error("Invalid settings: %s", e)
            self.notify("error", str(e))
            return None
        except Exception:
            logger.exception("An unexpected error occurred during the dependency analysis cycle")
            self.notify("error", "An unexpected error occurred. Check the log for details.")
            return None
        finally:
            self._lock.release()

        self.last_result = result
        self.last_duration = time.time() - start_time
        logger.info("Dependency analysis complete in %.2fs.", self.last_duration)
        return result

    def _run(self, root: str) -> AnalysisResult:
        settings = self.settings()

        # Fresh per-run state: nothing cached may leak from the previous run
        self.config_cache.invalidate()
        resolver = ModuleResolver(os.path.realpath(root), self.config_cache)
        rule_engine = LivenessRuleEngine.from_settings(settings.liveness)

        files = find_project_files(root, settings, self.cancel_event)
        if not files:
            logger.info("No relevant source files found.")

        facts = parse_project(files, root, self.cancel_event)
        if self.cancel_event.is_set():
            raise AnalysisCancelled("Cancelled before analysis")

        result = DependencyGraphBuilder(root, resolver, rule_engine).analyze(facts)
        if self.cancel_event.is_set():
            raise AnalysisCancelled("Cancelled before publishing")

        if result.errors:
            logger.warning(
                "Encountered %d errors/warnings during analysis. Results may be incomplete.",
                len(result.errors),
            )
            for error in result.errors:
                logger.debug("  %s", error)

        if self.write_output:
            output_dir = settings.output_dir
            if not os.path.isabs(output_dir):
                output_dir = os.path.join(result.project_root, output_dir)
            write_reports(result, output_dir)

        return result
