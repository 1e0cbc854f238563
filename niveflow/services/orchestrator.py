"""Orchestrates sync -> decide -> build runs over the configured sources"""

import logging
from collections.abc import Callable
from datetime import datetime

from niveflow.models.run_result import BuildOutcome, BuildStatus, RunResult
from niveflow.models.source import SourceDescriptor
from niveflow.models.sources_config import SourcesConfig
from niveflow.services.build_dispatcher import BuildDispatcher, BuildError
from niveflow.services.source_sync import SourceSynchronizer
from niveflow.services.telemetry import TelemetryService, get_telemetry_service
from niveflow.utils.sources_loader import ConfigurationError, load_sources_config

logger = logging.getLogger(__name__)


class Orchestrator:
    """Run the full sync and build pipeline, optionally scoped to one source"""

    def __init__(
        self,
        synchronizer: SourceSynchronizer | None = None,
        dispatcher: BuildDispatcher | None = None,
        sources_loader: Callable[[], SourcesConfig] | None = None,
        telemetry: TelemetryService | None = None,
    ):
        """
        Initialize orchestrator

        Args:
            synchronizer: Source synchronizer (optional, creates new if None)
            dispatcher: Build dispatcher (optional, creates new if None)
            sources_loader: Callable returning the sources configuration
            telemetry: Telemetry service (optional, uses the global service if None)
        """
        self.synchronizer = synchronizer or SourceSynchronizer()
        self.dispatcher = dispatcher or BuildDispatcher()
        self.sources_loader = sources_loader or load_sources_config
        self.telemetry = telemetry or get_telemetry_service()

    def select_sources(self, only: str | None = None) -> list[SourceDescriptor]:
        """
        Load the configured sources and apply the optional name filter

        Raises:
            ConfigurationError: If no source is configured or `only` matches none
        """
        sources_config = self.sources_loader()
        if not sources_config.sources:
            raise ConfigurationError("No documentation sources configured")

        if only is None:
            return list(sources_config.sources)

        source = sources_config.get_source(only)
        if source is None:
            raise ConfigurationError(
                f"Source '{only}' not found (available: {', '.join(sources_config.names)})"
            )
        return [source]

    def needs_build(self, source: SourceDescriptor, changed: bool, force: bool) -> bool:
        """Per-source rebuild decision"""
        return force or changed or not self.dispatcher.output_dir(source).exists()

    async def run(self, force: bool = False, only: str | None = None) -> RunResult:
        """
        Execute one orchestration run

        Process:
        1. Select sources (all, or the one named by `only`)
        2. Synchronize them concurrently
        3. Rebuild, one at a time, each source that is forced, changed or has no output yet

        Args:
            force: Rebuild every selected source regardless of changes
            only: Restrict the run to this source name

        Returns:
            RunResult: success is False only for forced runs with a failed build

        Raises:
            ConfigurationError: If the selection is empty or invalid; nothing is synced or built
        """
        start_time = datetime.now()
        scope = only or "all"

        with self.telemetry.span("orchestration_run", {"run.force": force, "run.scope": scope}):
            try:
                sources = self.select_sources(only)
            except ConfigurationError as e:
                logger.error(f"Configuration error: {e}")
                self.telemetry.log_run(force, only, error=e)
                raise

            logger.info(f"Synchronizing {len(sources)} source(s) (force={force}, scope={scope})")
            sync_results = await self.synchronizer.sync_all(sources)
            syncs = {result.name: result for result in sync_results}

            outcomes: list[BuildOutcome] = []
            for source in sources:
                sync = syncs.get(source.name)
                if sync is not None and sync.error:
                    # A failed sync skips the source for this cycle, even when forced
                    logger.warning(f"[{source.name}] Sync failed, skipping build")
                    outcomes.append(
                        BuildOutcome(
                            name=source.name, status=BuildStatus.SKIPPED, error=sync.error
                        )
                    )
                    continue

                changed = sync.changed if sync is not None else False
                if not self.needs_build(source, changed, force):
                    logger.info(f"[{source.name}] Unchanged, skipping build")
                    outcomes.append(BuildOutcome(name=source.name, status=BuildStatus.SKIPPED))
                    continue

                try:
                    outcomes.append(await self.dispatcher.build(source))
                except BuildError as e:
                    logger.error(f"[{source.name}] {e}")
                    outcomes.append(
                        BuildOutcome(name=source.name, status=BuildStatus.FAILED, error=str(e))
                    )

        end_time = datetime.now()
        failed = [outcome.name for outcome in outcomes if outcome.status == BuildStatus.FAILED]
        success = not (force and failed)

        result = RunResult(
            success=success,
            start_time=start_time,
            end_time=end_time,
            duration_seconds=(end_time - start_time).total_seconds(),
            error=f"Build failed for: {', '.join(failed)}" if failed else None,
            syncs=sync_results,
            outcomes=outcomes,
        )

        logger.info(
            f"Run finished in {result.duration_seconds:.2f}s: "
            f"built={result.built} skipped={result.skipped} failed={result.failed}"
        )
        self.telemetry.log_run(force, only, result=result)
        return result
