"""Fan-out/fan-in over per-variant fetch tasks."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable, Iterator, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from autonotes.catalog import ReleaseNotesConfig
from autonotes.config import ConfigurationError
from autonotes.downloader import ArtifactDownloader
from autonotes.fetch import run_fetch_task
from autonotes.models import FailureKind, FetchOutcome, FetchPlan, FetchStage
from autonotes.selection import select_variants
from autonotes.versioning import resolve_version

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FetchRunResult:
    """Every outcome of one run: planning failures plus one per launched task."""

    plans: list[FetchPlan] = field(default_factory=list)
    outcomes: list[FetchOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[FetchOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)


@dataclass(slots=True)
class FetchRunRequest:
    """Inputs describing which run to fetch and where to place artifacts."""

    run_id: str
    build_date: str
    output_root: Path
    include: str | None = None
    ignore: str | None = None


class ReleaseNotesCoordinator:
    """Launches one fetch task per selected variant and collects all outcomes."""

    def __init__(
        self,
        *,
        config: ReleaseNotesConfig,
        downloader: ArtifactDownloader,
        cancel_event: threading.Event | None = None,
        workspace_root: Path | None = None,
        emit: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config
        self.downloader = downloader
        self.cancel_event = cancel_event or threading.Event()
        self.workspace_root = workspace_root
        self.emit = emit or (lambda _: None)

    def run(self, request: FetchRunRequest) -> FetchRunResult:
        """Select, plan and fetch; failures never abort sibling variants."""

        selected = select_variants(
            self.config.catalog,
            include=request.include,
            ignore=request.ignore,
        )
        plans, planning_failures = self.plan(request, selected)
        result = FetchRunResult(plans=plans, outcomes=list(planning_failures))
        result.outcomes.extend(self.fetch_all(plans))
        return result

    def plan(
        self,
        request: FetchRunRequest,
        selected: Mapping[str, Path],
    ) -> tuple[list[FetchPlan], list[FetchOutcome]]:
        """Resolve versions up front; a bad version only fails its own variant."""

        plans: list[FetchPlan] = []
        failures: list[FetchOutcome] = []
        for variant, output_subpath in selected.items():
            try:
                version = resolve_version(self.config.base_version(variant), request.build_date)
            except ConfigurationError as exc:
                logger.error("Cannot resolve version for variant %s: %s", variant, exc)
                failures.append(
                    FetchOutcome.failure(
                        variant=variant,
                        stage=FetchStage.CREATED,
                        kind=FailureKind.CONFIGURATION,
                        message=str(exc),
                    ),
                )
                continue
            plans.append(
                FetchPlan(
                    variant=variant,
                    output_subpath=output_subpath,
                    run_id=request.run_id,
                    version=version,
                    output_root=request.output_root,
                ),
            )
        return plans, failures

    def fetch_all(self, plans: list[FetchPlan]) -> list[FetchOutcome]:
        """Run every plan concurrently and wait for exactly one outcome each."""

        if not plans:
            return []

        outcomes: list[FetchOutcome] = []
        with ThreadPoolExecutor(
            max_workers=len(plans),
            thread_name_prefix="autonotes-fetch",
        ) as executor:
            futures: dict[Future[FetchOutcome], FetchPlan] = {
                executor.submit(
                    run_fetch_task,
                    plan,
                    downloader=self.downloader,
                    cancel_event=self.cancel_event,
                    workspace_root=self.workspace_root,
                    emit=self.emit,
                ): plan
                for plan in plans
            }
            for future in as_completed(futures):
                outcomes.append(_outcome_of(future, futures[future]))
        logger.info(
            "Collected %d outcomes (%d failed)",
            len(outcomes),
            sum(1 for outcome in outcomes if not outcome.succeeded),
        )
        return outcomes

    def request_cancel(self, *, reason: str) -> None:
        if not self.cancel_event.is_set():
            logger.warning("Cancellation requested (%s); pending downloads will be skipped", reason)
            self.emit(f"Cancellation requested ({reason}); stopping after in-flight downloads.")
        self.cancel_event.set()

    @contextmanager
    def signal_handlers(self) -> Iterator[None]:
        """Turn SIGINT/SIGTERM into a cancellation request for the duration of a run."""

        if not hasattr(signal, "SIGINT"):
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            self.request_cancel(reason=name)

        try:
            signal.signal(signal.SIGINT, _handler)
            signal.signal(signal.SIGTERM, _handler)
        except ValueError:
            # Signal handlers can only be installed in main thread.
            yield
            return
        try:
            yield
        finally:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)


def _outcome_of(future: Future[FetchOutcome], plan: FetchPlan) -> FetchOutcome:
    try:
        return future.result()
    except Exception as exc:  # noqa: BLE001
        logger.exception("Fetch task for variant %s raised", plan.variant)
        return FetchOutcome.failure(
            variant=plan.variant,
            stage=FetchStage.CREATED,
            kind=FailureKind.UNEXPECTED,
            message=f"Unexpected error: {exc}",
        )
