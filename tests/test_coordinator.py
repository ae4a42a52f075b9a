from __future__ import annotations

import signal
import threading
from pathlib import Path

import allure
import pytest

from autonotes import coordinator as coordinator_module
from autonotes.catalog import ReleaseNotesConfig
from autonotes.coordinator import FetchRunRequest, ReleaseNotesCoordinator
from autonotes.models import FailureKind, FetchPlan, FetchStage

pytestmark = [
    allure.epic("Release Notes"),
    allure.feature("Fan-Out Coordinator"),
]


def _config(variants: list[str], base_version: str = "9.9.9-999999") -> ReleaseNotesConfig:
    return ReleaseNotesConfig.build(
        catalog={variant: Path(variant) for variant in variants},
        base_versions={variant: base_version for variant in variants},
    )


def _request(tmp_path: Path, **overrides) -> FetchRunRequest:
    values = {
        "run_id": "run-1",
        "build_date": "240101",
        "output_root": tmp_path / "out",
    }
    values.update(overrides)
    return FetchRunRequest(**values)


@pytest.mark.parametrize("count", [0, 1, 5])
def test_coordinator_collects_one_outcome_per_task(
    tmp_path: Path,
    make_fake_downloader,
    count: int,
) -> None:
    variants = [f"v{index}" for index in range(count)]
    downloader = make_fake_downloader()
    coordinator = ReleaseNotesCoordinator(config=_config(variants), downloader=downloader)

    result = coordinator.run(_request(tmp_path))

    assert len(result.plans) == count
    assert len(result.outcomes) == count
    assert sorted(outcome.variant for outcome in result.outcomes) == sorted(variants)
    assert result.failures == []
    assert result.succeeded == count
    assert len(downloader.requests) == 2 * count


def test_fetch_all_with_no_plans_returns_immediately(fake_downloader) -> None:
    coordinator = ReleaseNotesCoordinator(config=_config([]), downloader=fake_downloader)

    assert coordinator.fetch_all([]) == []


def test_coordinator_runs_tasks_concurrently(tmp_path: Path, make_fake_downloader) -> None:
    variants = [f"v{index}" for index in range(5)]
    barrier = threading.Barrier(len(variants), timeout=10)

    def _wait_for_siblings(request) -> None:
        if request.artifact_name.startswith("vhd-release-notes-"):
            barrier.wait()

    downloader = make_fake_downloader(before_download=_wait_for_siblings)
    coordinator = ReleaseNotesCoordinator(config=_config(variants), downloader=downloader)

    result = coordinator.run(_request(tmp_path))

    assert result.failures == []


def test_one_failing_variant_does_not_abort_siblings(tmp_path: Path, make_fake_downloader) -> None:
    downloader = make_fake_downloader(failing={"vhd-release-notes-b"})
    coordinator = ReleaseNotesCoordinator(config=_config(["a", "b", "c"]), downloader=downloader)

    result = coordinator.run(_request(tmp_path))

    assert [failure.variant for failure in result.failures] == ["b"]
    assert result.failures[0].stage == FetchStage.NOTES_FETCHED
    assert result.succeeded == 2
    assert (tmp_path / "out" / "a" / "9.9.9-240101-image-list.json").exists()
    assert (tmp_path / "out" / "c" / "9.9.9-240101-image-list.json").exists()
    assert "vhd-image-bom-b" not in downloader.artifact_names


def test_bad_base_version_fails_only_its_variant(tmp_path: Path, fake_downloader) -> None:
    config = ReleaseNotesConfig.build(
        catalog={"a": Path("a"), "b": Path("b"), "c": Path("c")},
        base_versions={"a": "9.9.9-999999", "b": "999999"},
    )
    coordinator = ReleaseNotesCoordinator(config=config, downloader=fake_downloader)

    result = coordinator.run(_request(tmp_path))

    failures = {failure.variant: failure for failure in result.failures}
    assert set(failures) == {"b", "c"}
    assert all(f.failure_kind == FailureKind.CONFIGURATION for f in failures.values())
    assert all(f.stage == FetchStage.CREATED for f in failures.values())
    assert "longer than 6" in failures["b"].message
    assert "No base image version" in failures["c"].message
    assert [plan.variant for plan in result.plans] == ["a"]
    assert result.succeeded == 1
    assert {request.artifact_name for request in fake_downloader.requests} == {
        "vhd-release-notes-a",
        "vhd-image-bom-a",
    }


def test_end_to_end_include_fetches_only_selected_variant(
    tmp_path: Path,
    fake_downloader,
) -> None:
    coordinator = ReleaseNotesCoordinator(config=_config(["a", "b"]), downloader=fake_downloader)

    result = coordinator.run(_request(tmp_path, include="a", ignore=""))

    assert result.failures == []
    assert [outcome.variant for outcome in result.outcomes] == ["a"]
    out = tmp_path / "out"
    assert (out / "a" / "9.9.9-240101.txt").is_file()
    assert (out / "a" / "9.9.9-240101-image-list.json").is_file()
    assert not (out / "b").exists()
    assert all(request.artifact_name.endswith("-a") for request in fake_downloader.requests)


def test_rerun_overwrites_outputs_without_cleanup(tmp_path: Path, make_fake_downloader) -> None:
    config = _config(["a"])
    first = ReleaseNotesCoordinator(config=config, downloader=make_fake_downloader())
    second = ReleaseNotesCoordinator(config=config, downloader=make_fake_downloader())

    first.run(_request(tmp_path, run_id="run-1"))
    result = second.run(_request(tmp_path, run_id="run-2"))

    assert result.failures == []
    notes = tmp_path / "out" / "a" / "9.9.9-240101.txt"
    assert notes.read_text("utf-8") == "run-2:vhd-release-notes-a"


def test_canceled_run_reports_every_task(tmp_path: Path, fake_downloader) -> None:
    coordinator = ReleaseNotesCoordinator(config=_config(["a", "b"]), downloader=fake_downloader)
    coordinator.request_cancel(reason="test")

    result = coordinator.run(_request(tmp_path))

    assert len(result.failures) == 2
    assert {failure.failure_kind for failure in result.failures} == {FailureKind.CANCELED}
    assert fake_downloader.requests == []


def test_task_exception_is_converted_to_failure(
    tmp_path: Path,
    fake_downloader,
    monkeypatch,
) -> None:
    original = coordinator_module.run_fetch_task

    def _flaky(plan: FetchPlan, **kwargs):
        if plan.variant == "b":
            raise RuntimeError("worker crashed")
        return original(plan, **kwargs)

    monkeypatch.setattr(coordinator_module, "run_fetch_task", _flaky)
    coordinator = ReleaseNotesCoordinator(config=_config(["a", "b"]), downloader=fake_downloader)

    result = coordinator.run(_request(tmp_path))

    assert len(result.outcomes) == 2
    assert [failure.variant for failure in result.failures] == ["b"]
    assert result.failures[0].failure_kind == FailureKind.UNEXPECTED
    assert "worker crashed" in result.failures[0].message


def test_signal_handlers_request_cancellation(fake_downloader) -> None:
    coordinator = ReleaseNotesCoordinator(config=_config(["a"]), downloader=fake_downloader)
    original_sigint = signal.getsignal(signal.SIGINT)

    with coordinator.signal_handlers():
        handler = signal.getsignal(signal.SIGINT)
        assert callable(handler)
        handler(signal.SIGINT, None)
        assert coordinator.cancel_event.is_set()

    assert signal.getsignal(signal.SIGINT) == original_sigint


def test_signal_handlers_are_noop_outside_main_thread(fake_downloader) -> None:
    coordinator = ReleaseNotesCoordinator(config=_config(["a"]), downloader=fake_downloader)
    entered: list[bool] = []

    def _enter() -> None:
        with coordinator.signal_handlers():
            entered.append(True)

    thread = threading.Thread(target=_enter)
    thread.start()
    thread.join(timeout=5)

    assert entered == [True]
    assert not coordinator.cancel_event.is_set()
