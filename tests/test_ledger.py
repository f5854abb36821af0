from __future__ import annotations

from pathlib import Path

import pytest

from nitpicker.ledger import BuildLedger, BuildOutcome, LedgerConflictError, short_revision
from nitpicker.ledger import ledger as ledger_module
from nitpicker.projects import Project

REVISION = "abcdef1234567"


@pytest.fixture
def project(tmp_path: Path) -> Project:
    path = tmp_path / "foobar"
    path.mkdir()
    return Project(path)


@pytest.fixture
def project_with_log_dir(project: Project) -> Project:
    (project.working_dir / "log").mkdir()
    return project


def test_short_revision() -> None:
    assert short_revision(REVISION) == "abcdef1"
    assert short_revision("my_revision") == "my_revi"
    assert short_revision("r1") == "r1"


def test_path_for_prefers_log_directory(project_with_log_dir: Project) -> None:
    ledger = BuildLedger()
    base = project_with_log_dir.working_dir

    assert ledger.path_for(project_with_log_dir, REVISION) == base / "log" / "abcdef1.log"
    assert ledger.path_for(project_with_log_dir, REVISION, "failed") == base / "log" / "abcdef1.failed.log"


def test_path_for_falls_back_to_project_root(project: Project) -> None:
    ledger = BuildLedger()
    base = project.working_dir

    assert ledger.path_for(project, REVISION) == base / "abcdef1.log"
    assert ledger.path_for(project, REVISION, "failed") == base / "abcdef1.failed.log"


def test_status_of_unknown_without_artifacts(project: Project) -> None:
    assert BuildLedger().status_of(project, REVISION) is BuildOutcome.UNKNOWN


@pytest.mark.parametrize(
    ("tag", "expected"),
    [("succeed", BuildOutcome.SUCCESS), ("failed", BuildOutcome.FAILURE)],
)
def test_status_of_reads_tagged_artifact(project: Project, tag: str, expected: BuildOutcome) -> None:
    ledger = BuildLedger()
    ledger.path_for(project, REVISION, tag).write_text("foobar", encoding="utf-8")

    assert ledger.status_of(project, REVISION) is expected


def test_in_progress_artifact_is_unknown(project: Project) -> None:
    ledger = BuildLedger()
    ledger.path_for(project, REVISION).write_text("half written", encoding="utf-8")

    assert ledger.status_of(project, REVISION) is BuildOutcome.UNKNOWN


def test_record_publishes_terminal_artifact(project_with_log_dir: Project) -> None:
    ledger = BuildLedger()

    entry = ledger.record(project_with_log_dir, REVISION, BuildOutcome.SUCCESS, "all green")

    assert entry.path == ledger.path_for(project_with_log_dir, REVISION, "succeed")
    assert entry.read() == "all green"
    assert not ledger.path_for(project_with_log_dir, REVISION).exists()
    assert ledger.status_of(project_with_log_dir, REVISION) is BuildOutcome.SUCCESS


def test_record_replaces_stale_in_progress_file(project: Project) -> None:
    ledger = BuildLedger()
    ledger.path_for(project, REVISION).write_text("from a crashed run", encoding="utf-8")

    entry = ledger.record(project, REVISION, BuildOutcome.FAILURE, "compile error")

    assert entry.read() == "compile error"
    assert not ledger.path_for(project, REVISION).exists()


def test_record_refuses_second_terminal_artifact(project: Project) -> None:
    ledger = BuildLedger()
    ledger.record(project, REVISION, BuildOutcome.FAILURE, "compile error")

    with pytest.raises(LedgerConflictError):
        ledger.record(project, REVISION, BuildOutcome.SUCCESS, "ok")

    assert not ledger.path_for(project, REVISION, "succeed").exists()
    assert ledger.status_of(project, REVISION) is BuildOutcome.FAILURE


def test_record_refuses_unknown_outcome(project: Project) -> None:
    with pytest.raises(ValueError):
        BuildLedger().record(project, REVISION, BuildOutcome.UNKNOWN, "")


def test_interrupted_write_leaves_revision_unknown(
    project: Project, monkeypatch: pytest.MonkeyPatch
) -> None:
    ledger = BuildLedger()

    def disk_full(_fd: int) -> None:
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(ledger_module.os, "fsync", disk_full)

    with pytest.raises(OSError):
        ledger.record(project, REVISION, BuildOutcome.SUCCESS, "output")

    assert not ledger.path_for(project, REVISION).exists()
    assert not ledger.path_for(project, REVISION, "succeed").exists()
    assert ledger.status_of(project, REVISION) is BuildOutcome.UNKNOWN


def test_conflicting_artifacts_report_failure(project: Project) -> None:
    ledger = BuildLedger()
    ledger.path_for(project, REVISION, "succeed").write_text("", encoding="utf-8")
    ledger.path_for(project, REVISION, "failed").write_text("", encoding="utf-8")

    assert ledger.status_of(project, REVISION) is BuildOutcome.FAILURE


def test_entry_for(project: Project) -> None:
    ledger = BuildLedger()
    assert ledger.entry_for(project, REVISION) is None

    ledger.record(project, REVISION, BuildOutcome.SUCCESS, "done")
    entry = ledger.entry_for(project, REVISION)

    assert entry is not None
    assert entry.outcome is BuildOutcome.SUCCESS
    assert entry.project == "foobar"
    assert entry.short_revision == "abcdef1"
    assert entry.read() == "done"


def test_ledger_state_survives_new_instance(project: Project) -> None:
    BuildLedger().record(project, REVISION, BuildOutcome.SUCCESS, "done")

    assert BuildLedger().status_of(Project(project.working_dir), REVISION) is BuildOutcome.SUCCESS
