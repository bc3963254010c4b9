"""Repair persisted workflow statuses that fall outside the lifecycle.

Records written by older clients may carry capitalised statuses such as
``"Accepted"``; those are normalised case-insensitively. Anything else that is
not a known status is reset to ``pending`` with the decision fields and the
assignment cleared. The engine itself never coerces: it reports such records as
unavailable until this tool has been run.

Usage:
    marine-workflow-repair [--apply] [--sqlite-path PATH]

Without ``--apply`` the tool only reports what it would change.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Sequence

from marine_workflow.domain.records import WorkflowStatus
from marine_workflow.storage.base import RecordStore

logger = logging.getLogger(__name__)

_KNOWN_STATUSES = {status.value for status in WorkflowStatus}


@dataclass(frozen=True)
class StatusCorrection:
    record_id: str
    family: str
    old_status: Any
    new_status: str
    reset: bool


@dataclass
class RepairReport:
    scanned: int = 0
    dry_run: bool = True
    corrections: list[StatusCorrection] = field(default_factory=list)

    @property
    def normalized(self) -> list[StatusCorrection]:
        return [item for item in self.corrections if not item.reset]

    @property
    def reset(self) -> list[StatusCorrection]:
        return [item for item in self.corrections if item.reset]

    def summary(self) -> str:
        mode = "dry run" if self.dry_run else "applied"
        return (
            f"Scanned {self.scanned} records ({mode}): "
            f"{len(self.normalized)} normalized, {len(self.reset)} reset to pending"
        )


def repair_statuses(store: RecordStore, *, dry_run: bool = True) -> RepairReport:
    report = RepairReport(dry_run=dry_run)
    for row in store.raw_rows():
        report.scanned += 1
        status = row.get("status")
        if status in _KNOWN_STATUSES:
            continue

        repaired, correction = _repair_row(row)
        report.corrections.append(correction)
        logger.warning(
            "%s %s %s: status %r -> %r%s",
            "Would repair" if dry_run else "Repairing",
            correction.family,
            correction.record_id,
            correction.old_status,
            correction.new_status,
            " (decision and assignment cleared)" if correction.reset else "",
        )
        if not dry_run:
            store.replace_row(repaired)

    logger.info(report.summary())
    return report


def _repair_row(row: dict[str, Any]) -> tuple[dict[str, Any], StatusCorrection]:
    old_status = row.get("status")
    candidate = old_status.strip().lower() if isinstance(old_status, str) else None
    repaired = dict(row)

    if candidate in _KNOWN_STATUSES:
        repaired["status"] = candidate
        if candidate == WorkflowStatus.PENDING.value:
            _clear_decision(repaired)
        else:
            # Legacy rows predate decision tracking; attribute the decision to the target.
            repaired["decided_by"] = repaired.get("decided_by") or repaired.get("target_id")
            repaired["decided_at"] = repaired.get("decided_at") or repaired.get("updated_at")
            if candidate == WorkflowStatus.DECLINED.value:
                repaired["assignment"] = None
                repaired["assigned_at"] = None
        reset = False
    else:
        repaired["status"] = WorkflowStatus.PENDING.value
        _clear_decision(repaired)
        reset = True

    correction = StatusCorrection(
        record_id=str(row.get("id")),
        family=str(row.get("family")),
        old_status=old_status,
        new_status=repaired["status"],
        reset=reset,
    )
    return repaired, correction


def _clear_decision(row: dict[str, Any]) -> None:
    row["decided_by"] = None
    row["decided_at"] = None
    row["decision_note"] = None
    row["assignment"] = None
    row["assigned_at"] = None


def main(argv: Sequence[str] | None = None) -> int:
    from marine_workflow.config import load_settings
    from marine_workflow.logging_utils import configure_logging
    from marine_workflow.storage.sqlite import SqliteStore

    parser = argparse.ArgumentParser(description="Repair unrecognized workflow record statuses")
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Write the corrections; without it only report what would change",
    )
    parser.add_argument(
        "--sqlite-path",
        default=None,
        help="SQLite database to repair (defaults to SQLITE_PATH)",
    )
    args = parser.parse_args(argv)

    configure_logging()
    settings = load_settings()
    path = args.sqlite_path or settings.storage.sqlite_path

    store = SqliteStore(path, wal=settings.storage.sqlite_wal)
    try:
        report = repair_statuses(store, dry_run=not args.apply)
    finally:
        store.close()

    print(report.summary())
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
