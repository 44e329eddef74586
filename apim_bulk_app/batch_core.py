"""
Core batch logic for bulk export and import runs.

A run takes the entities produced by a lister, evaluates each one against a
`FilterSet`, and invokes a single external operation for every entity that
matches. Outcomes are tallied into a `BatchResult` owned by the run; nothing
is shared between runs. Entities are processed strictly one after another,
in listing order, and every operation is attempted exactly once.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from .filters import Entity, FilterSet, matches

SUCCEEDED = "succeeded"
FAILED = "failed"
SKIPPED = "skipped"


class EntityOperation(Protocol):
    """The external action applied to each matched entity (an export or an import)."""

    def perform(self, entity: Entity) -> bool:
        ...


@dataclass
class BatchResult:
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    records: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed + self.skipped

    def record(self, entity: Entity, result: str) -> None:
        """Counts one entity. Called exactly once per entity in the batch."""
        if result == SUCCEEDED:
            self.succeeded += 1
        elif result == FAILED:
            self.failed += 1
        elif result == SKIPPED:
            self.skipped += 1
        else:
            raise ValueError(f"Unknown batch result '{result}'")
        self.records.append({"entity": entity, "result": result})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "results": [
                {
                    "name": r["entity"].name,
                    "version": r["entity"].version,
                    "provider": r["entity"].provider,
                    "result": r["result"],
                }
                for r in self.records
            ],
        }


@dataclass
class BatchPreview:
    would_process: List[Entity] = field(default_factory=list)
    would_skip: List[Entity] = field(default_factory=list)

    @property
    def match_count(self) -> int:
        return len(self.would_process)

    @property
    def skip_count(self) -> int:
        return len(self.would_skip)


class Outcome(enum.Enum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    NO_MATCH = "no_match"

    @property
    def exit_code(self) -> int:
        return 0 if self is Outcome.SUCCESS else 1


def run_batch(
    entities: Iterable[Entity],
    filter_set: FilterSet,
    operation: EntityOperation,
    on_event: Optional[Callable[[Entity, str], None]] = None,
) -> BatchResult:
    """
    Runs the operation against every entity that passes the filters.

    Unmatched entities are counted as skipped and the operation is never
    invoked for them. A failed operation is final for that entity and does
    not stop the batch.

    Args:
        entities: Entities in listing order.
        filter_set: The filters for this run.
        operation: Object whose `perform(entity)` returns True on success.
        on_event: Optional callback receiving (entity, result) after each entity.

    Returns:
        The accumulated BatchResult.
    """
    result = BatchResult()
    for entity in entities:
        if not matches(entity, filter_set):
            outcome = SKIPPED
        elif operation.perform(entity):
            outcome = SUCCEEDED
        else:
            outcome = FAILED
        result.record(entity, outcome)
        if on_event is not None:
            on_event(entity, outcome)
    return result


def preview_batch(entities: Iterable[Entity], filter_set: FilterSet) -> BatchPreview:
    """Evaluates filters only; used for --dry-run. No operation is invoked."""
    preview = BatchPreview()
    for entity in entities:
        if matches(entity, filter_set):
            preview.would_process.append(entity)
        else:
            preview.would_skip.append(entity)
    return preview


def summarize(result: BatchResult) -> Outcome:
    """Classifies a finished batch into one of the three terminal outcomes."""
    if result.succeeded == 0 and result.failed == 0:
        return Outcome.NO_MATCH
    if result.failed == 0:
        return Outcome.SUCCESS
    return Outcome.PARTIAL_FAILURE
