"""Outcome of batch operations whose items succeed or fail independently."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID


@dataclass
class BatchItemResult:
    """The result for one item of a batch."""

    key: Any
    ok: bool
    record_id: UUID | None = None
    error: str | None = None
    skipped: bool = False


@dataclass
class BatchResult:
    """Per-item outcomes of a batch run."""

    items: list[BatchItemResult] = field(default_factory=list)

    def succeeded(self, key: Any, record_id: UUID) -> None:
        self.items.append(BatchItemResult(key=key, ok=True, record_id=record_id))

    def failed(self, key: Any, error: str) -> None:
        self.items.append(BatchItemResult(key=key, ok=False, error=error))

    def skipped(self, key: Any, reason: str, record_id: UUID | None = None) -> None:
        self.items.append(
            BatchItemResult(
                key=key, ok=False, record_id=record_id, error=reason, skipped=True
            )
        )

    @property
    def success_count(self) -> int:
        return sum(1 for item in self.items if item.ok)

    @property
    def failure_count(self) -> int:
        return sum(1 for item in self.items if not item.ok and not item.skipped)

    @property
    def skipped_count(self) -> int:
        return sum(1 for item in self.items if item.skipped)

    @property
    def ok(self) -> bool:
        """A batch succeeds when at least one of its items did."""
        return self.success_count > 0
