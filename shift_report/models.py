"""
Data models for the shift report
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any, Mapping

from .errors import AzureDevOpsError


@dataclass(frozen=True)
class RawItemRecord:
    """One work item as returned by the batch detail endpoint"""
    id: int
    fields: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, work_item) -> "RawItemRecord":
        """Build a record from an SDK WorkItem model or a plain JSON dict"""
        if isinstance(work_item, dict):
            return cls(id=work_item['id'], fields=dict(work_item.get('fields') or {}))
        return cls(id=work_item.id, fields=dict(work_item.fields or {}))


@dataclass
class FetchResult:
    """Outcome of a query: records on success, error on failure"""
    records: List[RawItemRecord] = field(default_factory=list)
    error: Optional[AzureDevOpsError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


ProjectedRow = Dict[str, str]


@dataclass
class ProjectedTable:
    """Flat display-ready table produced by projection"""
    title: str
    columns: List[str]
    rows: List[ProjectedRow]

    def __len__(self) -> int:
        return len(self.rows)


class NoResults:
    """Sentinel substituted for a table when a query matched nothing"""

    text = "No work items found."

    def __repr__(self) -> str:
        return "NO_RESULTS"

    def __bool__(self) -> bool:
        return False


NO_RESULTS = NoResults()


class FailurePolicy(str, Enum):
    """What a run does when credentials or the endpoint fail"""
    DEGRADE = "degrade"
    ABORT = "abort"


class OutputMode(str, Enum):
    """Where the rendered report goes"""
    CONSOLE = "console"
    HTML = "html"


@dataclass
class RenderedOutput:
    """Rendered report ready for a sink"""
    mode: OutputMode
    content: str
    row_count: int = 0


@dataclass
class RunOutcome:
    """Everything one report run produced"""
    shift: str
    output: RenderedOutput
    fetch_error: Optional[AzureDevOpsError] = None
    credential_error: Optional[Exception] = None
    delivered_to: Optional[Path] = None
    sent: bool = False

    @property
    def degraded(self) -> bool:
        return self.fetch_error is not None or self.credential_error is not None
