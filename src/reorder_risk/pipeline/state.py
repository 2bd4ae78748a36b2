"""
Pipeline state record.

One PipelineState is constructed by the caller and handed to a
PipelineOrchestrator, which is its only writer. Readers take a
PipelineSnapshot between operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..catalog.accessor import InventoryRecord
from ..training.session import Classifier


class PipelineStatus(Enum):
    """Pipeline state machine states."""
    IDLE = 'idle'
    LOADING_CATALOG = 'loadingCatalog'
    CATALOG_LOADED = 'catalogLoaded'
    TRAINING = 'training'
    READY = 'ready'
    ERROR = 'error'


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class PipelineSnapshot:
    """Read-only copy of the pipeline state."""
    records: Tuple[InventoryRecord, ...]
    classifier: Optional[Classifier]
    status: PipelineStatus
    message: str
    degraded: bool
    in_flight: Optional[str]
    updated_at: str

    @property
    def has_model(self) -> bool:
        return self.classifier is not None and self.classifier.is_trained

    def to_dict(self, include_records: bool = True) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'status': self.status.value,
            'message': self.message,
            'degraded': self.degraded,
            'in_flight': self.in_flight,
            'record_count': len(self.records),
            'classifier': self.classifier.describe() if self.classifier else None,
            'updated_at': self.updated_at,
        }
        if include_records:
            result['records'] = [record.to_dict() for record in self.records]
        return result


@dataclass
class PipelineState:
    """Mutable pipeline state, owned by exactly one orchestrator."""
    records: List[InventoryRecord] = field(default_factory=list)
    classifier: Optional[Classifier] = None
    status: PipelineStatus = PipelineStatus.IDLE
    message: str = ''
    degraded: bool = False
    updated_at: str = field(default_factory=_now)

    def touch(self) -> None:
        self.updated_at = _now()

    def snapshot(self, in_flight: Optional[str] = None) -> PipelineSnapshot:
        return PipelineSnapshot(
            records=tuple(self.records),
            classifier=self.classifier,
            status=self.status,
            message=self.message,
            degraded=self.degraded,
            in_flight=in_flight,
            updated_at=self.updated_at,
        )
