"""Error bookkeeping for the detection pipeline components.

Nothing is retried here. Recognition failures are absorbed by the pipeline
and a capture failure stops detection until the operator starts it again;
this module only records what happened so ``get_status`` and the logs can
say which component is in trouble.
"""

import logging
import threading
import traceback
from collections import Counter, deque
from datetime import datetime, timedelta
from typing import Any, Deque, Dict, Optional
from dataclasses import dataclass, field
from enum import Enum

from ..logging_config import get_logger

logger = get_logger("error_handler")


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ComponentStatus(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"
    UNKNOWN = "unknown"


# Status a component drops to after an error of each severity
_STATUS_AFTER = {
    ErrorSeverity.HIGH: ComponentStatus.DEGRADED,
    ErrorSeverity.CRITICAL: ComponentStatus.FAILED,
}
_STATUS_RANK = {
    ComponentStatus.UNKNOWN: 0,
    ComponentStatus.HEALTHY: 0,
    ComponentStatus.DEGRADED: 1,
    ComponentStatus.FAILED: 2,
}
_LOG_LEVEL = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


@dataclass
class ErrorRecord:
    """One recorded failure."""
    component_name: str
    error: Exception
    severity: ErrorSeverity
    timestamp: datetime = field(default_factory=datetime.now)
    traceback_str: str = ""

    @property
    def error_type(self) -> str:
        return type(self.error).__name__


@dataclass
class _ComponentErrors:
    count: int = 0
    status: ComponentStatus = ComponentStatus.HEALTHY
    last: Optional[ErrorRecord] = None


class ErrorHandler:
    """Thread-safe record of component errors and the health they imply.

    A component's status only gets worse (HEALTHY, DEGRADED, FAILED) until
    ``reset_error_counts`` is called for it.
    """

    def __init__(self, max_error_history: int = 1000):
        self.error_records: Deque[ErrorRecord] = deque(maxlen=max_error_history)
        self._components: Dict[str, _ComponentErrors] = {}
        self._lock = threading.Lock()

    def register_component(self, component_name: str) -> None:
        with self._lock:
            self._components.setdefault(component_name, _ComponentErrors())

    def handle_error(self, component_name: str, error: Exception,
                     severity: ErrorSeverity) -> ErrorRecord:
        """Record ``error`` against ``component_name`` and log it at a level
        matching ``severity``. Returns the stored record."""
        tb = traceback.format_exc()
        record = ErrorRecord(component_name, error, severity,
                             traceback_str="" if tb.startswith("NoneType: None") else tb)

        with self._lock:
            self.error_records.append(record)
            entry = self._components.setdefault(component_name, _ComponentErrors())
            entry.count += 1
            entry.last = record
            new_status = _STATUS_AFTER.get(severity)
            if new_status and _STATUS_RANK[new_status] > _STATUS_RANK[entry.status]:
                entry.status = new_status

        logger.log(_LOG_LEVEL[severity], f"{severity.value} error in {component_name}: "
                                         f"{record.error_type}: {error}")
        return record

    def get_error_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_errors": len(self.error_records),
                "component_error_counts": {k: v.count for k, v in self._components.items()},
                "component_status": {k: v.status.value for k, v in self._components.items()},
            }

    def get_component_health(self) -> Dict[str, ComponentStatus]:
        with self._lock:
            return {k: v.status for k, v in self._components.items()}

    def get_last_error(self, component_name: str) -> Optional[ErrorRecord]:
        with self._lock:
            entry = self._components.get(component_name)
            return entry.last if entry else None

    def get_error_summary(self, hours: int = 24) -> Dict[str, Any]:
        """Counts per component and per severity over the last ``hours``."""
        cutoff = datetime.now() - timedelta(hours=hours)
        with self._lock:
            recent = [r for r in self.error_records if r.timestamp >= cutoff]

        severity_counts = {severity.value: 0 for severity in ErrorSeverity}
        severity_counts.update(Counter(r.severity.value for r in recent))
        return {
            "total_errors": len(recent),
            "component_counts": dict(Counter(r.component_name for r in recent)),
            "severity_counts": severity_counts,
            "time_period_hours": hours,
        }

    def reset_error_counts(self, component_name: Optional[str] = None) -> None:
        """Forget counts and status for one component, or for all of them."""
        with self._lock:
            names = [component_name] if component_name else list(self._components)
            for name in names:
                if name in self._components:
                    self._components[name] = _ComponentErrors()

    def clear_error_history(self) -> None:
        with self._lock:
            self.error_records.clear()
            for entry in self._components.values():
                entry.last = None


global_error_handler = ErrorHandler()
