"""Append-only audit trail of mutating actions (tab-separated lines)"""

import threading
from datetime import datetime, timezone
from pathlib import Path

from filedeck.utils.logger import get_logger

logger = get_logger(__name__)


def _clean_field(value: str) -> str:
    # A field may not break the line or shift columns
    return str(value).replace("\t", " ").replace("\r", " ").replace("\n", " ")


class AuditLog:
    """One line per action: timestamp, actor, action, target."""

    def __init__(self, log_path: Path):
        self.log_path = Path(log_path)
        self._lock = threading.Lock()

    def record(self, actor: str, action: str, target: str = "-") -> None:
        """Append an entry. Failures are logged and never raised to the caller."""
        timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        line = "\t".join(_clean_field(v) for v in (timestamp, actor, action, target or "-")) + "\n"
        try:
            with self._lock:
                with open(self.log_path, "a", encoding="utf-8") as f:
                    f.write(line)
        except OSError as e:
            logger.error("Failed to write audit entry", action=action, actor=actor, error=str(e))
