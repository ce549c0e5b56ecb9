"""
Activity log for the bridge.

The audit trail operators read on the status dashboard. Every entry is
written to the process log first and then, when a durable store is
configured, pushed onto a capped Redis list. Without a store the most
recent entries are kept in memory for the life of the process.
"""
import json
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger('bridge.activity')

LOG_REDIS_KEY = 'acuity_passkit_logs'
MAX_LOG_ENTRIES = 100

LEVELS = ('info', 'warn', 'error')


def _to_json(data: Any) -> str:
    return json.dumps(data, default=str)


class ActivityLog:
    """Append-only, capped activity log."""

    def __init__(self, store, clock=None):
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._memory = deque(maxlen=MAX_LOG_ENTRIES)

    def append(self, level: str, message: str, data: Any = None) -> Dict[str, Any]:
        """
        Record an activity entry.

        Args:
            level: 'info', 'warn' or 'error'
            message: Human readable summary
            data: Optional JSON-serializable context

        Returns:
            The entry that was recorded
        """
        if level not in LEVELS:
            level = 'info'

        entry = {
            'timestamp': self._clock().isoformat(),
            'level': level,
            'message': message,
            'data': data,
        }

        suffix = f' {_to_json(data)}' if data is not None else ''
        if level == 'error':
            logger.error('%s%s', message, suffix)
        elif level == 'warn':
            logger.warning('%s%s', message, suffix)
        else:
            logger.info('%s%s', message, suffix)

        if self.store.is_available():
            result = self.store.push_capped(LOG_REDIS_KEY, _to_json(entry), MAX_LOG_ENTRIES)
            if not result.ok:
                # stdout already has the entry
                logger.debug('Activity log persistence failed: %s', result.error)
        else:
            self._memory.appendleft(entry)

        return entry

    def info(self, message: str, data: Any = None) -> Dict[str, Any]:
        return self.append('info', message, data)

    def warn(self, message: str, data: Any = None) -> Dict[str, Any]:
        return self.append('warn', message, data)

    def error(self, message: str, data: Any = None) -> Dict[str, Any]:
        return self.append('error', message, data)

    def entries(self, limit: int = MAX_LOG_ENTRIES) -> List[Dict[str, Any]]:
        """Recent entries, newest first."""
        limit = max(0, min(limit, MAX_LOG_ENTRIES))
        if limit == 0:
            return []

        if not self.store.is_available():
            return list(self._memory)[:limit]

        result = self.store.list_range(LOG_REDIS_KEY, 0, limit - 1)
        if not result.ok:
            logger.debug('Activity log read failed: %s', result.error)
            return []

        return [entry for entry in (self._parse_row(row) for row in result.value) if entry]

    @staticmethod
    def _parse_row(row) -> Optional[Dict[str, Any]]:
        if not row:
            return None
        if isinstance(row, dict):
            return row
        try:
            parsed = json.loads(row)
        except (TypeError, ValueError):
            return None
        return parsed if isinstance(parsed, dict) else None
