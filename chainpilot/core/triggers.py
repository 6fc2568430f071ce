"""
Trigger payload checks every handler runs before its first external call.
"""

from __future__ import annotations

from datetime import datetime

from chainpilot.errors import TriggerValidationError
from chainpilot.models import CronPayload, EVMLog

MIN_LOG_TOPICS = 3


def require_scheduled_time(payload: CronPayload) -> datetime:
    if payload.scheduled_execution_time is None:
        raise TriggerValidationError(
            "Scheduled execution time is required",
            field="scheduled_execution_time",
        )
    return payload.scheduled_execution_time


def require_topics(log: EVMLog, minimum: int = MIN_LOG_TOPICS) -> list[bytes]:
    if len(log.topics) < minimum:
        raise TriggerValidationError(
            f"log payload does not contain enough topics {len(log.topics)}",
            field="topics",
        )
    return log.topics
