"""Interval scheduling for metrics.

A metric whose ``schedule_frequency`` is ``"interval"`` remembers when it
was last logged, so the next occurrence can be computed from it. Writing a
daily log for such a metric stamps ``schedule_last_occurrence`` on the
metric record, in the same transaction as the log.
"""
import logging
from datetime import datetime, timezone

from definitions import DAILY_LOGS, METRICS
from models import Record
from schema import timestamp

logger = logging.getLogger("datatracker.schedules")

INTERVAL = "interval"


def parse_log_date(value):
    """Date of a log entry: RFC 3339, then ``YYYY-MM-DD`` (UTC), else now."""
    if isinstance(value, str):
        text = value.strip()
        try:
            parsed = datetime.fromisoformat(text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text)
            if parsed.tzinfo is not None and "T" in text.upper():
                return parsed
        except ValueError:
            pass
        try:
            return datetime.strptime(text, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError:
            logger.debug(f"Unparseable log date {value!r}, using current time")
    return datetime.now().astimezone()


def format_rfc3339(moment):
    formatted = moment.replace(microsecond=0).isoformat()
    if formatted.endswith("+00:00"):
        formatted = formatted[:-6] + "Z"
    return formatted


def record_last_occurrence(session, dataset_id, data):
    """Stamp the logged metric's last occurrence; returns the metric id when stamped."""
    if dataset_id != DAILY_LOGS:
        return None
    metric_id = data.get("metric_id")
    if not isinstance(metric_id, str):
        return None
    metric = session.get(Record, metric_id)
    if metric is None or metric.dataset_id != METRICS:
        logger.debug(f"Daily log references unknown metric {metric_id!r}")
        return None
    if (metric.data or {}).get("schedule_frequency") != INTERVAL:
        return None

    stamped = format_rfc3339(parse_log_date(data.get("date")))
    # new dict so the JSON column registers the change
    metric.data = dict(metric.data, schedule_last_occurrence=stamped)
    metric.last_modified = timestamp()
    session.flush()
    logger.debug(f"Metric {metric_id} last occurrence set to {stamped}")
    return metric_id
