"""
Log sanitization for island_streams.

Targets, channel names and payload fragments reaching the logs come from
application code and, on the consumer side, from clients. They are
stripped of control characters and truncated before they are written.
"""

import logging
import re
from typing import Any

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")

MAX_LOG_VALUE_LENGTH = 200


def sanitize_for_log(value: Any, max_length: int = MAX_LOG_VALUE_LENGTH) -> str:
    """
    Return ``value`` as a single-line string safe to interpolate into a log record.

    Examples:
        >>> sanitize_for_log("message_1\\nFAKE ENTRY")
        'message_1 FAKE ENTRY'
        >>> sanitize_for_log("x" * 300)[-3:]
        '...'
    """
    text = value if isinstance(value, str) else repr(value)
    text = _CONTROL_CHARS_RE.sub(" ", text)
    if len(text) > max_length:
        text = text[:max_length] + "..."
    return text


class IslandLogSanitizerFilter(logging.Filter):
    """
    Logging filter that sanitizes string arguments of every record.

    Installed on the ``island_streams`` logger by the app config so that
    call sites do not each need to remember to sanitize.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, tuple):
            record.args = tuple(
                sanitize_for_log(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        elif isinstance(record.args, dict):
            record.args = {
                key: sanitize_for_log(arg) if isinstance(arg, str) else arg
                for key, arg in record.args.items()
            }
        return True
