"""
Engine Configuration

Settings recognised by the CommandEngine. Keys may be given in snake_case
or in camelCase (exitOnEmptyQueue, repeatInterval, ...).
"""

import re
from dataclasses import dataclass, fields
from typing import Any, Mapping

# Defaults (milliseconds for intervals)
DEFAULT_REPEAT_LIMIT = 3
DEFAULT_REPEAT_INTERVAL = 1500
DEFAULT_LOG_INTERVAL = 1000


def _snake_case(name: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


@dataclass
class EngineConfig:
    """
    Behaviour switches for a CommandEngine.

    Attributes:
        exit_on_empty_queue: Finish the run loop once the queue drains. When False
            the engine goes back to idle and waits for more operations.
        send_progress: Ask the device for progress reports (last command field).
        repeat_limit: Retransmissions allowed after the initial send.
        repeat_interval: Milliseconds between retransmissions.
        log_interval: Reserved, currently unused.
    """
    exit_on_empty_queue: bool = True
    send_progress: bool = True
    repeat_limit: int = DEFAULT_REPEAT_LIMIT
    repeat_interval: int = DEFAULT_REPEAT_INTERVAL
    log_interval: int = DEFAULT_LOG_INTERVAL

    def __post_init__(self):
        if self.repeat_limit < 0:
            raise ValueError(f"repeat_limit must be >= 0, got {self.repeat_limit}")
        if self.repeat_interval <= 0:
            raise ValueError(f"repeat_interval must be > 0, got {self.repeat_interval}")

    @property
    def repeat_interval_s(self) -> float:
        """Retransmission interval in seconds."""
        return self.repeat_interval / 1000.0

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> "EngineConfig":
        """
        Build a config from a plain mapping, filling in defaults for missing keys.

        Raises:
            ValueError: If a key is not a known setting.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in params.items():
            name = _snake_case(key)
            if name not in known:
                raise ValueError(f"Unknown engine setting: {key!r}")
            values[name] = value
        return cls(**values)
