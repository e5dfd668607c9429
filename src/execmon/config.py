"""Fixed runtime parameters for execmon."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class MonitorConfig:
    """
    Runtime parameters.

    There is no configuration file. Only the kill grace period can be
    overridden, from the command line.
    """

    buffer_capacity: int = 500  # Recent processes kept in the list
    history_length: int = 80  # Rate samples (~16s at 200ms)
    tick_interval: float = 0.2  # Seconds between rate samples
    grace_period: float = 1.5  # Seconds between SIGTERM and SIGKILL
    liveness_poll_interval: float = 0.15
    rate_scale: int = 2  # Latest sample -> displayed processes/second
    rate_warn: int = 10
    rate_danger: int = 50


DEFAULT_CONFIG = MonitorConfig()
