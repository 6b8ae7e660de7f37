"""
Scheduled background work.

- **periodic_scheduler.py**: Runs one coroutine on a fixed interval, starting
  immediately, never overlapping two runs. Failures are logged and counted;
  the loop keeps going until shutdown.
"""

from streamcord.scheduler.periodic_scheduler import PeriodicScheduler

__all__ = ["PeriodicScheduler"]
