"""m7m: declarative automation flows.

Flows are loaded from YAML files and run on their own thread, either once or
on a fixed interval. A flow is an ordered list of steps (HTTP requests, file
I/O, text extraction, comparisons, notifications, sleeps) with optional
per-step fallbacks.
"""

__version__ = "0.1.0"

from m7m.config import RunnerSettings

__all__ = ["__version__", "RunnerSettings"]
