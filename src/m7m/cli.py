"""Console script entrypoint.

The CLI itself is implemented in `m7m.flows.main`.
"""

from __future__ import annotations

from m7m.flows.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
