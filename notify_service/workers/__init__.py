"""Background worker task definitions.

- notifications/: notification delivery and the reconciliation sweep

For task infrastructure (broker, middleware), see `infra/tasks/`.

Task definitions are registered with the broker on import.
"""

from __future__ import annotations

__all__: list[str] = []
