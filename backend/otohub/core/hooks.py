# backend/otohub/core/hooks.py
"""
Post-commit hooks.

Side effects of a committed state change (notifications, activity logs)
run here, after the transaction is durable. Each hook is independent: a
failure is logged and never reaches the caller.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionEvent:
    tenant_id: str
    old_status: str
    new_status: str
    reason: Optional[str]
    triggered_by: str
    reference_id: Optional[str] = None
    suspension_type: Optional[str] = None


Hook = Callable[[TransitionEvent], Awaitable[None]]


class PostCommitHooks:
    """Ordered registry of async callbacks fired after a transition commits"""

    def __init__(self, hooks: Optional[List[Hook]] = None):
        self._hooks: List[Hook] = list(hooks or [])

    def register(self, hook: Hook) -> Hook:
        self._hooks.append(hook)
        return hook

    def __len__(self) -> int:
        return len(self._hooks)

    async def run(self, event: TransitionEvent) -> int:
        """Invoke every hook; returns how many failed."""
        failures = 0
        for hook in self._hooks:
            try:
                await hook(event)
            except Exception:
                failures += 1
                logger.exception(
                    "Post-commit hook failed (ignored)",
                    extra={"tenant_id": event.tenant_id, "hook": getattr(hook, "__name__", repr(hook))},
                )
        return failures
