"""Service for building change sets and recording audit entries."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from confroom.domain.models import AuditAction, AuditEntry, FieldChange, RequestContext
from confroom.repos.memory import AuditRepository

logger = logging.getLogger(__name__)


def _serialized(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def diff(
    before: Mapping[str, Any] | None, after: Mapping[str, Any] | None
) -> dict[str, FieldChange]:
    """Return the minimal change set between two snapshots.

    Every key of ``after`` whose serialized value differs from the same key
    in ``before`` contributes a ``FieldChange``, as does every key missing
    from ``before`` even when its new value is ``None``. Unchanged keys are
    omitted and keys only present in ``before`` are ignored.
    """
    before = before or {}
    changes: dict[str, FieldChange] = {}
    for key, value in (after or {}).items():
        previous = before.get(key)
        if key not in before or _serialized(previous) != _serialized(value):
            changes[key] = FieldChange(before=previous, after=value)
    return changes


class AuditTrailRecorder:
    """Writes append-only audit entries, best effort.

    A failed write is logged and dropped so that it never blocks or rolls
    back the mutation being audited.
    """

    def __init__(self, repo: AuditRepository) -> None:
        self.repo = repo

    def record(
        self,
        action: AuditAction,
        resource_type: str,
        resource_id: str,
        before: Mapping[str, Any] | None = None,
        after: Mapping[str, Any] | None = None,
        context: RequestContext | None = None,
        resource_name: str | None = None,
        description: str = "",
    ) -> AuditEntry | None:
        context = context or RequestContext()
        try:
            entry = AuditEntry(
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                resource_name=resource_name,
                description=description,
                changes=diff(before, after),
                before=dict(before) if before is not None else None,
                after=dict(after) if after is not None else None,
                actor=context.actor,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
                request_method=context.method,
                request_path=context.path,
            )
            self.repo.append(entry)
        except Exception:
            logger.exception(
                "Failed to write audit entry %s %s/%s", action, resource_type, resource_id
            )
            return None
        return entry
