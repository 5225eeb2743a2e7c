import json
from typing import Any, Dict, List, Optional

import structlog

from testdeck.core.exceptions import NotFoundError
from testdeck.models.schemas import (
    HistoryAction,
    HistoryChange,
    HistoryEntityType,
    HistoryLog,
    StepDiff,
    TestStep,
    User,
    generate_id,
    utc_now,
)
from testdeck.repositories.interfaces.history_repository import IHistoryRepository

logger = structlog.get_logger()

# Bookkeeping fields that never count as a change
IGNORED_FIELDS = {"created_at", "updated_at", "timestamp", "history"}


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


def compute_changes(old: Optional[Dict[str, Any]], new: Dict[str, Any]) -> List[HistoryChange]:
    """Field-level delta between two JSON-compatible snapshots.

    ``old=None`` means the entity was just created and yields the single
    ``ALL -> CREATED`` marker.
    """
    if old is None:
        return [HistoryChange(field="ALL", old_val=None, new_val="CREATED")]

    changes = []
    for field, new_value in new.items():
        if field in IGNORED_FIELDS:
            continue
        old_value = old.get(field)
        if _canonical(old_value) != _canonical(new_value):
            changes.append(HistoryChange(field=field, old_val=old_value, new_val=new_value))
    return changes


def diff_steps(old_steps: List[TestStep], new_steps: List[TestStep]) -> List[StepDiff]:
    """Compare two step lists position by position, omitting unchanged steps"""
    diffs = []
    for index in range(max(len(old_steps), len(new_steps))):
        old = old_steps[index] if index < len(old_steps) else None
        new = new_steps[index] if index < len(new_steps) else None
        if old is None and new is not None:
            diffs.append(StepDiff(index=index, kind="ADDED", new=new))
        elif old is not None and new is None:
            diffs.append(StepDiff(index=index, kind="REMOVED", old=old))
        elif old.model_dump() != new.model_dump():
            diffs.append(StepDiff(index=index, kind="MODIFIED", old=old, new=new))
    return diffs


class HistoryService:
    """Append-only audit trail of case and result mutations"""

    def __init__(self, history_repository: IHistoryRepository):
        self.history_repository = history_repository

    def build_log(
        self,
        entity_id: str,
        old: Optional[Dict[str, Any]],
        new: Dict[str, Any],
        actor: User,
        entity_type: HistoryEntityType = HistoryEntityType.CASE,
        action: Optional[HistoryAction] = None,
    ) -> Optional[HistoryLog]:
        changes = compute_changes(old, new)
        if not changes:
            return None
        if action is None:
            action = HistoryAction.CREATE if old is None else HistoryAction.UPDATE
        return HistoryLog(
            id=generate_id(),
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            modifier_id=actor.id,
            modifier_name=actor.name,
            changes=changes,
            timestamp=utc_now(),
        )

    async def log_change(
        self,
        entity_id: str,
        old: Optional[Dict[str, Any]],
        new: Dict[str, Any],
        actor: User,
        entity_type: HistoryEntityType = HistoryEntityType.CASE,
        action: Optional[HistoryAction] = None,
    ) -> Optional[HistoryLog]:
        """Persist a log entry when the snapshots differ; returns None otherwise"""
        log = self.build_log(entity_id, old, new, actor, entity_type, action)
        if log is None:
            logger.debug("No field changes, history log skipped", entity_id=entity_id)
            return None
        saved = await self.history_repository.append(log)
        logger.info(
            "History log written",
            entity_id=entity_id,
            action=log.action.value,
            fields=[c.field for c in log.changes],
        )
        return saved

    async def log_many(self, logs: List[HistoryLog]) -> None:
        if logs:
            await self.history_repository.append_many(logs)

    async def get_logs(self, entity_id: str) -> List[HistoryLog]:
        return await self.history_repository.list_by_entity(entity_id)

    async def get_step_diff(self, log_id: str) -> List[StepDiff]:
        log = await self.history_repository.get_by_id(log_id)
        if log is None:
            raise NotFoundError(f"History log {log_id} not found")
        for change in log.changes:
            if change.field == "steps":
                old = [TestStep.model_validate(s) for s in change.old_val or []]
                new = [TestStep.model_validate(s) for s in change.new_val or []]
                return diff_steps(old, new)
        return []

    async def delete_for_entities(self, entity_ids: List[str]) -> int:
        return await self.history_repository.delete_by_entities(entity_ids)
