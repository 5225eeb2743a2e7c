import pytest

from testdeck.core.exceptions import NotFoundError
from testdeck.models.schemas import HistoryAction, TestStep as Step
from testdeck.services.history_service import compute_changes, diff_steps


def test_created_marker():
    changes = compute_changes(None, {"title": "x"})
    assert [(c.field, c.old_val, c.new_val) for c in changes] == [("ALL", None, "CREATED")]


def test_changes_ignore_timestamps_and_history():
    old = {"title": "a", "updated_at": "1", "history": [], "steps": [{"id": "1", "step": "s"}]}
    new = {"title": "b", "updated_at": "2", "history": [{"status": "PASS"}], "steps": [{"step": "s", "id": "1"}]}

    changes = compute_changes(old, new)
    assert [(c.field, c.old_val, c.new_val) for c in changes] == [("title", "a", "b")]


def test_diff_steps_by_position():
    old = [Step(id="1", step="a"), Step(id="2", step="b"), Step(id="3", step="c")]
    new = [Step(id="1", step="a"), Step(id="2", step="B")]

    diffs = diff_steps(old, new)
    assert [(d.index, d.kind) for d in diffs] == [(1, "MODIFIED"), (2, "REMOVED")]
    assert diffs[0].old.step == "b"
    assert diffs[0].new.step == "B"
    assert diffs[1].new is None


def test_diff_steps_added():
    diffs = diff_steps([], [Step(id="1", step="a")])
    assert [(d.index, d.kind) for d in diffs] == [(0, "ADDED")]


async def test_log_change_persists_and_orders_newest_first(history_service, actor):
    first = await history_service.log_change("case1", None, {"title": "a"}, actor)
    second = await history_service.log_change("case1", {"title": "a"}, {"title": "b"}, actor)
    skipped = await history_service.log_change("case1", {"title": "b"}, {"title": "b"}, actor)

    assert first.action == HistoryAction.CREATE
    assert second.action == HistoryAction.UPDATE
    assert skipped is None
    assert [log.id for log in await history_service.get_logs("case1")] == [second.id, first.id]


async def test_step_diff_for_log(history_service, actor):
    old = {"steps": [{"id": "1", "step": "a", "expected": ""}]}
    new = {"steps": [{"id": "1", "step": "a2", "expected": ""}, {"id": "2", "step": "b", "expected": ""}]}
    log = await history_service.log_change("case1", old, new, actor)

    diffs = await history_service.get_step_diff(log.id)
    assert [d.kind for d in diffs] == ["MODIFIED", "ADDED"]

    title_log = await history_service.log_change("case1", {"title": "a"}, {"title": "b"}, actor)
    assert await history_service.get_step_diff(title_log.id) == []

    with pytest.raises(NotFoundError):
        await history_service.get_step_diff("missing")
