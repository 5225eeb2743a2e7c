import pytest

from testdeck.core.exceptions import NotFoundError, PersistenceError
from testdeck.models import schemas
from testdeck.repositories.implementations.local_repositories import LocalSectionRepository


def _imported(title, section_title="", steps=("step",)):
    return schemas.ImportedCase(
        title=title,
        section_title=section_title,
        steps=[schemas.TestStep(step=s) for s in steps],
    )


async def test_import_creates_each_section_once(case_service, actor):
    existing = await case_service.create_section("p1", schemas.SectionCreate(title="Auth"))
    cases = [
        _imported("Login", "Auth"),
        _imported("Signup", "Onboarding"),
        _imported("Welcome", "Onboarding"),
        _imported("Misc"),
    ]

    stored, sections_created = await case_service.import_cases("p1", cases, actor)

    assert sections_created == 2
    sections = {s.title: s.id for s in await case_service.list_sections("p1")}
    assert set(sections) == {"Auth", "Onboarding", "Uncategorized"}
    assert stored[0].section_id == existing.id
    assert stored[1].section_id == stored[2].section_id == sections["Onboarding"]
    assert stored[3].section_id == sections["Uncategorized"]
    assert all(c.author_id == actor.id for c in stored)
    assert [c.sequence_id for c in stored] == [1, 2, 3, 4]


async def test_import_writes_create_logs(case_service, history_service, actor):
    stored, _ = await case_service.import_cases("p1", [_imported("Login")], actor)

    logs = await history_service.get_logs(stored[0].id)
    assert len(logs) == 1
    assert logs[0].action == schemas.HistoryAction.CREATE
    assert logs[0].modifier_name == actor.name
    assert logs[0].changes[0].field == "ALL"
    assert logs[0].changes[0].new_val == "CREATED"


async def test_import_sequence_continues_after_existing_cases(case_service, actor):
    await case_service.create_test_case("p1", schemas.TestCaseCreate(title="Manual"), actor)
    stored, _ = await case_service.import_cases("p1", [_imported("Imported")], actor)
    assert stored[0].sequence_id == 2


async def test_import_failure_surfaces_persistence_error(case_service, actor, monkeypatch):
    async def broken_create_many(test_cases):
        raise OSError("disk full")

    monkeypatch.setattr(case_service.test_case_repository, "create_many", broken_create_many)

    with pytest.raises(PersistenceError):
        await case_service.import_cases("p1", [_imported("Login", "Auth")], actor)

    # Sections created before the failure are left in place
    assert [s.title for s in await case_service.list_sections("p1")] == ["Auth"]


async def test_create_rejects_section_of_other_project(case_service, actor):
    section = await case_service.create_section("p2", schemas.SectionCreate(title="Elsewhere"))
    with pytest.raises(NotFoundError):
        await case_service.create_test_case(
            "p1", schemas.TestCaseCreate(title="Bad", section_id=section.id), actor
        )


async def test_update_without_changes_writes_no_log(case_service, history_service, actor):
    case = await case_service.create_test_case("p1", schemas.TestCaseCreate(title="Same"), actor)
    await case_service.update_test_case(case.id, schemas.TestCaseUpdate(title="Same"), actor)

    logs = await history_service.get_logs(case.id)
    assert [log.action for log in logs] == [schemas.HistoryAction.CREATE]


async def test_update_keeps_author(case_service, actor):
    case = await case_service.create_test_case("p1", schemas.TestCaseCreate(title="Old"), actor)
    editor = schemas.User(id="editor", name="Editor", email="e@example.com")

    updated = await case_service.update_test_case(case.id, schemas.TestCaseUpdate(title="New"), editor)
    assert updated.title == "New"
    assert updated.author_id == actor.id


async def test_delete_section_cascades_to_cases(case_service, local_store, actor):
    section = await case_service.create_section("p1", schemas.SectionCreate(title="Auth"))
    await case_service.create_test_case("p1", schemas.TestCaseCreate(title="In", section_id=section.id), actor)
    kept = await case_service.create_test_case("p1", schemas.TestCaseCreate(title="Out"), actor)

    await case_service.delete_section(section.id)

    assert [c.id for c in await case_service.list_test_cases("p1")] == [kept.id]
    assert await LocalSectionRepository(local_store).get_by_id(section.id) is None


async def test_missing_case_raises(case_service):
    with pytest.raises(NotFoundError):
        await case_service.get_test_case("nope")
    with pytest.raises(NotFoundError):
        await case_service.delete_test_case("nope")
