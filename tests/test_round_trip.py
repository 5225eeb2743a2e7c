from testdeck.models import schemas
from testdeck.services.import_session import ImportSession


async def test_export_then_import_preserves_cases(case_service, actor):
    auth = await case_service.create_section("p1", schemas.SectionCreate(title="Auth"))
    originals = [
        schemas.TestCaseCreate(
            title="Login with \"remember me\"",
            section_id=auth.id,
            priority=schemas.CasePriority.HIGH,
            type=schemas.CaseType.UI,
            steps=[
                schemas.TestStep(step="Open, then wait", expected="Form shown"),
                schemas.TestStep(step="Submit", expected="Welcome"),
            ],
        ),
        schemas.TestCaseCreate(
            title="Load test",
            priority=schemas.CasePriority.LOW,
            type=schemas.CaseType.PERFORMANCE,
            steps=[schemas.TestStep(step="Run 100 users", expected="p95 < 1s")],
        ),
        schemas.TestCaseCreate(
            title="Token expiry",
            type=schemas.CaseType.SECURITY,
            steps=[schemas.TestStep(step="Wait", expected="")],
        ),
    ]
    for data in originals:
        await case_service.create_test_case("p1", data, actor)

    exported = await case_service.export_csv("p1")

    session = ImportSession("p2")
    session.load_text(exported)
    imported = session.build_cases()

    before = [(c.title, c.priority, c.type, len(c.steps)) for c in await case_service.list_test_cases("p1")]
    after = [(c.title, c.priority, c.type, len(c.steps)) for c in imported]
    assert after == before
    assert imported[0].section_title == "Auth"
    assert imported[1].section_title == ""

    stored, sections_created = await case_service.import_cases("p2", imported, actor)
    assert len(stored) == 3
    assert sections_created == 2
