from datetime import datetime

from testdeck.models import schemas
from testdeck.repositories.implementations.local_repositories import (
    STORAGE_KEYS,
    LocalJsonStore,
    LocalProjectRepository,
    LocalTestResultRepository,
    LocalUserRepository,
)


def test_store_round_trips_records(tmp_path):
    store = LocalJsonStore(str(tmp_path))
    store.save("tm_things", [{"id": "1", "name": "한글"}])

    assert store.load("tm_things") == [{"id": "1", "name": "한글"}]
    assert store.load("tm_missing") == []


def test_corrupt_collection_reads_as_empty(tmp_path):
    store = LocalJsonStore(str(tmp_path))
    (tmp_path / f"{STORAGE_KEYS['projects']}.json").write_text("{not json", encoding="utf-8")

    assert store.load(STORAGE_KEYS["projects"]) == []


async def test_projects_newest_first(tmp_path):
    repo = LocalProjectRepository(LocalJsonStore(str(tmp_path)))
    for day, title in [(1, "old"), (3, "new"), (2, "mid")]:
        stamp = datetime(2024, 1, day)
        await repo.create(schemas.Project(id=title, title=title, created_at=stamp, updated_at=stamp))

    assert [p.title for p in await repo.get_all()] == ["new", "mid", "old"]
    assert await repo.delete("mid")
    assert not await repo.delete("mid")


async def test_user_lookup_by_email(tmp_path):
    repo = LocalUserRepository(LocalJsonStore(str(tmp_path)))
    await repo.create(schemas.User(id="u1", name="Kim", email="kim@example.com"))

    assert (await repo.get_by_email("kim@example.com")).id == "u1"
    assert await repo.get_by_email("lee@example.com") is None
    assert await repo.count() == 1


async def test_result_upsert_keeps_identity(tmp_path):
    repo = LocalTestResultRepository(LocalJsonStore(str(tmp_path)))
    stamp = datetime(2024, 1, 1)

    first = await repo.save(schemas.TestResult(id="r1", run_id="run", case_id="c", timestamp=stamp))
    second = await repo.save(schemas.TestResult(
        id="r2", run_id="run", case_id="c", status=schemas.TestStatus.PASS, timestamp=stamp
    ))
    other_platform = await repo.save(schemas.TestResult(
        id="r3", run_id="run", case_id="c", device_platform=schemas.DevicePlatform.IOS, timestamp=stamp
    ))

    assert second.id == first.id
    assert other_platform.id == "r3"
    stored = await repo.list_by_run("run")
    assert len(stored) == 2
    assert (await repo.get("run", "c", schemas.DevicePlatform.PC)).status == schemas.TestStatus.PASS
