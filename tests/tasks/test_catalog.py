"""Task catalog service tests."""

import pytest

from questline.db.models import MAX_ID, MAX_POINTS, TITLE_MAX_LENGTH
from questline.errors import InvalidArgument, NotFound
from questline.tasks.service import create_task, get_task, list_tasks, update_task_fields


class TestCreateTask:
    async def test_create_and_get(self, db_session):
        task = await create_task(db_session, "Follow channel", 10, url="https://t.me/x")
        await db_session.commit()

        fetched = await get_task(db_session, task.id)
        assert fetched.title == "Follow channel"
        assert fetched.points == 10
        assert fetched.url == "https://t.me/x"
        assert fetched.image_url is None

    async def test_zero_points_allowed(self, db_session):
        task = await create_task(db_session, "Say hi", 0)
        assert task.points == 0

    @pytest.mark.parametrize("points", [-1, 1.5, "10", True, None, MAX_POINTS + 1])
    async def test_invalid_points_rejected(self, db_session, points):
        with pytest.raises(InvalidArgument):
            await create_task(db_session, "Bad", points)

    async def test_blank_title_rejected(self, db_session):
        with pytest.raises(InvalidArgument):
            await create_task(db_session, "  ", 5)

    async def test_overlong_title_rejected(self, db_session):
        with pytest.raises(InvalidArgument, match="title"):
            await create_task(db_session, "t" * (TITLE_MAX_LENGTH + 1), 5)


class TestListTasks:
    async def test_empty_catalog(self, db_session):
        assert await list_tasks(db_session) == []

    async def test_ordered_by_id(self, db_session, make_task):
        first = await make_task("T1", 10)
        second = await make_task("T2", 5)
        third = await make_task("T3", 1)

        tasks = await list_tasks(db_session)
        assert [t.id for t in tasks] == [first.id, second.id, third.id]


class TestUpdateTask:
    async def test_partial_update(self, db_session, make_task):
        task = await make_task("T1", 10)
        updated = await update_task_fields(db_session, task.id, {"points": 25, "image_url": "http://i/1.png"})
        await db_session.commit()

        assert updated.points == 25
        assert updated.image_url == "http://i/1.png"
        assert updated.title == "T1"

    async def test_unknown_field_rejected(self, db_session, make_task):
        task = await make_task("T1", 10)
        with pytest.raises(InvalidArgument, match="id"):
            await update_task_fields(db_session, task.id, {"id": 99})

    async def test_negative_points_rejected(self, db_session, make_task):
        task = await make_task("T1", 10)
        with pytest.raises(InvalidArgument):
            await update_task_fields(db_session, task.id, {"points": -5})

    async def test_overlong_title_update_rejected(self, db_session, make_task):
        task = await make_task("T1", 10)
        with pytest.raises(InvalidArgument, match="title"):
            await update_task_fields(db_session, task.id, {"title": "t" * (TITLE_MAX_LENGTH + 1)})

    async def test_missing_task(self, db_session):
        with pytest.raises(NotFound):
            await update_task_fields(db_session, 404, {"title": "x"})

    async def test_get_missing_task(self, db_session):
        with pytest.raises(NotFound):
            await get_task(db_session, 404)

    @pytest.mark.parametrize("task_id", [0, -1, MAX_ID + 1, 10**20])
    async def test_out_of_range_id_is_not_found(self, db_session, task_id):
        with pytest.raises(NotFound):
            await get_task(db_session, task_id)
