"""Tests for ResourceService."""

from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from learnhub.courses.models import Course
from learnhub.resources.models import ResourceType
from learnhub.resources.schemas import CreateResourceRequest, ResourceInput
from learnhub.resources.service import (
    ResourceCourseNotFoundError,
    ResourceNotFoundError,
    ResourceService,
)


def resource_row(**overrides) -> SimpleNamespace:
    values = {
        "id": uuid4(),
        "course_id": uuid4(),
        "title": "Intro video",
        "url": "https://videos.example.com/intro",
        "type": "video",
        "description": "",
        "module_index": 0,
        "sort_order": 0,
        "is_active": True,
        "created_at": datetime(2024, 1, 1),
        "updated_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def course() -> Course:
    return Course(title="React Development", description="Hooks", modules=["A", "B"])


@pytest.fixture
def course_service(course: Course) -> MagicMock:
    service = MagicMock()
    service.get_course = AsyncMock(return_value=course)
    service.get_courses_map = AsyncMock(return_value={course.id: course})
    return service


@pytest.fixture
def resource_service(mock_session, course_service) -> ResourceService:
    return ResourceService(
        session=mock_session, keyspace="learnhub_test", course_service=course_service
    )


class TestListResources:
    @pytest.mark.asyncio
    async def test_active_only_sorted_by_module_then_order(
        self, resource_service, mock_session, rows_result
    ) -> None:
        rows = [
            resource_row(title="m1-o0", module_index=1, sort_order=0),
            resource_row(title="m0-o2", module_index=0, sort_order=2),
            resource_row(title="hidden", module_index=0, is_active=False),
            resource_row(title="m0-o1", module_index=0, sort_order=1),
        ]
        mock_session.aexecute.return_value = rows_result(rows)

        resources = await resource_service.list_resources(course_id=uuid4())

        assert [r.title for r in resources] == ["m0-o1", "m0-o2", "m1-o0"]

    @pytest.mark.asyncio
    async def test_module_filter(
        self, resource_service, mock_session, rows_result
    ) -> None:
        mock_session.aexecute.return_value = rows_result(
            [resource_row(module_index=0), resource_row(module_index=1)]
        )

        resources = await resource_service.list_resources(module_index=1)

        assert [r.module_index for r in resources] == [1]
        assert mock_session.aexecute.await_args.args[0] is resource_service._list_resources

    @pytest.mark.asyncio
    async def test_count_active(
        self, resource_service, mock_session, rows_result
    ) -> None:
        mock_session.aexecute.return_value = rows_result(
            [resource_row(), resource_row(is_active=False), resource_row()]
        )

        assert await resource_service.count_active_resources() == 2


class TestCreateResources:
    @pytest.mark.asyncio
    async def test_create_requires_course(
        self, resource_service, course_service, mock_session
    ) -> None:
        course_service.get_course.return_value = None

        with pytest.raises(ResourceCourseNotFoundError):
            await resource_service.create_resource(
                CreateResourceRequest(
                    course_id=uuid4(),
                    title="Slides",
                    url="https://files.example.com/slides.pdf",
                    type=ResourceType.PDF,
                )
            )
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bulk_create(
        self, resource_service, mock_session, course
    ) -> None:
        items = [
            ResourceInput(
                title=f"Resource {i}",
                url=f"https://example.com/{i}",
                type=ResourceType.LINK,
                module_index=0,
                order=i,
            )
            for i in range(3)
        ]

        created = await resource_service.bulk_create_resources(course.id, items)

        assert [r.order for r in created] == [0, 1, 2]
        assert all(r.course_id == course.id for r in created)
        assert mock_session.aexecute.await_count == 3

    @pytest.mark.asyncio
    async def test_responses_carry_course_title(
        self, resource_service, course
    ) -> None:
        resource = resource_service._build(
            course.id,
            ResourceInput(title="Docs", url="https://example.com", type="document"),
        )

        [response] = await resource_service.to_responses([resource])

        assert response.course.title == "React Development"
        assert response.type == ResourceType.DOCUMENT


class TestDeleteResources:
    @pytest.mark.asyncio
    async def test_soft_delete_deactivates(
        self, resource_service, mock_session, rows_result
    ) -> None:
        row = resource_row()
        mock_session.aexecute.return_value = rows_result([row])

        await resource_service.delete_resource(row.id)

        call = mock_session.aexecute.await_args
        assert call.args[0] is resource_service._deactivate_resource
        assert call.args[1][0] is False

    @pytest.mark.asyncio
    async def test_hard_delete_removes_row(
        self, resource_service, mock_session, rows_result
    ) -> None:
        row = resource_row()
        mock_session.aexecute.return_value = rows_result([row])

        await resource_service.hard_delete_resource(row.id)

        call = mock_session.aexecute.await_args
        assert call.args[0] is resource_service._delete_resource
        assert call.args[1] == [row.id]

    @pytest.mark.asyncio
    async def test_delete_missing(
        self, resource_service, mock_session, rows_result
    ) -> None:
        mock_session.aexecute.return_value = rows_result([])

        with pytest.raises(ResourceNotFoundError):
            await resource_service.delete_resource(uuid4())
