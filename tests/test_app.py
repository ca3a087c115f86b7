from __future__ import annotations

import asyncio

from taskpad.app import TaskpadApp
from taskpad.config import Config
from taskpad.models import TaskStatus
from taskpad.repository import TaskRepository
from taskpad.widgets import TaskListView
from taskpad.widgets.task_list import TaskCreated, TaskStatusChanged


def test_app_filters_and_creates_tasks(repo: TaskRepository, config: Config) -> None:
    office = repo.create_task("office #work")
    repo.create_task("garden #personal")

    async def scenario() -> None:
        app = TaskpadApp(repository=repo, config=config)
        async with app.run_test() as pilot:
            view = app.query_one(TaskListView)
            assert len(view.tasks) == 2

            app.action_cycle_filter()
            await pilot.pause()
            assert app.work_filter == "work"
            assert [t.id for t in view.tasks] == [office.id]

            app.on_task_created(TaskCreated("call the bank"))
            await pilot.pause()
            assert [t.content for t in view.tasks] == ["office #work", "call the bank #work"]

            app.on_task_status_changed(TaskStatusChanged(office.id, TaskStatus.COMPLETED))
            app.action_hide_completed_tasks()
            await pilot.pause()
            assert [t.content for t in view.tasks] == ["call the bank #work"]

    asyncio.run(scenario())
    assert repo.get_task_by_id(office.id).status == TaskStatus.COMPLETED
