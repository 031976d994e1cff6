"""Preparation task synchronization."""

from guestnama.actions import Action
from guestnama.models import Task, TaskPriority
from guestnama.services.base import EntityService

PRIORITY_ORDER = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 2,
}


class TaskService(EntityService[Task]):
    """CRUD for tasks."""

    model = Task
    list_action = Action.GET_TASKS
    add_action = Action.ADD_TASK
    update_action = Action.UPDATE_TASK
    delete_action = Action.DELETE_TASK

    async def set_completed(self, task_id: str, completed: bool) -> None:
        await self.update(task_id, {"is_completed": completed})

    @staticmethod
    def sort_tasks(tasks: list[Task]) -> list[Task]:
        """Open tasks first, then by priority (High, Medium, Low)."""
        return sorted(tasks, key=lambda t: (t.is_completed, PRIORITY_ORDER[t.priority]))
