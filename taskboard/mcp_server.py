from fastmcp import FastMCP

from taskboard.exceptions import NotFoundError, StorageError, ValidationError
from taskboard.services import tasks as tasks_service

mcp = FastMCP("Taskboard")


def _handle_mcp_error(e: Exception) -> dict:
    """Convert exceptions to agent-friendly error dicts."""
    if isinstance(e, ValidationError):
        return {"error": "validation_error", "message": str(e), "action": "Fix the input and call the tool again"}
    if isinstance(e, NotFoundError):
        return {"error": "not_found", "message": str(e), "action": "Call task_list to find a valid task id"}
    if isinstance(e, StorageError):
        return {"error": "storage_error", "message": str(e)}
    return {"error": "unknown_error", "message": str(e)}


def _dump(task) -> dict:
    return task.model_dump(mode="json", by_alias=True)


@mcp.tool
def task_list() -> dict:
    """List up to 100 tasks, most recently updated first.
    Each task has id, title, description, status (todo/doing/done), completed, priority (High/Medium/Low) and timestamps."""
    try:
        tasks = tasks_service.list_tasks()
        return {"tasks": [_dump(t) for t in tasks], "count": len(tasks)}
    except (ValidationError, NotFoundError, StorageError) as e:
        return _handle_mcp_error(e)


@mcp.tool
def task_get(task_id: str) -> dict:
    """Get a single task by its ID. Use task_list first to find the ID."""
    try:
        return _dump(tasks_service.get_task(task_id))
    except (ValidationError, NotFoundError, StorageError) as e:
        return _handle_mcp_error(e)


@mcp.tool
def task_create(
    title: str,
    description: str | None = None,
    status: str | None = None,
    completed: bool | None = None,
    priority: str | None = None,
) -> dict:
    """Create a new task. Title is required.
    Status is one of todo, doing, done. Priority is one of High, Medium, Low (defaults to Medium).
    Setting completed=true marks the task done."""
    try:
        return _dump(tasks_service.create_task(title, description, status, completed, priority))
    except (ValidationError, NotFoundError, StorageError) as e:
        return _handle_mcp_error(e)


@mcp.tool
def task_update(
    task_id: str,
    title: str | None = None,
    description: str | None = None,
    status: str | None = None,
    completed: bool | None = None,
    priority: str | None = None,
) -> dict:
    """Update an existing task. Only the fields you pass are changed.
    To reopen a finished task pass completed=False together with status='todo' or status='doing'."""
    try:
        tasks_service.update_task(task_id, title, description, status, completed, priority)
        return {"updated": True, "id": task_id}
    except (ValidationError, NotFoundError, StorageError) as e:
        return _handle_mcp_error(e)


@mcp.tool
def task_delete(task_id: str) -> dict:
    """Permanently delete a task by its ID."""
    try:
        tasks_service.delete_task(task_id)
        return {"deleted": True, "id": task_id}
    except (ValidationError, NotFoundError, StorageError) as e:
        return _handle_mcp_error(e)
