from fastapi import APIRouter

from taskboard.models.tasks import (
    CreateTaskRequest,
    DeletedResponse,
    DeleteTaskRequest,
    ListTasksResponse,
    TaskResponse,
    UpdatedResponse,
    UpdateTaskRequest,
)
from taskboard.services import tasks as tasks_service

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("")
def list_tasks() -> ListTasksResponse:
    return ListTasksResponse(tasks=tasks_service.list_tasks())


@router.get("/{task_id}")
def get_task(task_id: str) -> TaskResponse:
    return TaskResponse(task=tasks_service.get_task(task_id))


@router.post("", status_code=201)
def create_task(request: CreateTaskRequest) -> TaskResponse:
    task = tasks_service.create_task(
        request.title, request.description, request.status, request.completed, request.priority,
    )
    return TaskResponse(task=task)


@router.patch("")
def update_task(request: UpdateTaskRequest) -> UpdatedResponse:
    tasks_service.update_task(
        request.id, request.title, request.description, request.status, request.completed, request.priority,
    )
    return UpdatedResponse()


@router.delete("")
def delete_task(request: DeleteTaskRequest) -> DeletedResponse:
    tasks_service.delete_task(request.id)
    return DeletedResponse()
