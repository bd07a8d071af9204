from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class Lifecycle(str, Enum):
    TODO = "todo"
    DOING = "doing"
    DONE = "done"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


def reconcile(status: object = None, completed: object = None) -> Lifecycle:
    """Resolve raw status/completed values into one lifecycle state.

    A true completion flag or a "done" status wins, then "doing", and anything
    else (missing, unknown or malformed) is "todo".
    """
    if completed is True or status == Lifecycle.DONE.value:
        return Lifecycle.DONE
    if status == Lifecycle.DOING.value:
        return Lifecycle.DOING
    return Lifecycle.TODO


_PRIORITY_VALUES = {p.value for p in Priority}


def coerce_priority(priority: object = None) -> Priority:
    if isinstance(priority, str) and priority in _PRIORITY_VALUES:
        return Priority(priority)
    return Priority.MEDIUM


class Task(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    description: str = ""
    status: Lifecycle = Lifecycle.TODO
    priority: Priority = Priority.MEDIUM
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def completed(self) -> bool:
        return self.status is Lifecycle.DONE


class TaskResponse(BaseModel):
    task: Task


class ListTasksResponse(BaseModel):
    tasks: list[Task]


class CreateTaskRequest(BaseModel):
    title: str
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    completed: bool | None = None


class UpdateTaskRequest(BaseModel):
    id: str = Field(min_length=1)
    title: str | None = None
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    completed: bool | None = None


class DeleteTaskRequest(BaseModel):
    id: str = Field(min_length=1)


class UpdatedResponse(BaseModel):
    updated: bool = True


class DeletedResponse(BaseModel):
    deleted: bool = True
