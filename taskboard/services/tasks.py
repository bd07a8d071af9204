import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from taskboard.config import get_settings, require_mongo_settings
from taskboard.exceptions import NotFoundError, StorageError, ValidationError
from taskboard.models.tasks import Lifecycle, Task, coerce_priority, reconcile

logger = logging.getLogger(__name__)

LIST_LIMIT = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: object, fallback: datetime) -> datetime:
    if not isinstance(value, datetime):
        return fallback
    # pymongo hands back naive UTC datetimes unless the client is tz_aware
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_object_id(task_id: str) -> ObjectId:
    try:
        return ObjectId(task_id)
    except (InvalidId, TypeError) as e:
        raise NotFoundError(f"Task not found: {task_id!r} is not a valid task id.") from e


def _clean_text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def _normalize(doc: dict, now: datetime) -> Task:
    """Build a Task from a stored document, repairing legacy or partial fields."""
    created_at = _as_utc(doc.get("createdAt"), now)
    return Task(
        id=str(doc["_id"]),
        title=_clean_text(doc.get("title")),
        description=_clean_text(doc.get("description")),
        status=reconcile(doc.get("status"), doc.get("completed")),
        priority=coerce_priority(doc.get("priority")),
        created_at=created_at,
        updated_at=_as_utc(doc.get("updatedAt"), created_at),
    )


class TaskStore:
    """Task persistence over a single MongoDB collection.

    Documents keep the canonical lifecycle under ``status`` only; the
    ``completed`` flag exists on the wire, never in storage. Older documents
    that still carry ``completed`` are reconciled on read and rewritten in
    canonical form on their next update.
    """

    def __init__(self, collection: Collection, clock: Callable[[], datetime] = _utcnow):
        self.collection = collection
        self.clock = clock

    def list_tasks(self, limit: int = LIST_LIMIT) -> list[Task]:
        # pymongo reads limit(0) as "no limit"
        limit = max(1, min(limit, LIST_LIMIT))
        try:
            docs = list(self.collection.find({}).sort("updatedAt", DESCENDING).limit(limit))
        except PyMongoError as e:
            _handle_storage_error(e, "list tasks")
        now = self.clock()
        return [_normalize(doc, now) for doc in docs]

    def get_task(self, task_id: str) -> Task:
        _id = _to_object_id(task_id)
        try:
            doc = self.collection.find_one({"_id": _id})
        except PyMongoError as e:
            _handle_storage_error(e, "load the task")
        if doc is None:
            raise NotFoundError("Task not found.")
        return _normalize(doc, self.clock())

    def create_task(
        self,
        title: str,
        description: str | None = None,
        status: str | None = None,
        completed: bool | None = None,
        priority: str | None = None,
    ) -> Task:
        title = _clean_text(title)
        if not title:
            raise ValidationError("A task title is required.")
        now = self.clock()
        doc = {
            "title": title,
            "description": _clean_text(description),
            "status": reconcile(status, completed).value,
            "priority": coerce_priority(priority).value,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = self.collection.insert_one(doc)
        except PyMongoError as e:
            _handle_storage_error(e, "create the task")
        doc["_id"] = result.inserted_id
        logger.info("Created task %s", result.inserted_id)
        return _normalize(doc, now)

    def update_task(
        self,
        task_id: str,
        title: str | None = None,
        description: str | None = None,
        status: str | None = None,
        completed: bool | None = None,
        priority: str | None = None,
    ) -> None:
        """Apply a partial update. Only fields that are not None change."""
        _id = _to_object_id(task_id)
        try:
            existing = self.collection.find_one({"_id": _id})
        except PyMongoError as e:
            _handle_storage_error(e, "update the task")
        if existing is None:
            raise NotFoundError("Task not found.")

        changes: dict = {}
        if title is not None:
            title = _clean_text(title)
            if not title:
                raise ValidationError("A task title cannot be empty.")
            changes["title"] = title
        if description is not None:
            changes["description"] = _clean_text(description)
        if priority is not None:
            changes["priority"] = coerce_priority(priority).value

        current = reconcile(existing.get("status"), existing.get("completed"))
        merged_status = status if status is not None else current.value
        merged_completed = completed if completed is not None else current is Lifecycle.DONE
        changes["status"] = reconcile(merged_status, merged_completed).value
        changes["updatedAt"] = self.clock()

        try:
            result = self.collection.update_one(
                {"_id": _id},
                {"$set": changes, "$unset": {"completed": ""}},
            )
        except PyMongoError as e:
            _handle_storage_error(e, "update the task")
        if result.matched_count == 0:
            raise NotFoundError("Task not found.")
        logger.debug("Updated task %s fields=%s", task_id, sorted(changes))

    def delete_task(self, task_id: str) -> None:
        _id = _to_object_id(task_id)
        try:
            result = self.collection.delete_one({"_id": _id})
        except PyMongoError as e:
            _handle_storage_error(e, "delete the task")
        if result.deleted_count == 0:
            raise NotFoundError("Task not found.")
        logger.info("Deleted task %s", task_id)

    def ping(self) -> bool:
        try:
            self.collection.database.command("ping")
        except PyMongoError:
            logger.warning("Task store ping failed", exc_info=True)
            return False
        return True


def _handle_storage_error(e: PyMongoError, action: str):
    logger.exception("Task store failed to %s", action)
    raise StorageError(f"Unable to {action}.") from e


# --- Process-wide default store ---

_client: MongoClient | None = None
_store: TaskStore | None = None
_store_lock = threading.Lock()


def get_task_store() -> TaskStore:
    """Return the shared TaskStore, connecting on first use."""
    global _client, _store
    if _store is not None:
        return _store
    with _store_lock:
        if _store is None:
            settings = get_settings()
            require_mongo_settings(settings)
            _client = MongoClient(
                settings.mongodb_uri,
                tz_aware=True,
                serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
            )
            collection = _client[settings.mongodb_database][settings.mongodb_collection]
            _store = TaskStore(collection)
            logger.info(
                "Task store ready database=%s collection=%s",
                settings.mongodb_database,
                settings.mongodb_collection,
            )
        return _store


def close_task_store() -> None:
    global _client, _store
    with _store_lock:
        if _client is not None:
            _client.close()
            logger.info("Task store connection closed")
        _client = None
        _store = None


def list_tasks(limit: int = LIST_LIMIT) -> list[Task]:
    """List up to 100 tasks, most recently updated first."""
    return get_task_store().list_tasks(limit)


def get_task(task_id: str) -> Task:
    """Get a single task by ID."""
    return get_task_store().get_task(task_id)


def create_task(
    title: str,
    description: str | None = None,
    status: str | None = None,
    completed: bool | None = None,
    priority: str | None = None,
) -> Task:
    """Create a task and return it with its assigned ID."""
    return get_task_store().create_task(title, description, status, completed, priority)


def update_task(
    task_id: str,
    title: str | None = None,
    description: str | None = None,
    status: str | None = None,
    completed: bool | None = None,
    priority: str | None = None,
) -> None:
    """Update an existing task. Only provided fields are changed."""
    get_task_store().update_task(task_id, title, description, status, completed, priority)


def delete_task(task_id: str) -> None:
    """Delete a task permanently."""
    get_task_store().delete_task(task_id)
