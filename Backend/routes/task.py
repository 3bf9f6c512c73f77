from fastapi import APIRouter, HTTPException, status, Body, Query, Depends
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError
from bson import ObjectId
from pydantic import ValidationError
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime, timezone

from models.task import TaskCreate, TaskUpdate, TaskPublic, ALLOWED_TASK_UPDATES, SORTABLE_TASK_FIELDS
from db.database import get_task_collection
from routes.auth import get_current_user
from routes.errors import validation_error_detail

# Create a router for task-related endpoints
task_router = APIRouter(
    prefix="/tasks",
    tags=["Tasks"]
)

SORT_DIRECTIONS = {"asc": ASCENDING, "desc": DESCENDING}


def _owned_task_filter(task_id: str, user: dict) -> Optional[Dict[str, Any]]:
    """
    Every single-task lookup is scoped to the caller. A malformed id, a
    missing task and somebody else's task all end up as "not found".
    """
    if not ObjectId.is_valid(task_id):
        return None
    return {"_id": ObjectId(task_id), "owner": user["_id"]}


def _task_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Task not found."
    )


def parse_sort(sort_by: Optional[str]) -> Optional[Tuple[str, int]]:
    """Turns 'created_at_desc' into ('created_at', -1). Anything unknown is ignored."""
    if not sort_by:
        return None
    field, _, direction = sort_by.rpartition("_")
    if field not in SORTABLE_TASK_FIELDS or direction not in SORT_DIRECTIONS:
        return None
    return SORTABLE_TASK_FIELDS[field], SORT_DIRECTIONS[direction]


def parse_count(value: Optional[str]) -> Optional[int]:
    """Positive integers only; anything else means 'not given'."""
    try:
        count = int(value)
    except (TypeError, ValueError):
        return None
    return count if count > 0 else None


# -----------------------------------------------------------------
# --- Create ---
# -----------------------------------------------------------------
@task_router.post(
    "",
    response_model=TaskPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task owned by the caller"
)
def create_task(payload: TaskCreate, current_user: dict = Depends(get_current_user)):
    now = datetime.now(timezone.utc)
    task_doc = payload.model_dump()
    task_doc["owner"] = current_user["user"]["_id"]
    task_doc["created_at"] = now
    task_doc["updated_at"] = now

    try:
        insert_result = get_task_collection().insert_one(task_doc)
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    task_doc["_id"] = insert_result.inserted_id
    return task_doc


# -----------------------------------------------------------------
# --- List ---
# -----------------------------------------------------------------
@task_router.get("", response_model=List[TaskPublic], summary="List your tasks")
def list_tasks(
    completed: Optional[str] = Query(None, examples=["true"]),
    sort_by: Optional[str] = Query(None, alias="sortBy", examples=["created_at_desc"]),
    limit: Optional[str] = Query(None),
    skip: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user)
):
    """
    Returns only the caller's tasks.

    Query options:
    - completed: 'true' for finished tasks, any other value for open ones
    - sortBy: <field>_<asc|desc> with field one of description, completed,
      created_at, updated_at
    - limit / skip: pagination
    """
    match: Dict[str, Any] = {"owner": current_user["user"]["_id"]}
    if completed:
        match["completed"] = completed == "true"

    cursor = get_task_collection().find(match)

    sort = parse_sort(sort_by)
    if sort:
        cursor = cursor.sort(*sort)
    skip_count = parse_count(skip)
    if skip_count:
        cursor = cursor.skip(skip_count)
    limit_count = parse_count(limit)
    if limit_count:
        cursor = cursor.limit(limit_count)

    try:
        return list(cursor)
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


# -----------------------------------------------------------------
# --- Single task endpoints ---
# -----------------------------------------------------------------
@task_router.get("/{task_id}", response_model=TaskPublic, summary="Read one of your tasks")
def get_task(task_id: str, current_user: dict = Depends(get_current_user)):
    query = _owned_task_filter(task_id, current_user["user"])
    if query is None:
        raise _task_not_found()

    try:
        task_doc = get_task_collection().find_one(query)
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    if not task_doc:
        raise _task_not_found()
    return task_doc


@task_router.patch("/{task_id}", response_model=TaskPublic, summary="Update one of your tasks")
def update_task(
    task_id: str,
    updates: Dict[str, Any] = Body(...),
    current_user: dict = Depends(get_current_user)
):
    if not all(key in ALLOWED_TASK_UPDATES for key in updates):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid property update."
        )

    # Ownership is settled before the body is validated
    query = _owned_task_filter(task_id, current_user["user"])
    if query is None:
        raise _task_not_found()

    try:
        exists = get_task_collection().find_one(query, {"_id": 1})
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    if not exists:
        raise _task_not_found()

    try:
        changes = TaskUpdate.model_validate(updates).model_dump(exclude_unset=True)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=validation_error_detail(e.errors())
        )

    changes["updated_at"] = datetime.now(timezone.utc)
    try:
        task_doc = get_task_collection().find_one_and_update(
            query,
            {"$set": changes},
            return_document=ReturnDocument.AFTER
        )
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not task_doc:
        raise _task_not_found()
    return task_doc


@task_router.delete("/{task_id}", response_model=TaskPublic, summary="Delete one of your tasks")
def delete_task(task_id: str, current_user: dict = Depends(get_current_user)):
    query = _owned_task_filter(task_id, current_user["user"])
    if query is None:
        raise _task_not_found()

    try:
        task_doc = get_task_collection().find_one_and_delete(query)
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    if not task_doc:
        raise _task_not_found()
    return task_doc
