import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_identity
from backend.auth.jwt_handler import Identity
from backend.database import get_db
from backend.models.todo import Todo

router = APIRouter(tags=['todos'])

logger = logging.getLogger(__name__)

TODO_NOT_FOUND = 'Todo not found'


class CreateTodoRequest(BaseModel):
    title: str | None = None
    description: str | None = None


class UpdateTodoRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    completed: bool | None = None


class TodoResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    completed: bool
    user_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @field_validator('created_at', 'updated_at')
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite drops the offset; timestamps are always written as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def serialize_todo(todo: Todo) -> dict:
    return TodoResponse.model_validate(todo).model_dump(mode='json')


def server_error(action: str, exc: SQLAlchemyError) -> HTTPException:
    logger.exception('Database error while %s todo', action)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f'Server error while {action} todo',
    )


def get_owned_todo(
    todo_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Todo:
    """Load a todo only if it belongs to the caller.

    A todo owned by someone else is reported exactly like a missing one so
    that ids of other users' records cannot be discovered.
    """
    try:
        todo = db.query(Todo).filter(Todo.id == todo_id, Todo.user_id == identity.id).first()
    except SQLAlchemyError as exc:
        raise server_error('fetching', exc) from exc
    if todo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TODO_NOT_FOUND)
    return todo


@router.post('', status_code=status.HTTP_201_CREATED)
def create_todo(
    payload: CreateTodoRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    if not payload.title or not payload.title.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Title is required')

    todo = Todo(
        title=payload.title,
        description=payload.description or None,
        completed=False,
        user_id=identity.id,
    )
    try:
        db.add(todo)
        db.commit()
        db.refresh(todo)
    except SQLAlchemyError as exc:
        db.rollback()
        raise server_error('creating', exc) from exc

    logger.info('User %s created todo %s', identity.id, todo.id)
    return {'message': 'Todo created successfully', 'todo': serialize_todo(todo)}


@router.get('')
def list_todos(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    try:
        todos = (
            db.query(Todo)
            .filter(Todo.user_id == identity.id)
            .order_by(Todo.created_at.desc(), Todo.id.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise server_error('fetching', exc) from exc

    return {
        'message': 'Todos retrieved successfully',
        'todos': [serialize_todo(todo) for todo in todos],
    }


@router.get('/{todo_id}')
def get_todo(todo: Todo = Depends(get_owned_todo)):
    return {'message': 'Todo retrieved successfully', 'todo': serialize_todo(todo)}


@router.put('/{todo_id}')
def update_todo(
    payload: UpdateTodoRequest,
    todo: Todo = Depends(get_owned_todo),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)

    # null is treated as "not provided" for the non-nullable columns.
    if changes.get('title') is None:
        changes.pop('title', None)
    elif not changes['title'].strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Title cannot be empty')
    if changes.get('completed') is None:
        changes.pop('completed', None)

    for field, value in changes.items():
        setattr(todo, field, value)

    try:
        db.commit()
        db.refresh(todo)
    except SQLAlchemyError as exc:
        db.rollback()
        raise server_error('updating', exc) from exc

    logger.info('User %s updated todo %s', todo.user_id, todo.id)
    return {'message': 'Todo updated successfully', 'todo': serialize_todo(todo)}


@router.delete('/{todo_id}')
def delete_todo(
    todo: Todo = Depends(get_owned_todo),
    db: Session = Depends(get_db),
):
    deleted = serialize_todo(todo)
    try:
        db.delete(todo)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise server_error('deleting', exc) from exc

    logger.info('User %s deleted todo %s', deleted['user_id'], deleted['id'])
    return {'message': 'Todo deleted successfully', 'todo': deleted}
