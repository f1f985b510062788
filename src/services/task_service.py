from datetime import datetime
from typing import Any, Dict, List, Optional

from src.database import models
from src.events.notifier import INotifier, NotifierNotConnectedError
from src.repositories.interfaces import ITaskRepository, ICommentRepository, IProjectRepository
from src.services.exceptions import (
    TaskNotFoundError, CommentNotFoundError, ProjectNotFoundError, ValidationError, ForbiddenError
)
from src.utils.logging import get_logger

logger = get_logger(__name__)

UPDATABLE_FIELDS = ('title', 'description', 'status', 'priority', 'due_date', 'assignee_id')


def serialize_task(task: models.Task) -> Dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "priority": task.priority,
        "due_date": task.due_date.isoformat() if task.due_date else None,
        "project_id": task.project_id,
        "created_by_id": task.created_by_id,
        "assignee_id": task.assignee_id,
    }


def serialize_comment(comment: models.Comment) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "content": comment.content,
        "task_id": comment.task_id,
        "author_id": comment.author_id,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
    }


def is_task_owner(task: models.Task, user_id: int) -> bool:
    """태스크의 생성자이거나 담당자이면 소유자로 봅니다."""
    return user_id is not None and user_id in (task.created_by_id, task.assignee_id)


class TaskService:
    """태스크와 댓글을 관리하고, 변경 사항을 실시간 알림 채널로 발행합니다."""

    def __init__(self, task_repo: ITaskRepository, comment_repo: ICommentRepository,
                 project_repo: IProjectRepository, notifier: INotifier):
        """
        TaskService를 초기화합니다.

        Args:
            task_repo: 태스크 데이터에 접근하기 위한 리포지토리.
            comment_repo: 댓글 데이터에 접근하기 위한 리포지토리.
            project_repo: 태스크가 속할 프로젝트를 검증하기 위한 리포지토리.
            notifier: 변경 이벤트를 발행할 알림 채널. 수명은 호출자가 관리합니다.
        """
        self.task_repo = task_repo
        self.comment_repo = comment_repo
        self.project_repo = project_repo
        self.notifier = notifier

    def create_task(self, actor_id: int, project_id: int, title: str, description: Optional[str] = None,
                    status: str = 'TODO', priority: str = 'MEDIUM', due_date: Optional[str] = None,
                    assignee_id: Optional[int] = None, restrict_to_owner: bool = False) -> Dict[str, Any]:
        """
        새로운 태스크를 생성합니다.

        Args:
            actor_id: 생성하는 사용자 ID. 태스크의 created_by가 됩니다.
            restrict_to_owner: 'task:create:own'만 가진 경우 True. 다른 사람에게 할당할 수 없습니다.

        Raises:
            ValidationError: 제목이 비었거나 상태/우선순위/마감일 값이 잘못되었을 때.
            ProjectNotFoundError: 해당 ID의 프로젝트를 찾을 수 없을 때.
            ForbiddenError: 소유 범위 권한만으로 다른 사용자에게 할당하려 할 때.
        """
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Task title is required.")
        _validate_choice('status', status, models.TASK_STATUSES)
        _validate_choice('priority', priority, models.TASK_PRIORITIES)
        if not self.project_repo.find_by_id(project_id):
            raise ProjectNotFoundError(f"Project with id '{project_id}' not found.")
        if restrict_to_owner and assignee_id not in (None, actor_id):
            raise ForbiddenError("Insufficient permissions")

        task = models.Task(
            title=title, description=description, status=status, priority=priority,
            due_date=_parse_due_date(due_date), project_id=project_id,
            created_by_id=actor_id, assignee_id=assignee_id,
        )
        data = serialize_task(self.task_repo.create(task))
        self._publish('task:created', data)
        return data

    def list_tasks(self, project_id: int, status: Optional[str] = None,
                   assignee_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Raises:
            ProjectNotFoundError: 해당 ID의 프로젝트를 찾을 수 없을 때.
        """
        if not self.project_repo.find_by_id(project_id):
            raise ProjectNotFoundError(f"Project with id '{project_id}' not found.")
        if status:
            _validate_choice('status', status, models.TASK_STATUSES)
        return [serialize_task(t) for t in self.task_repo.list_by_project_id(project_id, status, assignee_id)]

    def get_task(self, task_id: int) -> Dict[str, Any]:
        return serialize_task(self._get_task_model(task_id))

    def update_task(self, task_id: int, actor_id: int, changes: Dict[str, Any],
                    restrict_to_owner: bool = False) -> Dict[str, Any]:
        """
        태스크를 변경합니다. 알 수 없는 필드는 무시합니다.

        Raises:
            TaskNotFoundError: 해당 ID의 태스크를 찾을 수 없을 때.
            ForbiddenError: restrict_to_owner인데 actor가 태스크 소유자가 아니거나, 다른 사용자에게 할당하려 할 때.
            ValidationError: 변경할 필드가 없거나 값이 잘못되었을 때.
        """
        task = self._get_task_model(task_id)
        if restrict_to_owner and not is_task_owner(task, actor_id):
            raise ForbiddenError("Insufficient permissions")

        fields = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
        if not fields:
            raise ValidationError("No updatable fields supplied.")
        if restrict_to_owner and fields.get('assignee_id') not in (None, actor_id):
            raise ForbiddenError("Insufficient permissions")
        if 'title' in fields and (not isinstance(fields['title'], str) or not fields['title'].strip()):
            raise ValidationError("Task title is required.")
        if 'status' in fields:
            _validate_choice('status', fields['status'], models.TASK_STATUSES)
        if 'priority' in fields:
            _validate_choice('priority', fields['priority'], models.TASK_PRIORITIES)
        if 'due_date' in fields:
            fields['due_date'] = _parse_due_date(fields['due_date'])

        data = serialize_task(self.task_repo.update(task, fields))
        self._publish('task:updated', data)
        return data

    def delete_task(self, task_id: int, actor_id: int, restrict_to_owner: bool = False) -> bool:
        """
        Raises:
            TaskNotFoundError: 해당 ID의 태스크를 찾을 수 없을 때.
            ForbiddenError: restrict_to_owner인데 actor가 태스크 소유자가 아닐 때.
        """
        task = self._get_task_model(task_id)
        if restrict_to_owner and not is_task_owner(task, actor_id):
            raise ForbiddenError("Insufficient permissions")
        project_id = task.project_id
        self.task_repo.delete(task)
        self._publish('task:deleted', {"id": task_id, "project_id": project_id})
        return True

    def list_comments(self, task_id: int) -> List[Dict[str, Any]]:
        self._get_task_model(task_id)
        return [serialize_comment(c) for c in self.comment_repo.list_by_task_id(task_id)]

    def add_comment(self, task_id: int, author_id: int, content: str) -> Dict[str, Any]:
        """
        Raises:
            TaskNotFoundError: 해당 ID의 태스크를 찾을 수 없을 때.
            ValidationError: 내용이 비어 있을 때.
        """
        task = self._get_task_model(task_id)
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Comment content is required.")
        comment = self.comment_repo.create(models.Comment(content=content, task_id=task.id, author_id=author_id))
        data = serialize_comment(comment)
        self._publish('comment:created', dict(data, project_id=task.project_id))
        return data

    def delete_comment(self, comment_id: int, actor_id: int, restrict_to_owner: bool = False) -> bool:
        """
        Raises:
            CommentNotFoundError: 해당 ID의 댓글을 찾을 수 없을 때.
            ForbiddenError: restrict_to_owner인데 actor가 작성자가 아닐 때.
        """
        comment = self.comment_repo.find_by_id(comment_id)
        if not comment:
            raise CommentNotFoundError(f"Comment with id '{comment_id}' not found.")
        if restrict_to_owner and comment.author_id != actor_id:
            raise ForbiddenError("Insufficient permissions")
        task_id = comment.task_id
        self.comment_repo.delete(comment)
        self._publish('comment:deleted', {"id": comment_id, "task_id": task_id})
        return True

    def _get_task_model(self, task_id: int) -> models.Task:
        task = self.task_repo.find_by_id(task_id)
        if not task:
            raise TaskNotFoundError(f"Task with id '{task_id}' not found.")
        return task

    def _publish(self, event: str, payload: Dict[str, Any]):
        # 변경은 이미 커밋되었으므로 알림 실패가 요청 실패로 이어지지 않게 합니다.
        try:
            self.notifier.emit(event, payload)
        except NotifierNotConnectedError:
            logger.warning("Dropped '%s' event: notifier is not connected", event)


def _validate_choice(field: str, value, choices):
    if value not in choices:
        raise ValidationError(f"Invalid {field} '{value}'. Expected one of {', '.join(choices)}.")


def _parse_due_date(value) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid due_date '{value}'. Expected ISO 8601 format.")
