from typing import Any, Dict, List, Optional

from src.database import models
from src.repositories.interfaces import IProjectRepository, IUserRepository, ITaskRepository
from src.services.exceptions import (
    ProjectCreationError, ProjectNotEmptyError, ProjectNotFoundError,
    UserNotFoundError, MemberNotFoundError, ValidationError
)
from src.utils.logging import get_logger

logger = get_logger(__name__)

UPDATABLE_FIELDS = ('name', 'description', 'status')


def serialize_project(project: models.Project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "status": project.status,
        "owner_id": project.owner_id,
    }


class ProjectService:
    """프로젝트와 프로젝트 멤버십을 관리하는 서비스를 제공합니다."""

    def __init__(self, project_repo: IProjectRepository, user_repo: IUserRepository, task_repo: ITaskRepository):
        """
        ProjectService를 초기화합니다.

        Args:
            project_repo: 프로젝트 데이터에 접근하기 위한 리포지토리.
            user_repo: 멤버로 추가할 사용자를 조회하기 위한 리포지토리.
            task_repo: 태스크 데이터에 접근하기 위한 리포지토리 (프로젝트 삭제 시 검증용).
        """
        self.project_repo = project_repo
        self.user_repo = user_repo
        self.task_repo = task_repo

    def create_project(self, name: str, owner_id: Optional[int] = None, description: Optional[str] = None,
                       status: str = 'PLANNING') -> Dict[str, Any]:
        """
        새로운 프로젝트를 생성합니다. 생성자는 OWNER 멤버로 등록됩니다.

        Raises:
            ValidationError: 이름이 3~100자가 아니거나 상태 값이 잘못되었을 때.
            ProjectCreationError: 동일한 이름의 프로젝트가 이미 존재할 때.
        """
        _validate_name(name)
        _validate_status(status)
        if self.project_repo.find_by_name(name):
            raise ProjectCreationError(f"Project with name '{name}' already exists.")

        new_project = models.Project(name=name, description=description, status=status, owner_id=owner_id)
        created_project = self.project_repo.create(new_project)

        if owner_id is not None:
            owner = self.user_repo.find_by_id(owner_id)
            if owner:
                self.project_repo.upsert_member(created_project, owner, 'OWNER')
        logger.info("Project '%s' created by user %s", name, owner_id)
        return serialize_project(created_project)

    def list_projects(self) -> List[Dict[str, Any]]:
        """모든 프로젝트의 목록을 조회합니다."""
        return [serialize_project(p) for p in self.project_repo.list_all()]

    def get_project(self, project_id: int) -> Dict[str, Any]:
        """
        ID로 특정 프로젝트를 조회합니다.

        Raises:
            ProjectNotFoundError: 해당 ID의 프로젝트를 찾을 수 없을 때.
        """
        return serialize_project(self._get_project_model(project_id))

    def update_project(self, project_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        프로젝트의 이름, 설명, 상태를 변경합니다. 알 수 없는 필드는 무시합니다.

        Raises:
            ProjectNotFoundError: 해당 ID의 프로젝트를 찾을 수 없을 때.
            ValidationError: 변경할 필드가 없거나 값이 잘못되었을 때.
            ProjectCreationError: 변경하려는 이름을 다른 프로젝트가 쓰고 있을 때.
        """
        project = self._get_project_model(project_id)
        fields = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
        if not fields:
            raise ValidationError("No updatable fields supplied.")
        if 'name' in fields:
            _validate_name(fields['name'])
            other = self.project_repo.find_by_name(fields['name'])
            if other and other.id != project.id:
                raise ProjectCreationError(f"Project with name '{fields['name']}' already exists.")
        if 'status' in fields:
            _validate_status(fields['status'])
        return serialize_project(self.project_repo.update(project, fields))

    def delete_project(self, project_id: int) -> bool:
        """
        프로젝트를 삭제합니다. 단, 태스크가 없는 비어있는 프로젝트만 삭제 가능합니다.

        Raises:
            ProjectNotFoundError: 해당 ID의 프로젝트를 찾을 수 없을 때.
            ProjectNotEmptyError: 프로젝트에 태스크가 하나 이상 존재하여 삭제할 수 없을 때.
        """
        project = self._get_project_model(project_id)

        if self.task_repo.count_by_project_id(project_id) > 0:
            raise ProjectNotEmptyError(f"Project '{project_id}' is not empty.")

        self.project_repo.delete(project)
        return True

    def list_members(self, project_id: int) -> List[Dict[str, Any]]:
        """
        특정 프로젝트에 속한 모든 멤버와 각자의 직무를 조회합니다.

        Raises:
            ProjectNotFoundError: 해당 ID의 프로젝트를 찾을 수 없을 때.
        """
        self._get_project_model(project_id)
        return self.project_repo.list_members(project_id)

    def add_member(self, project_id: int, user_id: int, role: str = 'VIEWER') -> Dict[str, Any]:
        """
        사용자를 프로젝트 멤버로 추가하거나, 이미 멤버이면 직무를 변경합니다.

        Raises:
            ProjectNotFoundError, UserNotFoundError
            ValidationError: 알 수 없는 직무일 때.
        """
        if role is not None and not isinstance(role, str):
            raise ValidationError("Member role must be a string.")
        role = (role or 'VIEWER').upper()
        if role not in models.MEMBER_ROLES:
            raise ValidationError(f"Invalid member role '{role}'.")
        project = self._get_project_model(project_id)
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.")

        self.project_repo.upsert_member(project, user, role)
        return {"id": user.id, "username": user.username, "role": role}

    def remove_member(self, project_id: int, user_id: int) -> bool:
        """
        Raises:
            ProjectNotFoundError: 해당 ID의 프로젝트를 찾을 수 없을 때.
            MemberNotFoundError: 사용자가 프로젝트 멤버가 아닐 때.
        """
        self._get_project_model(project_id)
        member = self.project_repo.find_member(project_id, user_id)
        if not member:
            raise MemberNotFoundError(f"User '{user_id}' is not a member of project '{project_id}'.")
        return self.project_repo.remove_member(member)

    def _get_project_model(self, project_id: int) -> models.Project:
        project = self.project_repo.find_by_id(project_id)
        if not project:
            raise ProjectNotFoundError(f"Project with id '{project_id}' not found.")
        return project


def _validate_name(name):
    if not isinstance(name, str) or not 3 <= len(name.strip()) <= 100:
        raise ValidationError("Project name must be between 3 and 100 characters.")


def _validate_status(status):
    if status not in models.PROJECT_STATUSES:
        raise ValidationError(f"Invalid project status '{status}'.")
