from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from src.database import models

class IProjectRepository(ABC):
    @abstractmethod
    def create(self, project_model: models.Project) -> models.Project:
        """새로운 프로젝트를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, project_id: int) -> Optional[models.Project]:
        """고유 ID로 특정 프로젝트를 조회합니다."""
        pass

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[models.Project]:
        """이름으로 특정 프로젝트를 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.Project]:
        """모든 프로젝트의 목록을 조회합니다."""
        pass

    @abstractmethod
    def update(self, project: models.Project, fields: Dict[str, Any]) -> models.Project:
        """프로젝트의 필드를 변경합니다."""
        pass

    @abstractmethod
    def delete(self, project: models.Project) -> bool:
        """특정 프로젝트를 데이터베이스에서 삭제합니다."""
        pass

    @abstractmethod
    def list_members(self, project_id: int) -> List[Dict[str, Any]]:
        """
        특정 프로젝트에 속한 모든 멤버와 그들의 프로젝트 내 직무를 조회합니다.

        Returns:
            사용자 정보(id, username)와 직무(role)가 포함된 딕셔너리의 리스트.
            (예: [{'id': 1, 'username': 'admin', 'role': 'OWNER'}])
        """
        pass

    @abstractmethod
    def find_member(self, project_id: int, user_id: int) -> Optional[models.ProjectMember]:
        """프로젝트 멤버십을 조회합니다."""
        pass

    @abstractmethod
    def upsert_member(self, project: models.Project, user: models.User, role: str) -> models.ProjectMember:
        """사용자를 프로젝트 멤버로 추가합니다. 이미 멤버이면 직무만 변경합니다."""
        pass

    @abstractmethod
    def remove_member(self, member: models.ProjectMember) -> bool:
        """프로젝트 멤버십을 삭제합니다."""
        pass
