from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from src.database import models

class ITaskRepository(ABC):
    @abstractmethod
    def create(self, task_model: models.Task) -> models.Task:
        """새로운 태스크를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, task_id: int) -> Optional[models.Task]:
        """고유 ID로 특정 태스크를 조회합니다."""
        pass

    @abstractmethod
    def list_by_project_id(self, project_id: int, status: Optional[str] = None,
                           assignee_id: Optional[int] = None) -> List[models.Task]:
        """특정 프로젝트의 태스크 목록을 조회합니다. status, assignee_id로 필터링할 수 있습니다."""
        pass

    @abstractmethod
    def update(self, task: models.Task, fields: Dict[str, Any]) -> models.Task:
        """태스크의 필드를 변경합니다."""
        pass

    @abstractmethod
    def delete(self, task: models.Task) -> bool:
        """특정 태스크를 데이터베이스에서 삭제합니다. 딸린 댓글도 함께 삭제됩니다."""
        pass

    @abstractmethod
    def count_by_project_id(self, project_id: int) -> int:
        """특정 프로젝트에 속한 태스크의 개수를 조회합니다."""
        pass
