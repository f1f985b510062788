from abc import ABC, abstractmethod
from typing import List, Optional
from src.database import models

class ICommentRepository(ABC):
    @abstractmethod
    def create(self, comment_model: models.Comment) -> models.Comment:
        """새로운 댓글을 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, comment_id: int) -> Optional[models.Comment]:
        """고유 ID로 특정 댓글을 조회합니다."""
        pass

    @abstractmethod
    def list_by_task_id(self, task_id: int) -> List[models.Comment]:
        """특정 태스크의 댓글을 작성 순서대로 조회합니다."""
        pass

    @abstractmethod
    def delete(self, comment: models.Comment) -> bool:
        """특정 댓글을 데이터베이스에서 삭제합니다."""
        pass
