from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from src.database import models

class IUserRepository(ABC):
    @abstractmethod
    def create(self, user_model: models.User) -> models.User:
        """새로운 사용자를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[models.User]:
        """고유 ID로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def find_by_username(self, username: str) -> Optional[models.User]:
        """사용자 이름으로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[models.User]:
        """이메일로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.User]:
        """모든 사용자의 목록을 조회합니다."""
        pass

    @abstractmethod
    def update(self, user: models.User, fields: Dict[str, Any], roles: Optional[List[models.Role]] = None) -> models.User:
        """
        사용자 필드와 역할 집합을 하나의 트랜잭션으로 변경합니다.

        Args:
            user: 변경할 사용자.
            fields: 변경할 컬럼과 값.
            roles: None이 아니면 사용자의 역할 집합을 이 목록으로 교체합니다.

        실패하면 전체 변경을 롤백하고 예외를 다시 발생시킵니다.
        """
        pass

    @abstractmethod
    def count_references(self, user_id: int) -> int:
        """사용자를 생성자, 담당자, 작성자, 소유자로 참조하는 태스크, 댓글, 프로젝트의 수를 반환합니다."""
        pass

    @abstractmethod
    def delete(self, user: models.User) -> bool:
        """특정 사용자를 데이터베이스에서 삭제합니다."""
        pass
