from abc import ABC, abstractmethod
from typing import Iterable, List
from src.database import models

class IRoleRepository(ABC):
    @abstractmethod
    def find_by_ids(self, role_ids: Iterable[int]) -> List[models.Role]:
        """ID 목록에 해당하는 역할들을 조회합니다. 없는 ID는 무시됩니다."""
        pass

    @abstractmethod
    def find_by_names(self, names: Iterable[str]) -> List[models.Role]:
        """이름 목록에 해당하는 역할들을 조회합니다. 없는 이름은 무시됩니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.Role]:
        """모든 역할의 목록을 조회합니다."""
        pass
