from typing import Iterable, List
from sqlalchemy.orm import Session
from src.database import models
from src.repositories.interfaces import IRoleRepository

class SqlalchemyRoleRepository(IRoleRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def find_by_ids(self, role_ids: Iterable[int]) -> List[models.Role]:
        role_ids = list(role_ids)
        if not role_ids:
            return []
        return self.db.query(models.Role).filter(models.Role.id.in_(role_ids)).order_by(models.Role.name.asc()).all()

    def find_by_names(self, names: Iterable[str]) -> List[models.Role]:
        names = list(names)
        if not names:
            return []
        return self.db.query(models.Role).filter(models.Role.name.in_(names)).order_by(models.Role.name.asc()).all()

    def list_all(self) -> List[models.Role]:
        return self.db.query(models.Role).order_by(models.Role.name.asc()).all()
