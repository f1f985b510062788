from typing import Any, Dict, List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from src.database import models
from src.repositories.interfaces import IUserRepository

class SqlalchemyUserRepository(IUserRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, user_model: models.User) -> models.User:
        self.db.add(user_model)
        self.db.commit()
        self.db.refresh(user_model)
        return user_model

    def find_by_id(self, user_id: int) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def find_by_username(self, username: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.username == username).first()

    def find_by_email(self, email: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.email == email).first()

    def list_all(self) -> List[models.User]:
        return self.db.query(models.User).order_by(models.User.username.asc()).all()

    def update(self, user: models.User, fields: Dict[str, Any], roles: Optional[List[models.Role]] = None) -> models.User:
        try:
            for key, value in fields.items():
                setattr(user, key, value)
            if roles is not None:
                user.roles = list(roles)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(user)
        return user

    def count_references(self, user_id: int) -> int:
        tasks = self.db.query(models.Task).filter(
            or_(models.Task.created_by_id == user_id, models.Task.assignee_id == user_id)
        ).count()
        comments = self.db.query(models.Comment).filter(models.Comment.author_id == user_id).count()
        projects = self.db.query(models.Project).filter(models.Project.owner_id == user_id).count()
        return tasks + comments + projects

    def delete(self, user: models.User) -> bool:
        if user:
            self.db.delete(user)
            self.db.commit()
            return True
        return False
