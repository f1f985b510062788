from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session, joinedload
from src.database import models
from src.repositories.interfaces import IProjectRepository

class SqlalchemyProjectRepository(IProjectRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, project_model: models.Project) -> models.Project:
        self.db.add(project_model)
        self.db.commit()
        self.db.refresh(project_model)
        return project_model

    def find_by_id(self, project_id: int) -> Optional[models.Project]:
        return self.db.query(models.Project).filter(models.Project.id == project_id).first()

    def find_by_name(self, name: str) -> Optional[models.Project]:
        return self.db.query(models.Project).filter(models.Project.name == name).first()

    def list_all(self) -> List[models.Project]:
        return self.db.query(models.Project).order_by(models.Project.name.asc()).all()

    def update(self, project: models.Project, fields: Dict[str, Any]) -> models.Project:
        for key, value in fields.items():
            setattr(project, key, value)
        self.db.commit()
        self.db.refresh(project)
        return project

    def delete(self, project: models.Project) -> bool:
        if project:
            self.db.delete(project)
            self.db.commit()
            return True
        return False

    def list_members(self, project_id: int) -> List[Dict[str, Any]]:
        members = self.db.query(models.ProjectMember).options(joinedload(models.ProjectMember.user)).filter(
            models.ProjectMember.project_id == project_id
        ).all()
        return [
            {"id": m.user.id, "username": m.user.username, "role": m.role}
            for m in sorted(members, key=lambda m: m.user.username)
        ]

    def find_member(self, project_id: int, user_id: int) -> Optional[models.ProjectMember]:
        return self.db.query(models.ProjectMember).filter(
            models.ProjectMember.project_id == project_id,
            models.ProjectMember.user_id == user_id
        ).first()

    def upsert_member(self, project: models.Project, user: models.User, role: str) -> models.ProjectMember:
        member = models.ProjectMember(project_id=project.id, user_id=user.id, role=role)
        member = self.db.merge(member) # INSERT OR UPDATE와 유사한 동작
        self.db.commit()
        return member

    def remove_member(self, member: models.ProjectMember) -> bool:
        if member:
            self.db.delete(member)
            self.db.commit()
            return True
        return False
