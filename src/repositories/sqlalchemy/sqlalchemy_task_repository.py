from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from src.database import models
from src.repositories.interfaces import ITaskRepository

class SqlalchemyTaskRepository(ITaskRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, task_model: models.Task) -> models.Task:
        self.db.add(task_model)
        self.db.commit()
        self.db.refresh(task_model)
        return task_model

    def find_by_id(self, task_id: int) -> Optional[models.Task]:
        return self.db.query(models.Task).filter(models.Task.id == task_id).first()

    def list_by_project_id(self, project_id: int, status: Optional[str] = None,
                           assignee_id: Optional[int] = None) -> List[models.Task]:
        query = self.db.query(models.Task).filter(models.Task.project_id == project_id)
        if status:
            query = query.filter(models.Task.status == status)
        if assignee_id is not None:
            query = query.filter(models.Task.assignee_id == assignee_id)
        return query.order_by(models.Task.created_at.desc(), models.Task.id.desc()).all()

    def update(self, task: models.Task, fields: Dict[str, Any]) -> models.Task:
        for key, value in fields.items():
            setattr(task, key, value)
        self.db.commit()
        self.db.refresh(task)
        return task

    def delete(self, task: models.Task) -> bool:
        if task:
            self.db.delete(task)
            self.db.commit()
            return True
        return False

    def count_by_project_id(self, project_id: int) -> int:
        return self.db.query(models.Task).filter(models.Task.project_id == project_id).count()
