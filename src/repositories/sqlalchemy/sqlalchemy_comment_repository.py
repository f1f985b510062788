from typing import List, Optional
from sqlalchemy.orm import Session
from src.database import models
from src.repositories.interfaces import ICommentRepository

class SqlalchemyCommentRepository(ICommentRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, comment_model: models.Comment) -> models.Comment:
        self.db.add(comment_model)
        self.db.commit()
        self.db.refresh(comment_model)
        return comment_model

    def find_by_id(self, comment_id: int) -> Optional[models.Comment]:
        return self.db.query(models.Comment).filter(models.Comment.id == comment_id).first()

    def list_by_task_id(self, task_id: int) -> List[models.Comment]:
        return self.db.query(models.Comment).filter(models.Comment.task_id == task_id).order_by(models.Comment.id.asc()).all()

    def delete(self, comment: models.Comment) -> bool:
        if comment:
            self.db.delete(comment)
            self.db.commit()
            return True
        return False
