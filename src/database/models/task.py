from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..database import Base

TASK_STATUSES = ('TODO', 'IN_PROGRESS', 'IN_REVIEW', 'DONE', 'BLOCKED')
TASK_PRIORITIES = ('LOW', 'MEDIUM', 'HIGH', 'URGENT')

class Task(Base):
    """
    프로젝트 안에서 수행해야 할 작업 단위를 나타냅니다.
    생성자(created_by)와 담당자(assignee)는 ':own' 범위 권한의 소유자 판정에 사용됩니다.
    """
    __tablename__ = "tasks"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(String, nullable=False, default='TODO')
    priority = Column(String, nullable=False, default='MEDIUM')
    due_date = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    project = relationship("Project", back_populates="tasks")
    comments = relationship("Comment", back_populates="task", cascade="all, delete-orphan")
