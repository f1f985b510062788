from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..database import Base

PROJECT_STATUSES = ('PLANNING', 'IN_PROGRESS', 'ON_HOLD', 'COMPLETED', 'CANCELLED')
MEMBER_ROLES = ('OWNER', 'MANAGER', 'DEVELOPER', 'DESIGNER', 'TESTER', 'VIEWER')

class Project(Base):
    """
    태스크와 멤버가 소속되는 작업 공간을 나타냅니다.
    모든 태스크는 하나의 프로젝트에 종속됩니다.
    """
    __tablename__ = "projects"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text)
    status = Column(String, nullable=False, default='PLANNING')
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    owner = relationship("User")
    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan")
    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")
