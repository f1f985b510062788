from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from ..database import Base

class User(Base):
    """
    시스템에 로그인하고 프로젝트, 태스크, 댓글을 다루는 사용자를 나타냅니다.
    사용자는 여러 전역 역할(Role)을 가질 수 있고, 여러 프로젝트의 멤버가 될 수 있습니다.
    """
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True)
    name = Column(String)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    roles = relationship("Role", secondary="user_roles", lazy="selectin", order_by="Role.name")
    project_memberships = relationship("ProjectMember", back_populates="user", cascade="all, delete-orphan")
