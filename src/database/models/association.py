from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..database import Base

class UserRole(Base):
    """
    사용자(User)와 역할(Role) 사이의 다대다(many-to-many) 관계를 연결하는 연관 테이블입니다.
    한 사용자는 여러 전역 역할(admin, developer 등)을 동시에 가질 수 있습니다.
    """
    __tablename__ = 'user_roles'
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)
    role_id = Column(Integer, ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True)


class ProjectMember(Base):
    """
    사용자(User)와 프로젝트(Project) 사이의 멤버십을 나타내는 연관 테이블 모델입니다.
    어떤 사용자가 어떤 프로젝트에서 어떤 직무(OWNER, DEVELOPER 등)를 맡는지를 정의합니다.
    전역 역할(Role)과는 별개이며, 권한 판정에는 사용되지 않습니다.
    """
    __tablename__ = 'project_members'
    project_id = Column(Integer, ForeignKey('projects.id'), primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), primary_key=True)
    role = Column(String, nullable=False, default='VIEWER')
    joined_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="project_memberships")
    project = relationship("Project", back_populates="members")
