from sqlalchemy import Column, Integer, String
from ..database import Base

class Role(Base):
    """
    사용자에게 부여되는 전역 역할을 정의합니다.
    (예: 'admin', 'project_manager', 'developer', 'tester', 'user').
    역할별 권한은 DB가 아니라 코드의 권한 테이블(src.auth.permissions)에 정의됩니다.
    """
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(String)
