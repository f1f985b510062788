import hashlib

from src.auth.permissions import ROLE_PERMISSIONS
from src.config import get_settings
from src.utils.logging import get_logger, setup_logging
from .database import Base, create_db_engine, make_session_factory
from .models import Role, User

logger = get_logger(__name__)

ROLE_DESCRIPTIONS = {
    'admin': 'Full access to every resource',
    'project_manager': 'Manages projects, tasks and team members',
    'developer': 'Works on assigned tasks',
    'tester': 'Verifies tasks and reports findings',
    'user': 'Basic access to own tasks',
}

def initialize_db(engine=None, admin_password: str = 'admin'):
    """
    DB와 테이블을 생성하고, 기본 데이터를 삽입합니다.
    권한 테이블에 정의된 모든 역할과 기본 관리자 계정을 생성합니다.
    """
    if engine is None:
        engine = create_db_engine(get_settings().database_url)
    logger.info("DB 초기화 중 (SQLAlchemy 사용)...")

    # 모든 테이블을 생성합니다. (이미 존재하면 생성하지 않음)
    Base.metadata.create_all(bind=engine)
    logger.info("테이블 생성 완료.")

    db = make_session_factory(engine)()
    try:
        # 권한 테이블에 있는 역할은 DB에도 반드시 존재해야 합니다.
        existing = {r.name for r in db.query(Role).all()}
        for role_name in sorted(ROLE_PERMISSIONS):
            if role_name not in existing:
                db.add(Role(name=role_name, description=ROLE_DESCRIPTIONS.get(role_name)))
        db.commit()

        if db.query(User).first():
            logger.info("기본 사용자가 이미 존재합니다. 관리자 생성을 건너뜁니다.")
            return

        admin_role = db.query(Role).filter(Role.name == 'admin').one()
        password_hash = hashlib.sha256(admin_password.encode('utf-8')).hexdigest()
        admin_user = User(username='admin', email='admin@example.com', name='Administrator',
                          password_hash=password_hash, roles=[admin_role])
        db.add(admin_user)
        db.commit()
        logger.info("DB 초기화 및 기본 데이터 삽입 완료.")

    except Exception:
        logger.exception("DB 초기화 중 오류 발생")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == '__main__':
    setup_logging(get_settings().log_level)
    initialize_db()
