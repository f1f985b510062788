# src/auth/audit.py
import json
from datetime import datetime, timezone
from typing import Iterable, Optional

from src.utils.logging import get_logger

# 권한 판정 전용 감사 로거
audit_logger = get_logger('rbac.audit')


def log_permission_check(
    user: str,
    permission: str,
    granted: bool,
    endpoint: Optional[str],
    roles: Iterable[str],
) -> None:
    """
    권한 판정 결과를 감사 로그로 남깁니다.
    허용은 DEBUG, 거부는 WARNING과 함께 구조화된 JSON 레코드로 기록합니다.
    """
    roles = sorted(roles)
    result = 'GRANTED' if granted else 'DENIED'
    message = f"{user} | {permission} | {result} | {endpoint} | roles: {roles}"

    if granted:
        audit_logger.debug(message)
        return

    audit_logger.warning(message)
    audit_logger.info("AUDIT: %s", json.dumps({
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'user': user,
        'permission': permission,
        'result': result,
        'endpoint': endpoint,
        'roles': roles,
    }))
