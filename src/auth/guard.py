# src/auth/guard.py
"""
서버 측 인가 가드.

외부 인증 단계(src.app.attach_principal)가 요청 environ에 Principal을 붙여 두면,
이 모듈의 데코레이터가 핸들러 실행 전에 허용/거부를 결정합니다.
가드는 environ을 읽기만 하며, 판정은 요청마다 한 번 동기적으로 이루어집니다.

    Unauthenticated --(Principal 있음?)--> Authenticated --(권한 있음?)--> Authorized | Forbidden
"""
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Optional, Sequence, Set, Tuple

from src.auth.audit import log_permission_check
from src.auth.permissions import DEFAULT_TABLE, PermissionTable
from src.auth.roles import ADMIN, MalformedRoleRefError, role_names
from src.services.exceptions import AuthenticationRequiredError, ForbiddenError
from src.utils.logging import get_logger

logger = get_logger(__name__)

PRINCIPAL_KEY = 'rbac.principal'

AUTHENTICATION_REQUIRED = "Authentication required"
INSUFFICIENT_PERMISSIONS = "Insufficient permissions"
ADMIN_REQUIRED = "Admin access required"


@dataclass(frozen=True)
class Principal:
    """인증된 요청의 주체. roles는 인증 단계가 넘겨준 RoleRef 그대로입니다."""
    user_id: int
    username: str
    roles: Tuple[Any, ...] = field(default_factory=tuple)


def get_principal(environ: dict) -> Optional[Principal]:
    return environ.get(PRINCIPAL_KEY)


def _require_principal(environ: dict, permission: str, endpoint: Optional[str]) -> Principal:
    principal = get_principal(environ)
    if principal is None:
        log_permission_check('anonymous', permission, False, endpoint, [])
        raise AuthenticationRequiredError(AUTHENTICATION_REQUIRED)
    return principal


def _normalized_roles(principal: Principal, endpoint: Optional[str]) -> Optional[Set[str]]:
    try:
        return role_names(principal.roles)
    except MalformedRoleRefError:
        # 형태가 잘못된 역할 데이터는 출처에서 고쳐야 할 결함입니다. 요청은 거부합니다.
        logger.error("Malformed role data for user %s at %s: %r",
                     principal.username, endpoint, principal.roles)
        return None


def authorize(environ: dict, permissions: Sequence[str],
              table: PermissionTable = DEFAULT_TABLE, endpoint: Optional[str] = None) -> Principal:
    """
    Principal의 역할 중 하나라도 permissions 중 하나를 가지면 Principal을 반환합니다.

    Raises:
        AuthenticationRequiredError: Principal이 없을 때.
        ForbiddenError: 어떤 역할도 요구 권한을 가지지 않을 때. 메시지에 누락 권한을 노출하지 않습니다.
    """
    required = ','.join(permissions)
    principal = _require_principal(environ, required, endpoint)
    roles = _normalized_roles(principal, endpoint)

    granted = roles is not None and table.any_role_has(roles, permissions)
    log_permission_check(principal.username, required, granted, endpoint, roles or [])
    if not granted:
        raise ForbiddenError(INSUFFICIENT_PERMISSIONS)
    return principal


def principal_has_permission(environ: dict, permission: str,
                             table: PermissionTable = DEFAULT_TABLE) -> bool:
    """가드를 통과한 핸들러가 ':own' 범위 판정 등 세부 분기에 사용합니다."""
    principal = get_principal(environ)
    if principal is None:
        return False
    roles = _normalized_roles(principal, None)
    return roles is not None and table.any_role_has(roles, [permission])


def require_permission(*permissions: str, table: PermissionTable = DEFAULT_TABLE) -> Callable:
    """
    핸들러를 권한 가드로 감싸는 데코레이터. 나열된 권한 중 하나만 있어도 통과합니다.

    Usage:
        @require_permission(Permission.TASK_UPDATE, Permission.TASK_UPDATE_OWN)
        def update_task_handler(environ, task_id):
            ...
    """
    if not permissions:
        raise ValueError("require_permission needs at least one permission.")

    def decorator(handler: Callable) -> Callable:
        @wraps(handler)
        def guarded(environ, *args):
            authorize(environ, permissions, table=table, endpoint=handler.__name__)
            return handler(environ, *args)
        guarded.required_permissions = tuple(permissions)
        return guarded
    return decorator


def require_admin(handler: Callable) -> Callable:
    """관리자 라우트 그룹 전용 가드. 권한 테이블을 보지 않고 'admin' 역할 보유만 확인합니다."""
    @wraps(handler)
    def guarded(environ, *args):
        endpoint = handler.__name__
        principal = _require_principal(environ, ADMIN, endpoint)
        roles = _normalized_roles(principal, endpoint)
        granted = roles is not None and ADMIN in roles
        log_permission_check(principal.username, ADMIN, granted, endpoint, roles or [])
        if not granted:
            raise ForbiddenError(ADMIN_REQUIRED)
        return handler(environ, *args)
    return guarded


def require_authenticated(handler: Callable) -> Callable:
    @wraps(handler)
    def guarded(environ, *args):
        _require_principal(environ, 'authenticated', handler.__name__)
        return handler(environ, *args)
    return guarded
