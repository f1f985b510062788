# src/auth/permissions.py
"""
역할별 권한 테이블과 권한 판정 함수.

권한 문자열은 'resource:action' 또는 'resource:action:scope' 형식이며,
와일드카드 '*'(모든 권한)와 'resource:*'(해당 리소스의 모든 동작)를 지원합니다.
테이블은 런타임에 변경할 수 없으며, 변경은 코드 수정으로만 이루어집니다.
"""
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping


class Permission:
    """권한 문자열 상수 모음."""
    ALL = '*'

    USER_READ = 'user:read'
    USER_UPDATE = 'user:update'
    USER_DELETE = 'user:delete'
    USER_READ_OWN = 'user:read:own'
    USER_UPDATE_OWN = 'user:update:own'

    PROJECT_CREATE = 'project:create'
    PROJECT_READ = 'project:read'
    PROJECT_UPDATE = 'project:update'
    PROJECT_DELETE = 'project:delete'

    TASK_CREATE = 'task:create'
    TASK_READ = 'task:read'
    TASK_UPDATE = 'task:update'
    TASK_DELETE = 'task:delete'
    TASK_CREATE_OWN = 'task:create:own'
    TASK_UPDATE_OWN = 'task:update:own'
    TASK_DELETE_OWN = 'task:delete:own'

    COMMENT_CREATE = 'comment:create'
    COMMENT_READ = 'comment:read'
    COMMENT_DELETE = 'comment:delete'
    COMMENT_DELETE_OWN = 'comment:delete:own'


ROLE_PERMISSIONS: Mapping[str, FrozenSet[str]] = MappingProxyType({
    # 관리자는 predicate의 특수 분기 대신 '*' 항목으로 표현합니다.
    'admin': frozenset({Permission.ALL}),
    'project_manager': frozenset({
        Permission.PROJECT_CREATE,
        Permission.PROJECT_READ,
        Permission.PROJECT_UPDATE,
        Permission.TASK_CREATE,
        Permission.TASK_READ,
        Permission.TASK_UPDATE,
        Permission.USER_READ,
        'comment:*',
    }),
    'developer': frozenset({
        Permission.PROJECT_READ,
        Permission.TASK_READ,
        Permission.TASK_CREATE_OWN,
        Permission.TASK_UPDATE_OWN,
        Permission.COMMENT_READ,
        Permission.COMMENT_CREATE,
        Permission.COMMENT_DELETE_OWN,
        Permission.USER_READ_OWN,
        Permission.USER_UPDATE_OWN,
    }),
    'tester': frozenset({
        Permission.PROJECT_READ,
        Permission.TASK_READ,
        Permission.TASK_UPDATE_OWN,
        Permission.COMMENT_READ,
        Permission.COMMENT_CREATE,
        Permission.COMMENT_DELETE_OWN,
        Permission.USER_READ_OWN,
        Permission.USER_UPDATE_OWN,
    }),
    'user': frozenset({
        Permission.TASK_READ,
        Permission.TASK_CREATE_OWN,
        Permission.TASK_UPDATE_OWN,
        Permission.TASK_DELETE_OWN,
        Permission.COMMENT_READ,
        Permission.USER_READ_OWN,
        Permission.USER_UPDATE_OWN,
    }),
})


class PermissionTable:
    """
    역할 이름 -> 권한 집합 매핑을 감싸는 읽기 전용 테이블.

    역할 이름은 소문자로 변환하여 조회하고, 권한 문자열은 대소문자를 구분하여 비교합니다.
    테이블에 없는 역할은 빈 권한 집합과 동일하게 취급됩니다(모두 거부, 예외 없음).
    """

    def __init__(self, role_permissions: Mapping[str, Iterable[str]]):
        table: Dict[str, FrozenSet[str]] = {
            name.lower(): frozenset(perms) for name, perms in role_permissions.items()
        }
        self._table = MappingProxyType(table)

    def roles(self) -> FrozenSet[str]:
        return frozenset(self._table)

    def get_permissions(self, role: str) -> FrozenSet[str]:
        """역할의 권한 집합을 반환합니다. 알 수 없는 역할이면 빈 집합입니다."""
        if not isinstance(role, str):
            return frozenset()
        return self._table.get(role.lower(), frozenset())

    def has_permission(self, role: str, permission: str) -> bool:
        """
        역할이 특정 권한을 가지는지 판정합니다.

        판정 순서:
            1. 테이블 항목에 '*'가 있으면 허용
            2. 권한 문자열과 정확히 일치하는 항목이 있으면 허용
            3. 'resource:*' 형태의 항목이 있고 권한이 'resource:'로 시작하면 허용

        와일드카드 확장은 테이블 항목에만 적용되며, 검사 대상 권한 문자열에는 적용되지 않습니다.
        """
        permissions = self.get_permissions(role)
        if not permissions:
            return False
        if Permission.ALL in permissions or permission in permissions:
            return True
        return any(
            p.endswith(':*') and permission.startswith(p[:-1])
            for p in permissions
        )

    def any_role_has(self, roles: Iterable[str], permissions: Iterable[str]) -> bool:
        """여러 역할과 여러 권한에 대해 OR 조건으로 판정합니다."""
        permissions = list(permissions)
        return any(self.has_permission(role, p) for role in roles for p in permissions)


DEFAULT_TABLE = PermissionTable(ROLE_PERMISSIONS)


def get_permissions(role: str) -> FrozenSet[str]:
    return DEFAULT_TABLE.get_permissions(role)


def has_permission(role: str, permission: str) -> bool:
    return DEFAULT_TABLE.has_permission(role, permission)
