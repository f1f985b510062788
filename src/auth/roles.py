# src/auth/roles.py
"""
역할 참조(RoleRef) 정규화.

API 응답이나 캐시된 상태에서 역할은 'admin' 같은 문자열로 오기도 하고
{'id': 1, 'name': 'admin'} 같은 객체로 오기도 합니다. 역할을 비교하는 모든 코드는
이 모듈을 거쳐 하나의 정규화된 이름(소문자)으로 비교해야 합니다.
"""
from collections.abc import Mapping
from typing import Any, Iterable, Optional, Set

ADMIN = 'admin'
PROJECT_MANAGER = 'project_manager'
DEVELOPER = 'developer'
TESTER = 'tester'
USER = 'user'

# 여러 역할을 가진 사용자의 기본 랜딩 페이지를 고를 때의 우선순위
ROLE_PRIORITY = (ADMIN, PROJECT_MANAGER, DEVELOPER, TESTER, USER)


class MalformedRoleRefError(TypeError):
    """역할 참조가 문자열도, name을 가진 객체도 아닐 때"""
    pass


def normalize_role(ref: Any) -> str:
    """
    RoleRef를 정규화된 역할 이름으로 변환합니다.

    Args:
        ref: 역할 이름 문자열, 'name' 키를 가진 매핑, 또는 name 속성을 가진 객체.

    Returns:
        소문자로 변환된 역할 이름.

    Raises:
        MalformedRoleRefError: 어떤 형태로도 역할 이름을 얻을 수 없을 때.
    """
    if isinstance(ref, str):
        name = ref
    elif isinstance(ref, Mapping):
        name = ref.get('name')
    else:
        name = getattr(ref, 'name', None)

    if not isinstance(name, str) or not name.strip():
        raise MalformedRoleRefError(f"Malformed role reference: {ref!r}")
    return name.strip().lower()


def role_names(refs: Optional[Iterable[Any]]) -> Set[str]:
    """RoleRef 목록을 정규화된 역할 이름 집합으로 변환합니다."""
    if refs is None:
        return set()
    if isinstance(refs, (str, Mapping)):
        refs = [refs]
    return {normalize_role(ref) for ref in refs}


def has_any_role(refs: Optional[Iterable[Any]], candidates: Iterable[Any]) -> bool:
    return not role_names(refs).isdisjoint(role_names(candidates))


def has_role(refs: Optional[Iterable[Any]], role: Any) -> bool:
    return has_any_role(refs, [role])
