# src/auth/route_gate.py
"""
클라이언트 라우트/컴포넌트 게이트의 판정 로직.

SPA가 화면을 보여줄지, 로그인이나 역할별 기본 페이지로 보낼지를 결정합니다.
보안 경계가 아니라 사용자 경험을 위한 판정이며, 실제 강제는 src.auth.guard가 담당합니다.
"""
import enum
import itertools
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Tuple

from src.auth.roles import (
    ADMIN, DEVELOPER, PROJECT_MANAGER, ROLE_PRIORITY, TESTER, USER, role_names,
)

LOGIN_PATH = '/login'
ROOT_PATH = '/'
GENERIC_LANDING = '/dashboard'

ROLE_LANDING_PAGES = {
    ADMIN: '/dashboard',
    PROJECT_MANAGER: '/project-manager',
    DEVELOPER: '/developer',
    TESTER: '/tester',
    USER: '/user',
}

# SPA 라우트 접두사 -> 허용 역할 (빈 튜플은 인증된 사용자 모두 허용)
CLIENT_ROUTES = {
    '/dashboard': (),
    '/admin': (ADMIN,),
    '/project-manager': (PROJECT_MANAGER, ADMIN),
    '/developer': (DEVELOPER,),
    '/tester': (TESTER,),
    '/user': (USER,),
}


class AuthStatus(enum.Enum):
    LOADING = 'loading'
    UNAUTHENTICATED = 'unauthenticated'
    AUTHENTICATED = 'authenticated'


class GateAction(enum.Enum):
    WAIT = 'wait'
    ALLOW = 'allow'
    REDIRECT = 'redirect'


@dataclass(frozen=True)
class AuthState:
    status: AuthStatus
    roles: Tuple[Any, ...] = field(default_factory=tuple)

    @classmethod
    def loading(cls, roles: Iterable[Any] = ()) -> 'AuthState':
        return cls(AuthStatus.LOADING, tuple(roles))

    @classmethod
    def anonymous(cls) -> 'AuthState':
        return cls(AuthStatus.UNAUTHENTICATED)

    @classmethod
    def authenticated(cls, roles: Iterable[Any]) -> 'AuthState':
        return cls(AuthStatus.AUTHENTICATED, tuple(roles))


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    target: Optional[str] = None
    return_to: Optional[str] = None

    def to_dict(self) -> dict:
        return {'action': self.action.value, 'target': self.target, 'return_to': self.return_to}


def default_landing(roles: Iterable[Any]) -> str:
    """우선순위(admin > project_manager > developer > tester > user)에 따라 기본 페이지를 고릅니다."""
    names = role_names(roles)
    for role in ROLE_PRIORITY:
        if role in names:
            return ROLE_LANDING_PAGES[role]
    return GENERIC_LANDING


def is_safe_return_url(url: Optional[str]) -> bool:
    """같은 출처의 절대 경로만 복귀 주소로 허용합니다."""
    return (
        isinstance(url, str)
        and url.startswith('/')
        and not url.startswith('//')
        and '\\' not in url
        and url.split('?', 1)[0] not in (LOGIN_PATH, ROOT_PATH)
    )


def post_login_destination(roles: Iterable[Any], return_url: Optional[str] = None) -> str:
    if is_safe_return_url(return_url):
        return return_url
    return default_landing(roles)


def allowed_roles_for(path: str) -> Tuple[str, ...]:
    """가장 길게 일치하는 라우트 접두사의 허용 역할을 반환합니다."""
    best = None
    for prefix in CLIENT_ROUTES:
        if path == prefix or path.startswith(prefix + '/'):
            if best is None or len(prefix) > len(best):
                best = prefix
    return CLIENT_ROUTES[best] if best is not None else ()


def evaluate(state: AuthState, path: str, allowed_roles: Optional[Iterable[str]] = None) -> GateDecision:
    """
    현재 인증 상태로 path를 보여줄지 판정합니다.

    Args:
        state: 인증 상태. LOADING이면 남아 있는 역할 데이터와 무관하게 WAIT입니다.
        path: 요청된 경로. 같은 출처의 절대 경로가 아니면 역할별 기본 페이지로 보냅니다.
        allowed_roles: 허용 역할 목록. None이면 CLIENT_ROUTES에서 찾고, 비어 있으면 인증만 요구합니다.
    """
    if state.status is AuthStatus.LOADING:
        return GateDecision(GateAction.WAIT)

    if state.status is AuthStatus.UNAUTHENTICATED:
        return_to = path if is_safe_return_url(path) else None
        return GateDecision(GateAction.REDIRECT, target=LOGIN_PATH, return_to=return_to)

    if path == ROOT_PATH or not is_safe_return_url(path):
        return GateDecision(GateAction.REDIRECT, target=default_landing(state.roles))

    if allowed_roles is None:
        allowed_roles = allowed_roles_for(path)
    allowed = role_names(allowed_roles)
    if not allowed or not role_names(state.roles).isdisjoint(allowed):
        return GateDecision(GateAction.ALLOW)

    return GateDecision(GateAction.REDIRECT, target=default_landing(state.roles))


class NavigationGate:
    """
    진행 중인 내비게이션을 추적합니다.
    인증 상태가 도착하기 전에 새 내비게이션이 시작되면, 이전 티켓의 판정은 버려집니다.
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self._current: Optional[int] = None
        self._paths = {}

    def navigate(self, path: str, allowed_roles: Optional[Iterable[str]] = None) -> int:
        with self._lock:
            ticket = next(self._counter)
            self._current = ticket
            self._paths = {ticket: (path, None if allowed_roles is None else tuple(allowed_roles))}
            return ticket

    def decide(self, ticket: int, state: AuthState) -> Optional[GateDecision]:
        """ticket이 최신 내비게이션이 아니면 None을 반환합니다."""
        with self._lock:
            if ticket != self._current:
                return None
            path, allowed_roles = self._paths[ticket]
        return evaluate(state, path, allowed_roles)
