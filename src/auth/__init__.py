from src.auth.permissions import (
    Permission,
    PermissionTable,
    ROLE_PERMISSIONS,
    DEFAULT_TABLE,
    get_permissions,
    has_permission,
)
from src.auth.roles import (
    MalformedRoleRefError,
    normalize_role,
    role_names,
    has_any_role,
    has_role,
)
from src.auth.guard import (
    Principal,
    PRINCIPAL_KEY,
    authorize,
    get_principal,
    principal_has_permission,
    require_permission,
    require_admin,
    require_authenticated,
)
from src.auth.route_gate import (
    AuthState,
    AuthStatus,
    GateAction,
    GateDecision,
    NavigationGate,
    default_landing,
    evaluate,
    post_login_destination,
)

__all__ = [
    'Permission', 'PermissionTable', 'ROLE_PERMISSIONS', 'DEFAULT_TABLE',
    'get_permissions', 'has_permission',
    'MalformedRoleRefError', 'normalize_role', 'role_names', 'has_any_role', 'has_role',
    'Principal', 'PRINCIPAL_KEY', 'authorize', 'get_principal', 'principal_has_permission',
    'require_permission', 'require_admin', 'require_authenticated',
    'AuthState', 'AuthStatus', 'GateAction', 'GateDecision', 'NavigationGate',
    'default_landing', 'evaluate', 'post_login_destination',
]
