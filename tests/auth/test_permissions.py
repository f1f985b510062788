# tests/auth/test_permissions.py
import pytest

from src.auth.permissions import (
    DEFAULT_TABLE, ROLE_PERMISSIONS, Permission, PermissionTable, get_permissions, has_permission,
)
from src.auth.roles import ROLE_PRIORITY
from src.auth.route_gate import CLIENT_ROUTES

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def wildcard_table() -> PermissionTable:
    """리소스 와일드카드 항목을 가진 테스트용 권한 테이블을 생성합니다."""
    return PermissionTable({
        'developer': ['task:read', 'task:*'],
        'reader': ['project:read'],
        'empty': [],
    })

# ===================================================================
#  기본 권한 테이블 테스트
# ===================================================================
class TestDefaultTable:
    def test_every_known_role_has_an_entry(self):
        """시스템에서 쓰이는 모든 역할 이름이 권한 테이블에 존재하는지 테스트합니다."""
        used_roles = set(ROLE_PRIORITY)
        for allowed in CLIENT_ROUTES.values():
            used_roles.update(allowed)

        assert used_roles <= set(ROLE_PERMISSIONS)

    def test_admin_is_expressed_as_wildcard_entry(self):
        """관리자가 predicate의 특수 분기가 아니라 '*' 항목으로 표현되는지 테스트합니다."""
        assert get_permissions('admin') == frozenset({Permission.ALL})

    @pytest.mark.parametrize("permission", [
        'project:create', 'task:delete', 'user:delete', 'nonsense', '', 'x:y:z:w',
    ])
    def test_admin_has_every_permission(self, permission):
        """관리자는 의미 없는 문자열을 포함한 모든 권한을 가지는지 테스트합니다."""
        assert has_permission('admin', permission) is True

    def test_user_cannot_create_projects(self):
        assert has_permission('user', Permission.PROJECT_CREATE) is False

    def test_role_lookup_is_case_insensitive(self):
        """역할 이름은 대소문자를 구분하지 않고 조회하는지 테스트합니다."""
        assert has_permission('USER', 'task:update:own') == has_permission('user', 'task:update:own')
        assert has_permission('Project_Manager', Permission.PROJECT_CREATE) is True

    def test_permission_strings_are_case_sensitive(self):
        assert has_permission('user', 'TASK:READ') is False

    def test_project_manager_comment_wildcard(self):
        assert has_permission('project_manager', Permission.COMMENT_DELETE) is True
        assert has_permission('project_manager', Permission.PROJECT_DELETE) is False

    def test_table_is_immutable(self):
        """런타임에 권한 테이블을 수정할 수 없는지 테스트합니다."""
        with pytest.raises(TypeError):
            ROLE_PERMISSIONS['intruder'] = frozenset({'*'})
        assert 'intruder' not in DEFAULT_TABLE.roles()

# ===================================================================
#  와일드카드 및 알 수 없는 역할 테스트
# ===================================================================
class TestPermissionTable:
    def test_resource_wildcard_matches_actions(self, wildcard_table: PermissionTable):
        """'task:*' 항목이 task 리소스의 모든 동작과 일치하는지 테스트합니다."""
        assert wildcard_table.has_permission('developer', 'task:update') is True
        assert wildcard_table.has_permission('developer', 'task:delete:own') is True

    def test_resource_wildcard_does_not_leak_to_other_resources(self, wildcard_table: PermissionTable):
        assert wildcard_table.has_permission('developer', 'project:read') is False
        # 'task:*'는 'task:'로 시작하는 권한에만 적용됩니다.
        assert wildcard_table.has_permission('developer', 'taskboard:read') is False

    def test_wildcard_in_argument_is_not_expanded(self, wildcard_table: PermissionTable):
        """검사 대상 권한의 와일드카드는 확장되지 않고, 테이블 항목에만 적용되는지 테스트합니다."""
        assert wildcard_table.has_permission('reader', 'project:*') is False
        assert wildcard_table.has_permission('reader', '*') is False

    @pytest.mark.parametrize("role", ['ghost', 'empty', '', 'ADMINISTRATOR'])
    @pytest.mark.parametrize("permission", ['task:read', 'project:read', '*'])
    def test_unknown_or_empty_role_denies_everything(self, wildcard_table, role, permission):
        """테이블에 없는 역할과 빈 역할이 동일하게 모든 권한을 거부하는지 테스트합니다."""
        assert wildcard_table.has_permission(role, permission) is False
        assert wildcard_table.get_permissions(role) == frozenset()

    def test_non_string_role_fails_closed(self, wildcard_table: PermissionTable):
        assert wildcard_table.has_permission(None, 'task:read') is False

    def test_any_role_has_is_or_across_roles_and_permissions(self, wildcard_table: PermissionTable):
        assert wildcard_table.any_role_has(['ghost', 'reader'], ['task:read', 'project:read']) is True
        assert wildcard_table.any_role_has(['ghost', 'reader'], ['task:read']) is False
        assert wildcard_table.any_role_has([], ['project:read']) is False
