# tests/test_app.py
import io
import json

import pytest
from wsgiref.util import setup_testing_defaults

from src.app import create_app
from src.config import Settings
from src.database.database import create_db_engine, make_session_factory
from src.database.db_init import initialize_db
from src.events.notifier import InProcessNotifier
from src.services.identity_service import IdentityService

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def app():
    """인메모리 SQLite에 기본 역할과 관리자(admin/admin)를 심은 WSGI 애플리케이션을 생성합니다."""
    IdentityService._token_cache.clear()
    engine = create_db_engine("sqlite://")
    initialize_db(engine)
    notifier = InProcessNotifier()
    application = create_app(Settings(database_url="sqlite://"), make_session_factory(engine), notifier)
    yield application
    notifier.close()
    engine.dispose()
    IdentityService._token_cache.clear()

def call(app, method, path, body=None, token=None, query=''):
    """WSGI 요청 한 건을 실행하고 (상태 문자열, JSON 응답)을 반환합니다."""
    environ = {}
    setup_testing_defaults(environ)
    raw = json.dumps(body).encode('utf-8') if body is not None else b''
    environ.update({
        'REQUEST_METHOD': method,
        'PATH_INFO': path,
        'QUERY_STRING': query,
        'CONTENT_LENGTH': str(len(raw)),
        'wsgi.input': io.BytesIO(raw),
    })
    if token:
        environ['HTTP_X_AUTH_TOKEN'] = token

    captured = {}
    def start_response(status, headers):
        captured['status'] = status

    payload = b''.join(app(environ, start_response))
    return captured['status'], (json.loads(payload) if payload else None)

def login(app, username, password):
    status, body = call(app, 'POST', '/v1/auth/tokens', {'username': username, 'password': password})
    assert status == '201 Created', body
    return body['data']['token']

def create_user_as_admin(app, admin_token, username, roles):
    status, body = call(app, 'POST', '/v1/admin/users',
                        {'username': username, 'password': 'pw', 'roles': roles}, token=admin_token)
    assert status == '201 Created', body
    return body['data']

def create_project_as_admin(app, admin_token, name='Website Redesign'):
    status, body = call(app, 'POST', '/v1/projects', {'name': name}, token=admin_token)
    assert status == '201 Created', body
    return body['data']

# ===================================================================
#  인증(Authentication) 테스트
# ===================================================================
class TestAuthentication:
    def test_missing_credentials_is_401(self, app):
        """자격 증명이 없으면 권한 판정 이전에 401로 거부되는지 테스트합니다."""
        status, body = call(app, 'GET', '/v1/projects')

        assert status == '401 Unauthorized'
        assert body == {'success': False, 'message': 'Authentication required', 'error': 'unauthenticated'}

    def test_unknown_token_is_treated_as_anonymous(self, app):
        status, body = call(app, 'GET', '/v1/projects', token='not-a-token')
        assert status == '401 Unauthorized'

    def test_bearer_token_is_accepted(self, app):
        token = login(app, 'admin', 'admin')
        environ = {}
        setup_testing_defaults(environ)
        environ.update({'REQUEST_METHOD': 'GET', 'PATH_INFO': '/v1/auth/me',
                        'HTTP_AUTHORIZATION': f'Bearer {token}'})
        statuses = []

        payload = b''.join(app(environ, lambda status, headers: statuses.append(status)))

        assert statuses == ['200 OK']
        assert json.loads(payload)['data']['landing'] == '/dashboard'

    def test_wrong_password(self, app):
        status, body = call(app, 'POST', '/v1/auth/tokens', {'username': 'admin', 'password': 'nope'})
        assert status == '401 Unauthorized'

    def test_non_string_credentials_are_400(self, app):
        """JSON 숫자로 보낸 비밀번호가 500이 아니라 400 validation_error로 응답되는지 테스트합니다."""
        status, body = call(app, 'POST', '/v1/auth/tokens', {'username': 'admin', 'password': 12345})
        assert status == '400 Bad Request'
        assert body['error'] == 'validation_error'

        status, body = call(app, 'POST', '/v1/users', {'username': 'zed', 'password': 12345})
        assert status == '400 Bad Request'
        assert body['error'] == 'validation_error'
        assert body['error'] == 'invalid_credentials'

    def test_login_redirects_to_role_landing(self, app):
        """로그인 응답이 역할 우선순위에 따른 기본 페이지를 알려주는지 테스트합니다."""
        admin_token = login(app, 'admin', 'admin')
        create_user_as_admin(app, admin_token, 'pat', ['user', 'project_manager'])

        status, body = call(app, 'POST', '/v1/auth/tokens', {'username': 'pat', 'password': 'pw'})

        assert status == '201 Created'
        assert body['data']['redirect_to'] == '/project-manager'

    def test_login_honours_safe_return_url(self, app):
        status, body = call(app, 'POST', '/v1/auth/tokens',
                            {'username': 'admin', 'password': 'admin', 'return_url': '/admin/users'})
        assert body['data']['redirect_to'] == '/admin/users'

    def test_logout_revokes_token(self, app):
        token = login(app, 'admin', 'admin')

        status, _ = call(app, 'DELETE', '/v1/auth/tokens', token=token)
        assert status == '204 No Content'

        status, _ = call(app, 'GET', '/v1/auth/me', token=token)
        assert status == '401 Unauthorized'

    def test_unknown_route(self, app):
        status, body = call(app, 'GET', '/v1/nowhere')
        assert status == '404 Not Found'
        assert body['error'] == 'not_found'

# ===================================================================
#  권한 가드(Authorization) 테스트
# ===================================================================
class TestAuthorization:
    def test_user_cannot_create_project(self, app):
        """역할 'user'가 프로젝트 생성을 요청하면 403이며 프로젝트가 생성되지 않는지 테스트합니다."""
        # === Arrange ===
        status, body = call(app, 'POST', '/v1/users', {'username': 'uma', 'password': 'pw'})
        assert status == '201 Created'
        assert [r['name'] for r in body['data']['roles']] == ['user']
        token = login(app, 'uma', 'pw')

        # === Act ===
        status, body = call(app, 'POST', '/v1/projects', {'name': 'Sneaky Project'}, token=token)

        # === Assert ===
        assert status == '403 Forbidden'
        assert body == {'success': False, 'message': 'Insufficient permissions', 'error': 'forbidden'}
        admin_token = login(app, 'admin', 'admin')
        _, listing = call(app, 'GET', '/v1/projects', token=admin_token)
        assert listing['data'] == []

    def test_admin_routes_require_admin_role(self, app):
        admin_token = login(app, 'admin', 'admin')
        create_user_as_admin(app, admin_token, 'pm', ['project_manager'])
        pm_token = login(app, 'pm', 'pw')

        status, body = call(app, 'GET', '/v1/admin/users', token=pm_token)

        assert status == '403 Forbidden'
        assert body['message'] == 'Admin access required'

    def test_project_manager_creates_project_and_becomes_owner(self, app):
        admin_token = login(app, 'admin', 'admin')
        create_user_as_admin(app, admin_token, 'pm', ['project_manager'])
        pm_token = login(app, 'pm', 'pw')

        status, body = call(app, 'POST', '/v1/projects', {'name': 'Mobile App'}, token=pm_token)
        assert status == '201 Created'
        project_id = body['data']['id']

        status, body = call(app, 'GET', f'/v1/projects/{project_id}/members', token=pm_token)
        assert status == '200 OK'
        assert [(m['username'], m['role']) for m in body['data']] == [('pm', 'OWNER')]

        # 프로젝트 삭제 권한은 관리자에게만 있음
        status, _ = call(app, 'DELETE', f'/v1/projects/{project_id}', token=pm_token)
        assert status == '403 Forbidden'
        status, _ = call(app, 'DELETE', f'/v1/projects/{project_id}', token=admin_token)
        assert status == '204 No Content'

    def test_users_can_read_only_their_own_profile(self, app):
        admin_token = login(app, 'admin', 'admin')
        dev = create_user_as_admin(app, admin_token, 'dev', ['developer'])
        other = create_user_as_admin(app, admin_token, 'other', ['developer'])
        dev_token = login(app, 'dev', 'pw')

        status, _ = call(app, 'GET', f"/v1/users/{dev['id']}", token=dev_token)
        assert status == '200 OK'
        status, _ = call(app, 'GET', f"/v1/users/{other['id']}", token=dev_token)
        assert status == '403 Forbidden'

    def test_navigation_redirects_on_role_mismatch(self, app):
        admin_token = login(app, 'admin', 'admin')
        create_user_as_admin(app, admin_token, 'pm', ['project_manager'])
        pm_token = login(app, 'pm', 'pw')

        _, body = call(app, 'GET', '/v1/navigation', token=pm_token, query='path=/admin')
        assert body['data'] == {'action': 'redirect', 'target': '/project-manager', 'return_to': None}

        _, body = call(app, 'GET', '/v1/navigation', query='path=/developer')
        assert body['data'] == {'action': 'redirect', 'target': '/login', 'return_to': '/developer'}

    def test_navigation_relative_path_goes_to_landing(self, app):
        admin_token = login(app, 'admin', 'admin')
        create_user_as_admin(app, admin_token, 'pm', ['project_manager'])
        pm_token = login(app, 'pm', 'pw')

        _, body = call(app, 'GET', '/v1/navigation', token=pm_token, query='path=admin')

        assert body['data'] == {'action': 'redirect', 'target': '/project-manager', 'return_to': None}

# ===================================================================
#  태스크 소유 범위(:own) 테스트
# ===================================================================
class TestTaskOwnership:
    def test_own_scope_limits_updates_to_owner(self, app):
        """'task:update:own'만 가진 사용자는 자신이 만든 태스크만 수정할 수 있는지 테스트합니다."""
        # === Arrange ===
        events = []
        app.notifier.subscribe(lambda event, payload: events.append(event))
        admin_token = login(app, 'admin', 'admin')
        project = create_project_as_admin(app, admin_token)
        create_user_as_admin(app, admin_token, 'alice', ['user'])
        create_user_as_admin(app, admin_token, 'bob', ['user'])
        alice_token = login(app, 'alice', 'pw')
        bob_token = login(app, 'bob', 'pw')

        status, body = call(app, 'POST', '/v1/tasks',
                            {'project_id': project['id'], 'title': 'Write copy', 'priority': 'HIGH'},
                            token=alice_token)
        assert status == '201 Created'
        task_id = body['data']['id']

        # === Act ===
        bob_status, _ = call(app, 'PUT', f'/v1/tasks/{task_id}', {'status': 'DONE'}, token=bob_token)
        alice_status, alice_body = call(app, 'PUT', f'/v1/tasks/{task_id}', {'status': 'DONE'}, token=alice_token)

        # === Assert ===
        assert bob_status == '403 Forbidden'
        assert alice_status == '200 OK'
        assert alice_body['data']['status'] == 'DONE'
        assert events == ['task:created', 'task:updated']

    def test_own_scope_cannot_assign_to_others(self, app):
        admin_token = login(app, 'admin', 'admin')
        project = create_project_as_admin(app, admin_token)
        create_user_as_admin(app, admin_token, 'alice', ['user'])
        bob = create_user_as_admin(app, admin_token, 'bob', ['user'])
        alice_token = login(app, 'alice', 'pw')

        status, _ = call(app, 'POST', '/v1/tasks',
                         {'project_id': project['id'], 'title': 'Delegate', 'assignee_id': bob['id']},
                         token=alice_token)

        assert status == '403 Forbidden'

    def test_own_scope_cannot_reassign_to_others(self, app):
        """'task:update:own'만 가진 생성자가 수정 요청으로 태스크를 남에게 넘길 수 없는지 테스트합니다."""
        # === Arrange ===
        admin_token = login(app, 'admin', 'admin')
        project = create_project_as_admin(app, admin_token)
        create_user_as_admin(app, admin_token, 'alice', ['user'])
        bob = create_user_as_admin(app, admin_token, 'bob', ['user'])
        alice_token = login(app, 'alice', 'pw')
        _, body = call(app, 'POST', '/v1/tasks', {'project_id': project['id'], 'title': 'Mine'}, token=alice_token)
        task_id = body['data']['id']

        # === Act ===
        status, _ = call(app, 'PUT', f'/v1/tasks/{task_id}', {'assignee_id': bob['id']}, token=alice_token)

        # === Assert ===
        assert status == '403 Forbidden'
        _, body = call(app, 'GET', f'/v1/tasks/{task_id}', token=alice_token)
        assert body['data']['assignee_id'] is None

    def test_comment_permissions(self, app):
        admin_token = login(app, 'admin', 'admin')
        project = create_project_as_admin(app, admin_token)
        create_user_as_admin(app, admin_token, 'uma', ['user'])
        create_user_as_admin(app, admin_token, 'dev', ['developer'])
        create_user_as_admin(app, admin_token, 'tess', ['tester'])
        uma_token, dev_token, tess_token = (login(app, u, 'pw') for u in ('uma', 'dev', 'tess'))
        _, body = call(app, 'POST', '/v1/tasks', {'project_id': project['id'], 'title': 'Bug'}, token=uma_token)
        task_id = body['data']['id']

        # 'user' 역할에는 comment:create가 없음
        status, _ = call(app, 'POST', f'/v1/tasks/{task_id}/comments', {'content': 'hi'}, token=uma_token)
        assert status == '403 Forbidden'

        status, body = call(app, 'POST', f'/v1/tasks/{task_id}/comments', {'content': 'Repro steps?'}, token=dev_token)
        assert status == '201 Created'
        comment_id = body['data']['id']

        status, _ = call(app, 'DELETE', f'/v1/comments/{comment_id}', token=tess_token)
        assert status == '403 Forbidden'
        status, _ = call(app, 'DELETE', f'/v1/comments/{comment_id}', token=dev_token)
        assert status == '204 No Content'

    def test_project_with_tasks_cannot_be_deleted(self, app):
        admin_token = login(app, 'admin', 'admin')
        project = create_project_as_admin(app, admin_token)
        call(app, 'POST', '/v1/tasks', {'project_id': project['id'], 'title': 'Keep me'}, token=admin_token)

        status, body = call(app, 'DELETE', f"/v1/projects/{project['id']}", token=admin_token)

        assert status == '400 Bad Request'
        assert body['error'] == 'conflict'

# ===================================================================
#  관리자 사용자 관리(Admin) 테스트
# ===================================================================
class TestAdminUsers:
    def _role_ids(self, app, admin_token):
        _, body = call(app, 'GET', '/v1/admin/roles', token=admin_token)
        return {r['name']: r['id'] for r in body['data']}

    def test_role_update_with_unknown_id_changes_nothing(self, app):
        """존재하지 않는 역할 ID가 섞이면 404이고 기존 역할이 그대로인지 테스트합니다."""
        # === Arrange ===
        admin_token = login(app, 'admin', 'admin')
        user = create_user_as_admin(app, admin_token, 'uma', ['user'])
        role_ids = self._role_ids(app, admin_token)

        # === Act ===
        status, body = call(app, 'PUT', f"/v1/admin/users/{user['id']}",
                            {'name': 'Uma', 'roleIds': [role_ids['developer'], 9999]}, token=admin_token)

        # === Assert ===
        assert status == '404 Not Found'
        _, body = call(app, 'GET', f"/v1/users/{user['id']}", token=admin_token)
        assert [r['name'] for r in body['data']['roles']] == ['user']
        assert body['data']['name'] is None

    def test_role_update_takes_effect_on_next_request(self, app):
        admin_token = login(app, 'admin', 'admin')
        user = create_user_as_admin(app, admin_token, 'uma', ['user'])
        role_ids = self._role_ids(app, admin_token)
        uma_token = login(app, 'uma', 'pw')

        status, body = call(app, 'PUT', f"/v1/admin/users/{user['id']}",
                            {'roleIds': [role_ids['project_manager']]}, token=admin_token)
        assert status == '200 OK'
        assert [r['name'] for r in body['data']['roles']] == ['project_manager']

        # 기존 토큰으로도 바뀐 역할이 바로 적용됨
        status, _ = call(app, 'POST', '/v1/projects', {'name': 'Promoted'}, token=uma_token)
        assert status == '201 Created'

    def test_admin_cannot_delete_self(self, app):
        admin_token = login(app, 'admin', 'admin')
        _, me = call(app, 'GET', '/v1/auth/me', token=admin_token)

        status, body = call(app, 'DELETE', f"/v1/admin/users/{me['data']['id']}", token=admin_token)

        assert status == '400 Bad Request'
        assert body['error'] == 'validation_error'

    def test_deleted_user_loses_access(self, app):
        admin_token = login(app, 'admin', 'admin')
        user = create_user_as_admin(app, admin_token, 'temp', ['developer'])
        temp_token = login(app, 'temp', 'pw')

        status, _ = call(app, 'DELETE', f"/v1/admin/users/{user['id']}", token=admin_token)
        assert status == '204 No Content'

        status, _ = call(app, 'GET', '/v1/projects', token=temp_token)
        assert status == '401 Unauthorized'

    def test_user_with_tasks_cannot_be_deleted(self, app):
        """태스크를 만든 사용자를 삭제하면 400 conflict로 거부되고 태스크가 그대로 남는지 테스트합니다."""
        # === Arrange ===
        admin_token = login(app, 'admin', 'admin')
        project = create_project_as_admin(app, admin_token)
        dev = create_user_as_admin(app, admin_token, 'dev', ['developer'])
        dev_token = login(app, 'dev', 'pw')
        _, body = call(app, 'POST', '/v1/tasks', {'project_id': project['id'], 'title': 'Keep me'}, token=dev_token)
        task_id = body['data']['id']

        # === Act ===
        status, body = call(app, 'DELETE', f"/v1/admin/users/{dev['id']}", token=admin_token)

        # === Assert ===
        assert status == '400 Bad Request'
        assert body['error'] == 'conflict'
        status, body = call(app, 'GET', f'/v1/tasks/{task_id}', token=dev_token)
        assert status == '200 OK'
        assert body['data']['created_by_id'] == dev['id']
