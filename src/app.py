# src/app.py
from wsgiref.simple_server import make_server
from datetime import timedelta
from urllib.parse import parse_qs
import json
import re

# SQLAlchemy 및 의존성 임포트
from src.config import Settings, get_settings
from src.database.database import create_db_engine, make_session_factory
from src.database.db_init import initialize_db
from src.repositories.sqlalchemy.sqlalchemy_user_repository import SqlalchemyUserRepository
from src.repositories.sqlalchemy.sqlalchemy_role_repository import SqlalchemyRoleRepository
from src.repositories.sqlalchemy.sqlalchemy_project_repository import SqlalchemyProjectRepository
from src.repositories.sqlalchemy.sqlalchemy_task_repository import SqlalchemyTaskRepository
from src.repositories.sqlalchemy.sqlalchemy_comment_repository import SqlalchemyCommentRepository
from src.services.identity_service import IdentityService
from src.services.project_service import ProjectService
from src.services.task_service import TaskService
from src.services.exceptions import *
from src.auth.guard import (
    PRINCIPAL_KEY, get_principal, principal_has_permission,
    require_admin, require_authenticated, require_permission,
)
from src.auth.permissions import Permission
from src.auth.route_gate import AuthState, default_landing, evaluate, post_login_destination
from src.events.notifier import INotifier, InProcessNotifier
from src.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def get_request_data(environ):
    try:
        content_length = int(environ.get("CONTENT_LENGTH") or 0)
        data = json.loads(environ["wsgi.input"].read(content_length)) if content_length > 0 else {}
    except (ValueError, json.JSONDecodeError):
        raise ValidationError("Invalid or missing JSON body.")
    if not isinstance(data, dict):
        raise ValidationError("JSON body must be an object.")
    return data

def get_query_params(environ):
    return {k: v[0] for k, v in parse_qs(environ.get("QUERY_STRING", "")).items()}

def get_auth_token(environ):
    token = environ.get('HTTP_X_AUTH_TOKEN')
    if token:
        return token
    auth_header = environ.get('HTTP_AUTHORIZATION', '')
    if auth_header.startswith('Bearer '):
        return auth_header[len('Bearer '):].strip() or None
    return None

def attach_principal(environ):
    """
    인증 단계. 유효한 토큰이 있으면 요청 주체(Principal)를 environ에 붙입니다.
    토큰이 없거나 유효하지 않으면 아무것도 붙이지 않으며, 거부 여부는 각 라우트의 가드가 결정합니다.
    """
    token = get_auth_token(environ)
    if not token:
        return None
    identity_service = environ['services']['identity']
    try:
        token_data = identity_service.validate_token(token)
        principal = identity_service.get_principal(token_data['user_id'])
    except (TokenInvalidError, UserNotFoundError) as e:
        logger.info("Ignoring credentials on %s: %s", environ.get("PATH_INFO"), e)
        return None
    environ[PRINCIPAL_KEY] = principal
    return principal

def ok(data, status='200 OK'):
    return status, json.dumps({"success": True, "data": data}, default=str)

def parse_int(value, field):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"'{field}' must be an integer.")

def handle_exception(e):
    error_map = {
        AuthenticationRequiredError: ("401 Unauthorized", "unauthenticated"),
        TokenInvalidError: ("401 Unauthorized", "unauthenticated"),
        AuthenticationError: ("401 Unauthorized", "invalid_credentials"),
        ForbiddenError: ("403 Forbidden", "forbidden"),
        ProjectNotFoundError: ("404 Not Found", "not_found"),
        UserNotFoundError: ("404 Not Found", "not_found"),
        RoleNotFoundError: ("404 Not Found", "not_found"),
        TaskNotFoundError: ("404 Not Found", "not_found"),
        CommentNotFoundError: ("404 Not Found", "not_found"),
        MemberNotFoundError: ("404 Not Found", "not_found"),
        ValidationError: ("400 Bad Request", "validation_error"),
        ValueError: ("400 Bad Request", "validation_error"),
        ProjectCreationError: ("400 Bad Request", "conflict"),
        UserCreationError: ("400 Bad Request", "conflict"),
        ProjectNotEmptyError: ("400 Bad Request", "conflict"),
        UserInUseError: ("400 Bad Request", "conflict"),
    }
    if type(e) in error_map:
        status, kind = error_map[type(e)]
        message = str(e)
    else:
        logger.exception("Unhandled error while processing request")
        status, kind, message = "500 Internal Server Error", "internal_error", "Internal server error"
    return status, json.dumps({"success": False, "message": message, "error": kind})

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

def create_app(settings: Settings = None, session_factory=None, notifier: INotifier = None):
    """
    WSGI 애플리케이션을 조립합니다.
    알림 채널은 여기서 한 번 연결되며, 해제는 serve()가 종료 시점에 수행합니다.
    """
    settings = settings or get_settings()
    if session_factory is None:
        session_factory = make_session_factory(create_db_engine(settings.database_url))
    if notifier is None:
        notifier = InProcessNotifier()
    if not notifier.is_connected:
        notifier.connect()
    token_ttl = timedelta(minutes=settings.token_ttl_minutes)

    def application(environ, start_response):
        db_session = session_factory()
        try:
            # 1. 의존성 생성 (Repositories -> Services)
            user_repo = SqlalchemyUserRepository(db_session)
            role_repo = SqlalchemyRoleRepository(db_session)
            project_repo = SqlalchemyProjectRepository(db_session)
            task_repo = SqlalchemyTaskRepository(db_session)
            comment_repo = SqlalchemyCommentRepository(db_session)

            # 2. 생성된 서비스 객체들을 environ을 통해 핸들러에 전달
            environ['services'] = {
                'identity': IdentityService(user_repo, role_repo, token_ttl),
                'project': ProjectService(project_repo, user_repo, task_repo),
                'task': TaskService(task_repo, comment_repo, project_repo, notifier),
            }

            # 3. 인증 단계 (Principal 부착)
            attach_principal(environ)

            # 4. 라우팅 및 핸들러 실행
            path = environ.get("PATH_INFO", "")
            method = environ.get("REQUEST_METHOD", "")

            handler, path_args = None, []
            for route_method, pattern, route_handler in ROUTES:
                if method == route_method and (match := re.match(pattern, path)):
                    handler, path_args = route_handler, match.groups()
                    break

            if handler:
                status, response_body = handler(environ, *path_args)
            else:
                status, response_body = '404 Not Found', json.dumps(
                    {'success': False, 'message': 'Not Found', 'error': 'not_found'})

        except Exception as e:
            status, response_body = handle_exception(e)
        finally:
            db_session.close()

        start_response(status, [("Content-Type", "application/json")])
        return [response_body.encode("utf-8")]

    application.notifier = notifier
    return application

# --------------------------------------------------------------------------
## 핸들러 함수 - 인증 및 내비게이션
# --------------------------------------------------------------------------

def auth_tokens_handler(environ, *args):
    data = get_request_data(environ)
    result = environ['services']['identity'].authenticate(data.get('username'), data.get('password'))
    result['redirect_to'] = post_login_destination(result['user']['roles'], data.get('return_url'))
    return ok(result, '201 Created')

@require_authenticated
def revoke_token_handler(environ, *args):
    environ['services']['identity'].revoke_token(get_auth_token(environ))
    return '204 No Content', ''

@require_authenticated
def me_handler(environ, *args):
    user = environ['services']['identity'].get_user(get_principal(environ).user_id)
    user['landing'] = default_landing(user['roles'])
    return ok(user)

def navigation_handler(environ, *args):
    path = get_query_params(environ).get('path', '/')
    principal = get_principal(environ)
    state = AuthState.authenticated(principal.roles) if principal else AuthState.anonymous()
    return ok(evaluate(state, path).to_dict())

# --------------------------------------------------------------------------
## 핸들러 함수 - 사용자
# --------------------------------------------------------------------------

def register_handler(environ, *args):
    data = get_request_data(environ)
    user = environ['services']['identity'].create_user(
        data.get('username'), data.get('password'), email=data.get('email'), name=data.get('name'))
    return ok(user, '201 Created')

@require_permission(Permission.USER_READ)
def list_users_handler(environ, *args):
    return ok(environ['services']['identity'].list_users())

@require_permission(Permission.USER_READ, Permission.USER_READ_OWN)
def get_user_handler(environ, user_id):
    user_id = int(user_id)
    if not principal_has_permission(environ, Permission.USER_READ) and get_principal(environ).user_id != user_id:
        raise ForbiddenError("Insufficient permissions")
    return ok(environ['services']['identity'].get_user(user_id))

# --------------------------------------------------------------------------
## 핸들러 함수 - 프로젝트 및 멤버
# --------------------------------------------------------------------------

@require_permission(Permission.PROJECT_CREATE)
def create_project_handler(environ, *args):
    data = get_request_data(environ)
    project = environ['services']['project'].create_project(
        data.get('name'), owner_id=get_principal(environ).user_id,
        description=data.get('description'), status=data.get('status') or 'PLANNING')
    return ok(project, '201 Created')

@require_permission(Permission.PROJECT_READ)
def list_projects_handler(environ, *args):
    return ok(environ['services']['project'].list_projects())

@require_permission(Permission.PROJECT_READ)
def get_project_handler(environ, project_id):
    return ok(environ['services']['project'].get_project(int(project_id)))

@require_permission(Permission.PROJECT_UPDATE)
def update_project_handler(environ, project_id):
    data = get_request_data(environ)
    return ok(environ['services']['project'].update_project(int(project_id), data))

@require_permission(Permission.PROJECT_DELETE)
def delete_project_handler(environ, project_id):
    environ['services']['project'].delete_project(int(project_id))
    return '204 No Content', ''

@require_permission(Permission.PROJECT_READ)
def list_project_members_handler(environ, project_id):
    return ok(environ['services']['project'].list_members(int(project_id)))

@require_permission(Permission.PROJECT_UPDATE)
def add_project_member_handler(environ, project_id, user_id):
    data = get_request_data(environ)
    member = environ['services']['project'].add_member(int(project_id), int(user_id), data.get('role') or 'VIEWER')
    return ok(member)

@require_permission(Permission.PROJECT_UPDATE)
def remove_project_member_handler(environ, project_id, user_id):
    environ['services']['project'].remove_member(int(project_id), int(user_id))
    return '204 No Content', ''

# --------------------------------------------------------------------------
## 핸들러 함수 - 태스크 및 댓글
# --------------------------------------------------------------------------

@require_permission(Permission.TASK_READ)
def list_project_tasks_handler(environ, project_id):
    params = get_query_params(environ)
    assignee_id = parse_int(params['assignee_id'], 'assignee_id') if params.get('assignee_id') else None
    tasks = environ['services']['task'].list_tasks(int(project_id), params.get('status'), assignee_id)
    return ok(tasks)

@require_permission(Permission.TASK_CREATE, Permission.TASK_CREATE_OWN)
def create_task_handler(environ, *args):
    data = get_request_data(environ)
    assignee_id = data.get('assignee_id')
    task = environ['services']['task'].create_task(
        actor_id=get_principal(environ).user_id,
        project_id=parse_int(data.get('project_id'), 'project_id'),
        title=data.get('title'),
        description=data.get('description'),
        status=data.get('status') or 'TODO',
        priority=data.get('priority') or 'MEDIUM',
        due_date=data.get('due_date'),
        assignee_id=parse_int(assignee_id, 'assignee_id') if assignee_id is not None else None,
        restrict_to_owner=not principal_has_permission(environ, Permission.TASK_CREATE),
    )
    return ok(task, '201 Created')

@require_permission(Permission.TASK_READ)
def get_task_handler(environ, task_id):
    return ok(environ['services']['task'].get_task(int(task_id)))

@require_permission(Permission.TASK_UPDATE, Permission.TASK_UPDATE_OWN)
def update_task_handler(environ, task_id):
    data = get_request_data(environ)
    task = environ['services']['task'].update_task(
        int(task_id), get_principal(environ).user_id, data,
        restrict_to_owner=not principal_has_permission(environ, Permission.TASK_UPDATE))
    return ok(task)

@require_permission(Permission.TASK_DELETE, Permission.TASK_DELETE_OWN)
def delete_task_handler(environ, task_id):
    environ['services']['task'].delete_task(
        int(task_id), get_principal(environ).user_id,
        restrict_to_owner=not principal_has_permission(environ, Permission.TASK_DELETE))
    return '204 No Content', ''

@require_permission(Permission.COMMENT_READ)
def list_comments_handler(environ, task_id):
    return ok(environ['services']['task'].list_comments(int(task_id)))

@require_permission(Permission.COMMENT_CREATE)
def create_comment_handler(environ, task_id):
    data = get_request_data(environ)
    comment = environ['services']['task'].add_comment(int(task_id), get_principal(environ).user_id, data.get('content'))
    return ok(comment, '201 Created')

@require_permission(Permission.COMMENT_DELETE, Permission.COMMENT_DELETE_OWN)
def delete_comment_handler(environ, comment_id):
    environ['services']['task'].delete_comment(
        int(comment_id), get_principal(environ).user_id,
        restrict_to_owner=not principal_has_permission(environ, Permission.COMMENT_DELETE))
    return '204 No Content', ''

# --------------------------------------------------------------------------
## 핸들러 함수 - 관리자 (admin 역할 전용)
# --------------------------------------------------------------------------

@require_admin
def admin_list_users_handler(environ, *args):
    return ok(environ['services']['identity'].list_users())

@require_admin
def admin_create_user_handler(environ, *args):
    data = get_request_data(environ)
    user = environ['services']['identity'].create_user(
        data.get('username'), data.get('password'), email=data.get('email'),
        name=data.get('name'), roles=data.get('roles'))
    return ok(user, '201 Created')

@require_admin
def admin_update_user_handler(environ, user_id):
    data = get_request_data(environ)
    user = environ['services']['identity'].update_user(
        int(user_id), name=data.get('name'), email=data.get('email'),
        password=data.get('password'), role_ids=data.get('roleIds'))
    return ok(user)

@require_admin
def admin_delete_user_handler(environ, user_id):
    if int(user_id) == get_principal(environ).user_id:
        raise ValidationError("Administrators cannot delete their own account.")
    environ['services']['identity'].delete_user(int(user_id))
    return '204 No Content', ''

@require_admin
def admin_list_roles_handler(environ, *args):
    return ok(environ['services']['identity'].list_roles())

ROUTES = [
    ('POST', r'^/v1/auth/tokens$', auth_tokens_handler),
    ('DELETE', r'^/v1/auth/tokens$', revoke_token_handler),
    ('GET', r'^/v1/auth/me$', me_handler),
    ('GET', r'^/v1/navigation$', navigation_handler),
    ('POST', r'^/v1/users$', register_handler),
    ('GET', r'^/v1/users$', list_users_handler),
    ('GET', r'^/v1/users/([0-9]+)$', get_user_handler),
    ('POST', r'^/v1/projects$', create_project_handler),
    ('GET', r'^/v1/projects$', list_projects_handler),
    ('GET', r'^/v1/projects/([0-9]+)$', get_project_handler),
    ('PUT', r'^/v1/projects/([0-9]+)$', update_project_handler),
    ('DELETE', r'^/v1/projects/([0-9]+)$', delete_project_handler),
    ('GET', r'^/v1/projects/([0-9]+)/members$', list_project_members_handler),
    ('PUT', r'^/v1/projects/([0-9]+)/members/([0-9]+)$', add_project_member_handler),
    ('DELETE', r'^/v1/projects/([0-9]+)/members/([0-9]+)$', remove_project_member_handler),
    ('GET', r'^/v1/projects/([0-9]+)/tasks$', list_project_tasks_handler),
    ('POST', r'^/v1/tasks$', create_task_handler),
    ('GET', r'^/v1/tasks/([0-9]+)$', get_task_handler),
    ('PUT', r'^/v1/tasks/([0-9]+)$', update_task_handler),
    ('DELETE', r'^/v1/tasks/([0-9]+)$', delete_task_handler),
    ('GET', r'^/v1/tasks/([0-9]+)/comments$', list_comments_handler),
    ('POST', r'^/v1/tasks/([0-9]+)/comments$', create_comment_handler),
    ('DELETE', r'^/v1/comments/([0-9]+)$', delete_comment_handler),
    ('GET', r'^/v1/admin/users$', admin_list_users_handler),
    ('POST', r'^/v1/admin/users$', admin_create_user_handler),
    ('PUT', r'^/v1/admin/users/([0-9]+)$', admin_update_user_handler),
    ('DELETE', r'^/v1/admin/users/([0-9]+)$', admin_delete_user_handler),
    ('GET', r'^/v1/admin/roles$', admin_list_roles_handler),
]

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

def serve(settings: Settings = None):
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    engine = create_db_engine(settings.database_url)
    initialize_db(engine)
    application = create_app(settings, make_session_factory(engine))
    try:
        with make_server(settings.host, settings.port, application) as httpd:
            logger.info("Serving Taskflow API on port %s...", settings.port)
            httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        application.notifier.close()
        engine.dispose()

if __name__ == "__main__":
    serve()
