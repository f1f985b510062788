import hashlib
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from src.auth.guard import Principal
from src.auth.roles import MalformedRoleRefError, role_names
from src.database import models
from src.repositories.interfaces import IUserRepository, IRoleRepository
from src.services.exceptions import (
    UserCreationError, UserNotFoundError, UserInUseError, RoleNotFoundError, ValidationError,
    AuthenticationError, TokenInvalidError
)
from src.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ROLE = 'user'


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode('utf-8')).hexdigest()


def serialize_user(user: models.User) -> Dict[str, Any]:
    """사용자 응답 형태. 비밀번호 해시는 포함하지 않습니다."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "name": user.name,
        "roles": [{"id": r.id, "name": r.name} for r in user.roles],
    }


class IdentityService:
    """사용자, 역할, 인증 토큰 등 신원 및 접근 관리 서비스를 제공합니다."""
    _token_cache = {}

    def __init__(self, user_repo: IUserRepository, role_repo: IRoleRepository, token_ttl: timedelta = timedelta(hours=1)):
        """
        IdentityService를 초기화합니다.

        Args:
            user_repo: 사용자 데이터에 접근하기 위한 리포지토리.
            role_repo: 역할 데이터에 접근하기 위한 리포지토리.
            token_ttl: 발급하는 인증 토큰의 유효 기간.
        """
        self.user_repo = user_repo
        self.role_repo = role_repo
        self.token_ttl = token_ttl

    def create_user(self, username: str, password: str, email: Optional[str] = None,
                    name: Optional[str] = None, roles: Optional[Iterable[Any]] = None) -> Dict[str, Any]:
        """
        새로운 사용자를 생성합니다. 비밀번호는 해시하여 저장합니다.
        역할을 지정하지 않으면 기본 역할('user')을 부여합니다.

        Raises:
            ValidationError: 사용자 이름이나 비밀번호가 비어 있거나 문자열이 아닐 때.
            UserCreationError: 동일한 사용자 이름 또는 이메일이 이미 존재할 때.
            RoleNotFoundError: 지정한 역할 중 존재하지 않는 것이 있을 때.
        """
        if not _is_text(username) or not _is_text(password):
            raise ValidationError("Username and password are required.")
        for field, value in (('email', email), ('name', name)):
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"'{field}' must be a string.")
        if self.user_repo.find_by_username(username):
            raise UserCreationError(f"User with username '{username}' already exists.")
        if email and self.user_repo.find_by_email(email):
            raise UserCreationError(f"User with email '{email}' already exists.")

        role_models = self._resolve_role_names(roles if roles is not None else [DEFAULT_ROLE])
        new_user = models.User(username=username, email=email, name=name,
                               password_hash=hash_password(password), roles=role_models)
        created_user = self.user_repo.create(new_user)
        logger.info("User '%s' created with roles %s", username, [r.name for r in role_models])
        return serialize_user(created_user)

    def list_users(self) -> List[Dict[str, Any]]:
        """모든 사용자의 목록을 조회합니다. (비밀번호 제외)"""
        return [serialize_user(u) for u in self.user_repo.list_all()]

    def get_user(self, user_id: int) -> Dict[str, Any]:
        """
        ID로 특정 사용자를 조회합니다. (비밀번호 제외)

        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
        """
        return serialize_user(self._get_user_model(user_id))

    def update_user(self, user_id: int, name: Optional[str] = None, email: Optional[str] = None,
                    password: Optional[str] = None, role_ids: Optional[List[int]] = None) -> Dict[str, Any]:
        """
        관리자용 사용자 수정. 필드 변경과 역할 교체를 하나의 트랜잭션으로 커밋합니다.

        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
            UserCreationError: 변경하려는 이메일을 다른 사용자가 이미 쓰고 있을 때.
            ValidationError: 필드 값이 문자열이 아니거나 roleIds가 목록이 아닐 때.
            RoleNotFoundError: role_ids 중 존재하지 않는 역할이 있을 때.
        """
        for field, value in (('name', name), ('email', email), ('password', password)):
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"'{field}' must be a string.")
        user = self._get_user_model(user_id)

        fields = {}
        if name:
            fields['name'] = name
        if email and email != user.email:
            other = self.user_repo.find_by_email(email)
            if other and other.id != user.id:
                raise UserCreationError(f"User with email '{email}' already exists.")
            fields['email'] = email
        if password:
            fields['password_hash'] = hash_password(password)

        roles = None
        if role_ids is not None:
            if not isinstance(role_ids, list):
                raise ValidationError("roleIds must be a list.")
            roles = self.role_repo.find_by_ids(role_ids)
            missing = set(role_ids) - {r.id for r in roles}
            if missing:
                raise RoleNotFoundError(f"Roles not found: {sorted(missing)}")

        updated = self.user_repo.update(user, fields, roles)
        logger.info("User %s updated (fields=%s, roles=%s)", user_id, sorted(fields),
                    None if roles is None else [r.name for r in roles])
        return serialize_user(updated)

    def delete_user(self, user_id: int) -> bool:
        """
        사용자를 삭제합니다. 사용자의 역할 연결과 프로젝트 멤버십도 함께 삭제됩니다.

        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
            UserInUseError: 사용자가 만들었거나 담당한 태스크, 작성한 댓글, 소유한 프로젝트가 남아 있을 때.
        """
        user = self._get_user_model(user_id)
        if self.user_repo.count_references(user_id) > 0:
            raise UserInUseError(f"User '{user_id}' still owns tasks, comments or projects.")
        self.user_repo.delete(user)
        self._drop_tokens_for(user_id)
        return True

    def list_roles(self) -> List[Dict[str, Any]]:
        return [{"id": r.id, "name": r.name, "description": r.description} for r in self.role_repo.list_all()]

    def get_principal(self, user_id: int) -> Principal:
        """인증된 사용자의 현재 역할로 요청 주체(Principal)를 만듭니다."""
        user = self._get_user_model(user_id)
        return Principal(
            user_id=user.id,
            username=user.username,
            roles=tuple({"id": r.id, "name": r.name} for r in user.roles),
        )

    def authenticate(self, username: str, password: str) -> Dict[str, Any]:
        """
        자격증명을 검증하고, 성공 시 인증 토큰을 발급합니다.

        Raises:
            ValidationError: 사용자 이름이나 비밀번호가 문자열이 아닐 때.
            AuthenticationError: 사용자가 없거나 비밀번호가 일치하지 않을 때.
        """
        for value in (username, password):
            if value is not None and not isinstance(value, str):
                raise ValidationError("Username and password must be strings.")
        user = self.user_repo.find_by_username(username) if username else None
        if not user or not password or user.password_hash != hash_password(password):
            raise AuthenticationError("Invalid username or password.")

        token = str(uuid.uuid4())
        expires_at = datetime.now() + self.token_ttl
        self._token_cache[token] = {
            'user_id': user.id,
            'expires_at': expires_at
        }
        logger.info("Issued token for user '%s'", username)
        return {"token": token, "expires_at": expires_at.isoformat(), "user": serialize_user(user)}

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        인증 토큰의 유효성을 검증하고, 유효하면 토큰 데이터를 반환합니다.

        Raises:
            TokenInvalidError: 토큰을 찾을 수 없거나 만료되었을 때.
        """
        token_data = self._token_cache.get(token)
        if not token_data:
            raise TokenInvalidError("Token not found or invalid.")

        if datetime.now() > token_data['expires_at']:
            del self._token_cache[token]
            raise TokenInvalidError("Token has expired.")

        return token_data

    def revoke_token(self, token: str) -> bool:
        """토큰을 폐기합니다(로그아웃). 이미 없는 토큰이면 False를 반환합니다."""
        return self._token_cache.pop(token, None) is not None

    def _get_user_model(self, user_id: int) -> models.User:
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        return user

    def _resolve_role_names(self, names: Iterable[Any]) -> List[models.Role]:
        try:
            names = sorted(role_names(names))
        except MalformedRoleRefError as e:
            raise ValidationError(str(e))
        roles = self.role_repo.find_by_names(names)
        missing = set(names) - {r.name for r in roles}
        if missing:
            raise RoleNotFoundError(f"Roles not found: {sorted(missing)}")
        return roles

    def _drop_tokens_for(self, user_id: int):
        for token in [t for t, data in self._token_cache.items() if data['user_id'] == user_id]:
            del self._token_cache[token]


def _is_text(value) -> bool:
    return isinstance(value, str) and bool(value.strip())
