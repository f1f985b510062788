# src/services/exceptions.py

# --- General Exceptions ---
class ProjectNotFoundError(Exception):
    """프로젝트를 찾을 수 없을 때"""
    pass

class UserNotFoundError(Exception):
    """사용자를 찾을 수 없을 때"""
    pass

class RoleNotFoundError(Exception):
    """역할을 찾을 수 없을 때"""
    pass

class TaskNotFoundError(Exception):
    """태스크를 찾을 수 없을 때"""
    pass

class CommentNotFoundError(Exception):
    """댓글을 찾을 수 없을 때"""
    pass

class MemberNotFoundError(Exception):
    """프로젝트 멤버십을 찾을 수 없을 때"""
    pass

# --- Creation/Validation Exceptions ---
class ValidationError(ValueError):
    """요청 값이 허용된 범위를 벗어났을 때"""
    pass

class ProjectCreationError(Exception):
    """프로젝트 생성 실패 시"""
    pass

class UserCreationError(Exception):
    """사용자 생성 실패 시"""
    pass

class ProjectNotEmptyError(Exception):
    """태스크가 남아 있는 프로젝트를 삭제하려고 할 때"""
    pass

class UserInUseError(Exception):
    """태스크, 댓글, 프로젝트가 아직 참조하는 사용자를 삭제하려고 할 때"""
    pass

# --- Auth Exceptions ---
class TokenInvalidError(Exception):
    """토큰이 유효하지 않거나 만료되었을 때"""
    pass

class AuthenticationError(Exception):
    """사용자 자격 증명 실패 시"""
    pass

class AuthenticationRequiredError(Exception):
    """인증 단계를 거친 주체(Principal)가 요청에 없을 때 (401)"""
    pass

class ForbiddenError(Exception):
    """주체는 있으나 필요한 권한이 없을 때 (403)"""
    pass
