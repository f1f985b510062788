from .association import UserRole, ProjectMember
from .comment import Comment
from .project import Project, PROJECT_STATUSES, MEMBER_ROLES
from .role import Role
from .task import Task, TASK_STATUSES, TASK_PRIORITIES
from .user import User
