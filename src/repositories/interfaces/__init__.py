from .comment import ICommentRepository
from .project import IProjectRepository
from .role import IRoleRepository
from .task import ITaskRepository
from .user import IUserRepository
