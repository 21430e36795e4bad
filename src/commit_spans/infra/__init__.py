from .github import Github
from .gitlab import Gitlab
from .local import LocalGit

__all__ = ["Github", "Gitlab", "LocalGit"]
