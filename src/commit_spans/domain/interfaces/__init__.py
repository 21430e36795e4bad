from .git_repository import GitRepository, RemoteGitRepository

__all__ = ["GitRepository", "RemoteGitRepository"]
