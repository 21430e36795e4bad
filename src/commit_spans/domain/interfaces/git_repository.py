from commit_spans.domain.git_objects import RawCommit, Reference


class GitRepository():
    """Read access to a repository history.

    ``get_commit`` raises ``CommitNotFound`` when the hash cannot be resolved.
    Implementations must be safe to call from several discovery workers.
    """

    def fetch(self) -> None:
        pass

    def list_branch_tips(self) -> list[Reference]:
        raise NotImplementedError

    def list_tags(self) -> list[Reference]:
        raise NotImplementedError

    def get_commit(self, sha: str) -> RawCommit:
        raise NotImplementedError


class RemoteGitRepository(GitRepository):
    hostname: str
    folder: str
    repository: str

    def __init__(self, hostname: str, folder: str, repository: str) -> None:
        self.hostname = hostname
        self.folder = folder
        self.repository = repository

    def __str__(self) -> str:
        return f'{self.hostname}/{self.folder}/{self.repository}'
