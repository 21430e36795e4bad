from typing import Optional, Sequence


class CommitGraphError(Exception):
    pass


class CommandExecutionError(CommitGraphError):
    pass


class GitError(CommitGraphError):
    pass


class RepositoryError(CommitGraphError):
    pass


class ObjectNotFoundError(RepositoryError):
    pass


class CommitNotFound(CommitGraphError):
    """The reader could not resolve a commit hash.

    Collected during discovery: the walk of the branch that hit it is aborted,
    the other branches go on.
    """

    def __init__(self, sha: str, branch: Optional[str] = None) -> None:
        self.sha = sha
        self.branch = branch
        message = f'Commit {sha} not found'
        if branch is not None:
            message = f'{message} while walking branch {branch}'
        super().__init__(message)


class CommitReadError(CommitNotFound):
    """The reader failed on a commit for another reason than a missing object."""

    def __init__(self, sha: str, branch: Optional[str], cause: Exception) -> None:
        super().__init__(sha, branch)
        self.cause = cause

    def __str__(self) -> str:
        return f'Commit {self.sha} could not be read while walking branch {self.branch}: {self.cause}'


class ReferenceResolutionError(CommitGraphError):
    def __init__(self, name: str, kind: str, detail: str = "") -> None:
        self.name = name
        self.kind = kind
        message = f'Cannot resolve {kind} {name} to a commit'
        if detail:
            message = f'{message}: {detail}'
        super().__init__(message)


class DanglingParent(CommitGraphError):
    """A discovered commit names a parent that was never discovered."""

    def __init__(self, sha: str, missing: Sequence[str]) -> None:
        self.sha = sha
        self.missing = list(missing)
        super().__init__(
            f'Commit {sha} cannot be labeled, parents never discovered: {", ".join(self.missing)}')


class DanglingMergeParent(DanglingParent):
    pass


class InvariantViolation(CommitGraphError):
    pass


class WalkLimitExceeded(CommitGraphError):
    pass
