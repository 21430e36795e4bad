import logging
import shlex
from typing import Optional

from commit_spans.domain.enums import ReferenceKind
from commit_spans.domain.exceptions import (CommandExecutionError,
                                            CommitNotFound, GitError)
from commit_spans.domain.git_objects import RawCommit, Reference
from commit_spans.domain.interfaces import GitRepository
from commit_spans.domain.utils import (exec_cmd, exec_cmd_binary,
                                       parse_git_timestamp)

REF_BRANCH_PREFIX = "refs/heads/"
REF_REMOTE_PREFIX = "refs/remotes/"
REF_TAG_PREFIX = "refs/tags/"


class LocalGit(GitRepository):
    """Read a clone on disk with the git command line.

    With ``remote`` set, the remote-tracking branches of that remote are the
    branch tips, so they do not need to be checked out locally.
    """

    def __init__(self, git_dir: str = ".", remote: Optional[str] = None) -> None:
        self.git_dir = git_dir
        self.remote = remote

    def __str__(self) -> str:
        return self.git_dir

    def __git(self, args: str) -> str:
        return exec_cmd(f'git -C {shlex.quote(self.git_dir)} {args}')

    def fetch(self) -> None:
        # update repo to get last pushed commits
        exec_cmd_binary(f'git -C {shlex.quote(self.git_dir)} fetch --all')

    def list_branch_tips(self) -> list[Reference]:
        if self.remote is None:
            prefix = REF_BRANCH_PREFIX
        else:
            prefix = f'{REF_REMOTE_PREFIX}{self.remote}/'

        branches: list[Reference] = []
        output = self.__git(f"for-each-ref --format='%(objectname) %(refname)' {shlex.quote(prefix)}")
        for line in output.splitlines():
            # should happen when no branch exists
            if line == '':
                continue
            sha, ref_name = line.split(' ', maxsplit=1)
            name = ref_name.removeprefix(prefix)
            if name == "HEAD":
                continue
            branches.append(Reference(name, sha, ReferenceKind.BRANCH))
        return branches

    def list_tags(self) -> list[Reference]:
        tags: list[Reference] = []
        fields = '%(objectname)%00%(objecttype)%00%(*objectname)%00%(*objecttype)%00%(refname)'
        output = self.__git(f'for-each-ref --format={shlex.quote(fields)} {REF_TAG_PREFIX}')
        for line in output.splitlines():
            if line == '':
                continue
            sha, object_type, peeled_sha, peeled_type, ref_name = line.split('\0')
            name = ref_name.removeprefix(REF_TAG_PREFIX)

            # annotated tags point at a tag object, lightweight ones at the commit
            if object_type == "tag":
                sha, object_type = peeled_sha, peeled_type
            if object_type != "commit":
                logging.debug("Tag %s points at a %s", name, object_type)
                sha = None
            tags.append(Reference(name, sha, ReferenceKind.TAG))
        return tags

    def get_commit(self, sha: str) -> RawCommit:
        try:
            content = self.__git(f'cat-file commit {shlex.quote(sha)}')
        except CommandExecutionError as e:
            logging.debug("%s", e)
            raise CommitNotFound(sha) from e
        return parse_commit(sha, content)


def parse_commit(sha: str, content: str) -> RawCommit:
    """Read parents and dates from the headers of a raw commit object."""
    parents: list[str] = []
    author_time = None
    committer_time = None

    for line in content.split('\n'):
        # headers end at the first blank line, the message follows
        if line == '':
            break
        key, _, value = line.partition(' ')
        if key == "parent":
            parents.append(value)
        elif key in ("author", "committer"):
            # "<name> <<email>> <epoch> <tz>", the name may contain anything
            date = parse_git_timestamp(' '.join(value.rsplit(' ', maxsplit=2)[-2:]))
            if key == "author":
                author_time = date
            else:
                committer_time = date

    if author_time is None or committer_time is None:
        raise GitError(f'Commit {sha} has no author or committer header')

    return RawCommit(sha=sha, parents=tuple(parents),
                     author_time=author_time, committer_time=committer_time)
