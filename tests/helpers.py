"""In-memory repository used by the engine tests."""

import datetime
import hashlib
import random
import threading
from collections import Counter
from typing import Optional

from commit_spans.domain.enums import ReferenceKind
from commit_spans.domain.exceptions import CommitNotFound
from commit_spans.domain.git_objects import RawCommit, Reference
from commit_spans.domain.interfaces import GitRepository

BASE_TIME = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)


def sha(label: str) -> str:
    return hashlib.sha1(label.encode()).hexdigest()


def at(seconds: float) -> datetime.datetime:
    return BASE_TIME + datetime.timedelta(seconds=seconds)


class FakeRepository(GitRepository):
    def __init__(self) -> None:
        self.commits: dict[str, RawCommit] = {}
        self.branches: list[Reference] = []
        self.tags: list[Reference] = []
        self.reads: Counter = Counter()
        self.failures: dict[str, Exception] = {}
        self._lock = threading.Lock()

    def commit(self, label: str, parents: tuple = (), committed: float = 0,
               authored: Optional[float] = None) -> str:
        commit_sha = sha(label)
        self.commits[commit_sha] = RawCommit(
            sha=commit_sha,
            parents=tuple(sha(p) for p in parents),
            author_time=at(committed if authored is None else authored),
            committer_time=at(committed))
        return commit_sha

    def branch(self, name: str, label: str) -> None:
        self.branches.append(Reference(name, sha(label), ReferenceKind.BRANCH))

    def tag(self, name: str, label: str) -> None:
        self.tags.append(Reference(name, sha(label), ReferenceKind.TAG))

    def forget(self, label: str) -> None:
        del self.commits[sha(label)]

    def fail(self, label: str, error: Exception) -> None:
        """Make reading the commit raise ``error``."""
        self.failures[sha(label)] = error

    def list_branch_tips(self) -> list[Reference]:
        return list(self.branches)

    def list_tags(self) -> list[Reference]:
        return list(self.tags)

    def get_commit(self, commit_sha: str) -> RawCommit:
        with self._lock:
            self.reads[commit_sha] += 1
        if commit_sha in self.failures:
            raise self.failures[commit_sha]
        if commit_sha not in self.commits:
            raise CommitNotFound(commit_sha)
        return self.commits[commit_sha]


def random_history(seed: int, size: int = 40, branches: int = 4) -> FakeRepository:
    """Random DAG with merges, splits, skewed clocks and a second root."""
    rng = random.Random(seed)
    repository = FakeRepository()
    labels: list[str] = []

    for index in range(size):
        label = f'c{index}'
        if index in (0, size // 3):
            parents: tuple = ()
        else:
            count = 2 if index > 2 and rng.random() < 0.3 else 1
            parents = tuple(rng.sample(labels, count))
        repository.commit(label, parents, committed=rng.randint(0, 500))
        labels.append(label)

    has_children = {p for raw in repository.commits.values() for p in raw.parents}
    tips = [label for label in labels if sha(label) not in has_children]
    for number, label in enumerate(tips):
        repository.branch(f'branch-{number}', label)
    for number in range(branches):
        repository.branch(f'extra-{number}', rng.choice(labels))
    return repository
