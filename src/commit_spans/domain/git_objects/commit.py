import datetime
from dataclasses import dataclass, field
from typing import Optional

from commit_spans.domain.enums import CommitRole
from commit_spans.domain.exceptions import InvariantViolation

from .git_object import GitObject

SPAN_NOT_SET = 0
START_SPAN = 1


@dataclass(eq=False)
class RawCommit(GitObject):
    parents: tuple[str, ...]
    author_time: datetime.datetime
    committer_time: datetime.datetime


@dataclass(eq=False)
class CommitNode(GitObject):
    """A commit of the analyzed graph.

    ``parents`` and the two timestamps come from the repository and never
    change. ``children``, ``branch_membership``, ``tags`` and
    ``branch_heads`` grow while branches are discovered. ``span`` and
    ``inferred_time`` are written once, when the commit is labeled.
    ``parent_spans`` is filled on merge commits and on the children of a
    split, ``child_spans`` on split commits and on the parents of a merge.
    """
    parents: tuple[str, ...]
    author_time: datetime.datetime
    committer_time: datetime.datetime
    children: list[str] = field(default_factory=list)
    inferred_time: Optional[datetime.datetime] = None
    span: int = SPAN_NOT_SET
    parent_spans: list[int] = field(default_factory=list)
    child_spans: list[int] = field(default_factory=list)
    tags: set[str] = field(default_factory=set)
    branch_heads: set[str] = field(default_factory=set)
    branch_membership: dict[str, int] = field(default_factory=dict)
    # sha of the commit whose missing parent kept this one unlabeled
    blocked_by: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: RawCommit) -> "CommitNode":
        return cls(
            sha=raw.sha,
            parents=tuple(raw.parents),
            author_time=raw.author_time,
            committer_time=raw.committer_time)

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def is_split(self) -> bool:
        return len(self.children) > 1

    @property
    def is_assigned(self) -> bool:
        return self.span != SPAN_NOT_SET

    @property
    def role(self) -> CommitRole:
        if self.is_root:
            return CommitRole.ROOT
        if self.is_merge:
            return CommitRole.MERGE
        if self.is_split:
            return CommitRole.SPLIT
        return CommitRole.LINEAR

    def add_child(self, child: Optional[str]) -> bool:
        if child is None or child in self.children:
            return False
        self.children.append(child)
        return True

    def visit(self, branch: str) -> None:
        self.branch_membership[branch] = self.branch_membership.get(branch, 0) + 1

    def settle(self, span: int, inferred_time: datetime.datetime) -> None:
        if self.is_assigned:
            raise InvariantViolation(
                f"Commit {self.sha} already has span {self.span}, refusing to assign {span}")
        if span == SPAN_NOT_SET:
            raise InvariantViolation(f"Commit {self.sha} cannot be assigned the unset span")
        self.span = span
        self.inferred_time = inferred_time

    def __repr__(self) -> str:
        return (f'CommitNode({self.short_sha}, span={self.span}, '
                f'parents={len(self.parents)}, children={len(self.children)})')
