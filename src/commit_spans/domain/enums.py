from enum import Enum, auto


class CommitRole(Enum):
    ROOT = auto()  # No parent.
    MERGE = auto()  # More than one parent.
    SPLIT = auto()  # More than one child.
    LINEAR = auto()


class ReferenceKind(Enum):
    BRANCH = "branch"
    TAG = "tag"
