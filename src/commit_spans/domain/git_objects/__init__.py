from .commit import SPAN_NOT_SET, START_SPAN, CommitNode, RawCommit
from .git_object import GitObject
from .reference import Reference

__all__ = [
    "CommitNode",
    "RawCommit",
    "Reference",
    "GitObject",
    "SPAN_NOT_SET",
    "START_SPAN"]
