from dataclasses import dataclass, field


@dataclass
class RepositorySnapshot:
    # branch name -> tip hash
    branches: dict[str, str] = field(default_factory=dict)
    # tag name -> commit hash
    tags: dict[str, str] = field(default_factory=dict)
    # root hash -> first branch that reached it, in discovery order
    roots: dict[str, str] = field(default_factory=dict)
