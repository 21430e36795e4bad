from dataclasses import dataclass


@dataclass(eq=False)
class GitObject:
    sha: str

    def __hash__(self):
        return int(f'0x{self.sha}', base=16)

    def __eq__(self, other):
        if not isinstance(other, GitObject):
            return NotImplemented
        return self.sha == other.sha

    @property
    def short_sha(self) -> str:
        return self.sha[:8]
