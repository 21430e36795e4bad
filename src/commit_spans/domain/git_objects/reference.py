from dataclasses import dataclass
from typing import Optional

from commit_spans.domain.enums import ReferenceKind
from commit_spans.domain.utils import is_valid_sha


@dataclass
class Reference:
    name: str
    sha: Optional[str]
    kind: ReferenceKind = ReferenceKind.BRANCH

    @property
    def resolved(self) -> bool:
        return is_valid_sha(self.sha)
