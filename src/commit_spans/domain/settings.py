import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_PREFIX = "COMMIT_SPANS_"


def _read_int(env: Mapping[str, str], name: str, minimum: int) -> Optional[int]:
    raw = env.get(f'{ENV_PREFIX}{name}')
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f'{ENV_PREFIX}{name} must be an integer, got {raw!r}') from None
    if value < minimum:
        raise ValueError(f'{ENV_PREFIX}{name} must be >= {minimum}, got {value}')
    return value


@dataclass
class AnalysisSettings:
    # discovery workers, one branch tip per worker at a time
    workers: int = 1
    # longest ancestor chain a single walk may follow
    max_depth: Optional[int] = None
    # bound on the commit table and on the labeling worklist
    max_commits: Optional[int] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AnalysisSettings":
        if env is None:
            env = os.environ
        workers = _read_int(env, "WORKERS", minimum=1)
        return cls(
            workers=workers if workers is not None else 1,
            max_depth=_read_int(env, "MAX_DEPTH", minimum=1),
            max_commits=_read_int(env, "MAX_COMMITS", minimum=1))
