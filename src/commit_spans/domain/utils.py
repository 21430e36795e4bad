import datetime
import logging
import re
import shlex
import subprocess as sp
from typing import Optional
from urllib.parse import urlparse

from commit_spans.domain.exceptions import CommandExecutionError, GitError

ONE_MILLISECOND = datetime.timedelta(milliseconds=1)

# sha1 and sha256 object names, abbreviated forms included
SHA_PATTERN = re.compile(r'^[0-9a-f]{4,64}$')


def exec_cmd(cmd: str, exit_on_error: bool = True, stdin: str = "") -> str:
    return exec_cmd_binary(
        cmd=cmd, raise_on_error=exit_on_error, stdin=stdin.encode()).decode(
        "utf-8", errors="replace")


def exec_cmd_binary(cmd: str, raise_on_error: bool = True, stdin: bytes = b'') -> bytes:
    logging.debug("Executing command: %s", cmd)
    with sp.Popen(shlex.split(cmd), stdout=sp.PIPE, stderr=sp.PIPE, stdin=sp.PIPE) as p:
        stdout, stderr = p.communicate(stdin)

    if raise_on_error and p.returncode:
        raise CommandExecutionError(f'Command failed -> {cmd}\nStderr -> {stderr.decode()}')

    return stdout


def is_valid_sha(sha: Optional[str]) -> bool:
    return sha is not None and SHA_PATTERN.match(sha) is not None


def parse_git_timestamp(raw: str) -> datetime.datetime:
    """Parse git's raw date format: ``<epoch seconds> <+hhmm|-hhmm>``."""
    try:
        seconds, offset = raw.split()
        sign = -1 if offset.startswith('-') else 1
        delta = datetime.timedelta(hours=int(offset[1:3]), minutes=int(offset[3:5]))
        tz = datetime.timezone(sign * delta)
        return datetime.datetime.fromtimestamp(int(seconds), tz)
    except (ValueError, IndexError) as e:
        raise GitError(f'Invalid git timestamp: {raw!r}') from e


def parse_iso_timestamp(raw: str) -> datetime.datetime:
    # fromisoformat only accepts the Z suffix from python 3.11
    text = f'{raw[:-1]}+00:00' if raw.endswith('Z') else raw
    try:
        date = datetime.datetime.fromisoformat(text)
    except ValueError as e:
        raise GitError(f'Invalid ISO timestamp: {raw!r}') from e
    if date.tzinfo is None:
        date = date.replace(tzinfo=datetime.timezone.utc)
    return date


def get_remote_origin(git_dir: str = ".", remote: str = "origin") -> tuple[str, str, str]:
    remote_url = exec_cmd(
        f"git -C {shlex.quote(git_dir)} remote get-url {shlex.quote(remote)}")
    # if ssh url, we convert it to https:// format to use the same parsing
    # method to get required infos
    if "@" in remote_url:
        remote_url = remote_url.split("@", maxsplit=1)[1]
        remote_url = f'https://{remote_url.replace(":", "/", 1)}'

    parsed_url = urlparse(remote_url.strip())

    folder = '/'.join(parsed_url.path.split("/")[:-1]).removeprefix('/')
    repository = parsed_url.path.split("/")[-1].rstrip('\n').removesuffix(".git")

    logging.debug("folder parsed: %s", folder)
    logging.debug("repository parsed: %s", repository)
    logging.debug("server parsed: %s", parsed_url.netloc)

    return parsed_url.netloc, folder, repository
