"""
repo_resolver
-------------

GitHub owner/repo 를 결정한다.
우선순위: --repo 인자 > .env 의 GITHUB_OWNER/GITHUB_REPO > `git remote get-url origin`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .config import ConfigError
from .logging_utils import get_logger
from .subprocess_utils import run_command


logger = get_logger(__name__)


SOURCE_PARAM = "param"
SOURCE_ENV = "env"
SOURCE_GIT = "git"

_REPO_PARAM_RE = re.compile(r"^([^/\s]+)/([^/\s]+)$")
_REMOTE_URL_RE = re.compile(r"github\.com[:/]([^/]+)/([^/]+?)(?:\.git)?/?$")


@dataclass(frozen=True)
class RepoTarget:
    owner: str
    repo: str
    source: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_repo_param(value: str) -> Tuple[str, str]:
    """`owner/repo` 형식만 허용한다."""
    m = _REPO_PARAM_RE.match((value or "").strip())
    if not m:
        raise ConfigError(
            f"잘못된 리포지토리 형식입니다: {value!r}\n"
            "owner/repository 형식이어야 합니다. (예: --repo octo-org/octo-repo)"
        )
    return m.group(1), m.group(2)


def parse_remote_url(url: str) -> Tuple[str, str]:
    """
    git remote URL 에서 owner/repo 를 뽑는다.

    https://github.com/owner/repo(.git) 와 git@github.com:owner/repo(.git) 둘 다 지원.
    """
    m = _REMOTE_URL_RE.search((url or "").strip())
    if not m:
        raise ConfigError(
            f"remote URL 에서 GitHub 리포지토리를 해석할 수 없습니다: {url}\n"
            ".env 에 GITHUB_OWNER/GITHUB_REPO 를 설정하거나 --repo owner/repository 를 사용하세요."
        )
    return m.group(1), m.group(2)


def get_origin_url(cwd: Optional[str] = None) -> Optional[str]:
    """origin remote URL. git 이 없거나 origin 이 없으면 None."""
    try:
        result = run_command(
            ["git", "remote", "get-url", "origin"],
            cwd=cwd,
            timeout=30,
            check=False,
        )
    except RuntimeError as e:
        logger.debug("git remote 조회 실패: %s", e)
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_repository(
    repo_param: Optional[str] = None,
    env_owner: Optional[str] = None,
    env_repo: Optional[str] = None,
    cwd: Optional[str] = None,
    remote_url_getter: Callable[[Optional[str]], Optional[str]] = get_origin_url,
) -> RepoTarget:
    if repo_param:
        owner, repo = parse_repo_param(repo_param)
        logger.info("--repo 인자의 리포지토리를 사용합니다: %s/%s", owner, repo)
        return RepoTarget(owner, repo, SOURCE_PARAM)

    if env_owner and env_repo:
        logger.info(".env 의 리포지토리를 사용합니다: %s/%s", env_owner, env_repo)
        return RepoTarget(env_owner, env_repo, SOURCE_ENV)

    remote_url = remote_url_getter(cwd)
    if not remote_url:
        raise ConfigError(
            "git remote 'origin' 을 찾을 수 없습니다. 다음 중 하나를 선택하세요:\n"
            "  1. .env 에 GITHUB_OWNER 와 GITHUB_REPO 를 설정\n"
            "  2. --repo owner/repository 인자 사용\n"
            "  3. git 리포지토리 안에서 실행"
        )

    owner, repo = parse_remote_url(remote_url)
    logger.info("git remote 에서 리포지토리를 감지했습니다: %s/%s", owner, repo)
    return RepoTarget(owner, repo, SOURCE_GIT)
