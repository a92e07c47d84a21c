"""
gcloud
------

gcloud CLI 호출 공통부와 활성 프로젝트 전환/복원.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from .config import ConfigError
from .logging_utils import get_logger
from .subprocess_utils import RunResult, run_command


logger = get_logger(__name__)


def _run(cmd: Sequence[str], *, timeout: float = 300.0, check: bool = True,
         hide_output: bool = False) -> RunResult:
    return run_command(cmd, timeout=timeout, check=check, hide_output=hide_output)


def run_gcloud(args: Sequence[str], *, timeout: float = 300.0, check: bool = True,
               hide_output: bool = False) -> RunResult:
    return _run(["gcloud", *args], timeout=timeout, check=check, hide_output=hide_output)


def get_active_project() -> Optional[str]:
    result = run_gcloud(["config", "get-value", "project"], timeout=60, check=False)
    if result.returncode != 0:
        return None
    value = result.stdout.strip()
    if not value or value == "(unset)":
        return None
    return value


def set_active_project(project_id: str) -> None:
    run_gcloud(["config", "set", "project", project_id], timeout=60)


@contextmanager
def project_context(project_id: str) -> Iterator[Optional[str]]:
    """
    with 블록 동안 gcloud 활성 프로젝트를 project_id 로 전환하고,
    블록이 끝나면(성공/실패 무관) 원래 프로젝트로 되돌린다.

    원래 프로젝트를 yield 한다.
    """
    original = get_active_project()
    if original is None:
        raise ConfigError(
            "설정된 Google Cloud 프로젝트가 없습니다.\n"
            "'gcloud config set project YOUR_PROJECT_ID' 를 먼저 실행하세요."
        )

    switched = original != project_id
    if switched:
        logger.info("프로젝트 전환: %s -> %s", original, project_id)
        set_active_project(project_id)
    else:
        logger.info("이미 프로젝트 '%s' 를 사용 중입니다.", project_id)

    try:
        yield original
    finally:
        if switched:
            logger.info("원래 프로젝트로 복원: %s", original)
            set_active_project(original)
