from __future__ import annotations

import subprocess
from dataclasses import dataclass
from textwrap import shorten
from typing import Mapping, Sequence

from .logging_utils import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """stdout + stderr (gcloud 는 결과를 stderr 로 내보내는 경우가 있다)."""
        return (self.stdout or "") + (self.stderr or "")


def run_command(
    cmd: Sequence[str],
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = 300.0,
    check: bool = True,
    hide_output: bool = False,
) -> RunResult:
    """
    subprocess 실행 공통 유틸.

    - stdout/stderr 를 캡처하여 실패 시 일부를 에러 메시지에 포함
    - check=False 이면 non-zero exit 도 그대로 RunResult 로 돌려준다
    - hide_output=True 이면 출력(키 문자열 등)을 debug 로그에 남기지 않는다
    - 명령 미설치/timeout 초과는 RuntimeError 로 래핑
    """
    logger.info("명령 실행: %s", " ".join(cmd))

    try:
        result = subprocess.run(
            list(cmd),
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as e:
        raise RuntimeError(
            f"필요한 명령을 찾을 수 없습니다: {cmd[0]} (gcloud/git 이 설치되어 있는지 확인하세요)"
        ) from e
    except subprocess.TimeoutExpired as e:
        raise RuntimeError(
            f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {' '.join(cmd)}"
        ) from e

    stdout = result.stdout or ""
    stderr = result.stderr or ""
    if stdout and not hide_output:
        logger.debug("명령 stdout: %s", shorten(stdout.strip(), width=2000))
    if stderr and not hide_output:
        logger.debug("명령 stderr: %s", shorten(stderr.strip(), width=2000))

    if check and result.returncode != 0:
        detail = ""
        if stderr.strip():
            detail = "\nstderr:\n" + shorten(stderr.strip(), width=2000)
        elif stdout.strip():
            detail = "\nstdout:\n" + shorten(stdout.strip(), width=2000)
        raise RuntimeError(
            f"명령 실행 실패: {' '.join(cmd)} (exit={result.returncode}){detail}"
        )

    return RunResult(returncode=result.returncode, stdout=stdout, stderr=stderr)
