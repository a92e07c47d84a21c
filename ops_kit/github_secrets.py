"""
github_secrets
--------------

GitHub Actions 리포지토리 secret REST API 래퍼.

- 목록 조회 / 존재 여부 확인
- 리포지토리 public key 조회
- sealed box 로 암호화한 값을 PUT (생성/갱신)

암호화는 secret_encrypt 헬퍼를 subprocess 로 실행해 수행하고,
헬퍼를 실행할 수 없으면 base64 인코딩으로 대체한다.
"""

from __future__ import annotations

import base64
import os
import re
import sys
import tempfile
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests

from .config import DEFAULT_GITHUB_API_URL, GitHubConfig
from .logging_utils import get_logger
from .repo_resolver import RepoTarget
from .subprocess_utils import run_command


logger = get_logger(__name__)


DEFAULT_ENCRYPT_HELPER: List[str] = [sys.executable, "-m", "ops_kit.secret_encrypt"]

PER_PAGE = 100

_SECRET_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class GitHubApiError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class PublicKey:
    key_id: str
    key: str


@dataclass(frozen=True)
class EncryptionResult:
    value: str
    sealed: bool


def validate_secret_name(name: str) -> None:
    if not name or not _SECRET_NAME_RE.match(name):
        raise ValueError(
            f"잘못된 secret 이름입니다: {name!r} (영문/숫자/밑줄만 허용, 숫자로 시작할 수 없음)"
        )
    if name.upper().startswith("GITHUB_"):
        raise ValueError(f"GITHUB_ 로 시작하는 secret 이름은 사용할 수 없습니다: {name}")


def encrypt_secret(
    public_key: str,
    value: str,
    helper_cmd: Optional[Sequence[str]] = None,
) -> EncryptionResult:
    """
    암호화 헬퍼를 subprocess 로 실행해 value 를 암호화한다.

    셸 이스케이프 문제를 피하기 위해 값은 임시 파일로 넘긴다(@path).
    헬퍼가 없거나 실패하면 base64 로 대체한다(sealed=False).
    """
    cmd = list(helper_cmd) if helper_cmd is not None else list(DEFAULT_ENCRYPT_HELPER)

    fd, tmp_path = tempfile.mkstemp(prefix="ops-kit-secret-")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(value)
        try:
            result = run_command([*cmd, public_key, f"@{tmp_path}"], timeout=60, check=False)
            encrypted = result.stdout.strip() if result.returncode == 0 else ""
            if result.returncode != 0:
                logger.warning("암호화 헬퍼 실패 (exit=%s): %s", result.returncode, result.stderr.strip())
        except RuntimeError as e:
            logger.warning("암호화 헬퍼를 실행할 수 없습니다: %s", e)
            encrypted = ""
    finally:
        os.remove(tmp_path)

    if encrypted:
        return EncryptionResult(value=encrypted, sealed=True)

    logger.warning("sealed box 암호화에 실패하여 base64 인코딩으로 대체합니다.")
    fallback = base64.b64encode(value.encode("utf-8")).decode("ascii")
    return EncryptionResult(value=fallback, sealed=False)


class GitHubSecretsClient:
    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        api_url: str = DEFAULT_GITHUB_API_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        helper_cmd: Optional[Sequence[str]] = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.helper_cmd = helper_cmd
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )

    @classmethod
    def from_config(cls, cfg: GitHubConfig, target: RepoTarget, **kwargs: Any) -> "GitHubSecretsClient":
        return cls(target.owner, target.repo, cfg.token, api_url=cfg.api_url, **kwargs)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def _url(self, suffix: str = "") -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/actions/secrets{suffix}"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        logger.debug("GitHub API %s %s", method, url)
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise GitHubApiError(f"GitHub API 호출 실패: {method} {url}: {e}") from e

    @staticmethod
    def _fail(action: str, resp: requests.Response) -> GitHubApiError:
        body = (resp.text or "").strip()
        return GitHubApiError(
            f"{action} 실패 (HTTP {resp.status_code}): {body[:500]}",
            status_code=resp.status_code,
            body=body,
        )

    def list_secrets(self) -> List[str]:
        names: List[str] = []
        page = 1
        while True:
            resp = self._request("GET", self._url(), params={"per_page": PER_PAGE, "page": page})
            if resp.status_code != 200:
                raise self._fail("secret 목록 조회", resp)
            data: Dict[str, Any] = resp.json()
            batch = [s["name"] for s in data.get("secrets", []) if s.get("name")]
            names.extend(batch)
            total = data.get("total_count")
            if len(batch) < PER_PAGE or (total is not None and len(names) >= total):
                break
            page += 1
        return names

    def secret_exists(self, name: str) -> bool:
        validate_secret_name(name)
        resp = self._request("GET", self._url(f"/{name}"))
        if resp.status_code == 200:
            return True
        if resp.status_code == 404:
            return False
        raise self._fail(f"secret 조회({name})", resp)

    def get_public_key(self) -> PublicKey:
        resp = self._request("GET", self._url("/public-key"))
        if resp.status_code != 200:
            raise self._fail("리포지토리 public key 조회", resp)
        data = resp.json()
        key_id = data.get("key_id")
        key = data.get("key")
        if not key_id or not key:
            raise GitHubApiError(
                "리포지토리 public key 응답에 key_id/key 가 없습니다.",
                status_code=resp.status_code,
                body=resp.text,
            )
        logger.debug("public key 조회 완료: key_id=%s", key_id)
        return PublicKey(key_id=str(key_id), key=str(key))

    def put_secret(self, name: str, value: str) -> str:
        """
        secret 을 생성/갱신한다.

        Returns:
            "created" (HTTP 201) 또는 "updated" (HTTP 204)
        """
        validate_secret_name(name)
        logger.info("secret 저장: %s (값 길이 %d)", name, len(value))

        public_key = self.get_public_key()
        encrypted = encrypt_secret(public_key.key, value, helper_cmd=self.helper_cmd)

        resp = self._request(
            "PUT",
            self._url(f"/{name}"),
            json={"encrypted_value": encrypted.value, "key_id": public_key.key_id},
        )
        if resp.status_code == 201:
            return "created"
        if resp.status_code == 204:
            return "updated"
        raise self._fail(f"secret 저장({name})", resp)
