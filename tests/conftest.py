"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 ops_kit 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.
"""

from __future__ import annotations

import os
import sys

import pytest


REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

_MANAGED_KEYS = (
    "GITHUB_TOKEN",
    "GITHUB_OWNER",
    "GITHUB_REPO",
    "GITHUB_API_URL",
    "PROJECT_ID",
    "PROJECT_NUMBER",
    "PROD_DOMAIN",
    "ANDROID_APP_PACKAGE_NAME",
    "IOS_APP_BUNDLE_ID",
    "FIREBASE_APIS",
    "MAPS_APIS",
    "SERVER_FIREBASE_APIS",
    "LOCALHOST_DOMAINS",
)


def pytest_configure() -> None:
    if REPO_ROOT not in sys.path:
        sys.path.insert(0, REPO_ROOT)


@pytest.fixture(autouse=True)
def isolated_environ(monkeypatch: pytest.MonkeyPatch):
    """
    load_env_files 는 os.environ 을 직접 갱신하므로 테스트마다 원상복구한다.
    """
    for key in _MANAGED_KEYS:
        monkeypatch.delenv(key, raising=False)
    saved = dict(os.environ)
    yield
    os.environ.clear()
    os.environ.update(saved)
