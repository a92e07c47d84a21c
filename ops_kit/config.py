from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import dotenv_values


ENV_FILES_DEFAULT_ORDER = [".env", os.path.join("common", ".env")]

DEFAULT_GITHUB_API_URL = "https://api.github.com"

DEFAULT_PROD_DOMAIN = "example.com"
DEFAULT_APP_ID = "com.example.app"

# Firebase 웹 앱에서 사용하는 API 목록
DEFAULT_FIREBASE_APIS = [
    "storage-component.googleapis.com",
    "storage.googleapis.com",
    "firebasestorage.googleapis.com",
    "firebaseappcheck.googleapis.com",
    "firebaseapphosting.googleapis.com",
    "firebaseappdistribution.googleapis.com",
    "firebaseapptesters.googleapis.com",
    "fcm.googleapis.com",
    "firebasedynamiclinks.googleapis.com",
    "firebaseextensions.googleapis.com",
    "firebasehosting.googleapis.com",
    "firebaseremoteconfig.googleapis.com",
    "storage-api.googleapis.com",
    "identitytoolkit.googleapis.com",
    "recaptchaenterprise.googleapis.com",
    "firebasedatabase.googleapis.com",
    "firebase.googleapis.com",
    "firebaseremoteconfigrealtime.googleapis.com",
    "firebaserules.googleapis.com",
    "geocoding-backend.googleapis.com",
    "geolocation.googleapis.com",
    "cloudapis.googleapis.com",
    "iam.googleapis.com",
    "iamcredentials.googleapis.com",
    "cloudfunctions.googleapis.com",
    "firebaseinstallations.googleapis.com",
    "firestorekeyvisualizer.googleapis.com",
    "appenginereporting.googleapis.com",
    "artifactregistry.googleapis.com",
    "firestore.googleapis.com",
    "runtimeconfig.googleapis.com",
    "developerconnect.googleapis.com",
    "fcmregistrations.googleapis.com",
    "privilegedaccessmanager.googleapis.com",
    "maps-backend.googleapis.com",
    "maps-embed-backend.googleapis.com",
    "secretmanager.googleapis.com",
    "securetoken.googleapis.com",
]

# Google Maps JavaScript
DEFAULT_MAPS_APIS = [
    "maps-backend.googleapis.com",
    "static-maps-backend.googleapis.com",
    "places.googleapis.com",
    "places-backend.googleapis.com",
    "maps-embed-backend.googleapis.com",
    "elevation-backend.googleapis.com",
    "geocoding-backend.googleapis.com",
]

# 서버 사이드 Firebase 인증
DEFAULT_SERVER_FIREBASE_APIS = [
    "identitytoolkit.googleapis.com",
    "securetoken.googleapis.com",
]

DEFAULT_LOCALHOST_DOMAINS = [
    "http://localhost/*",
    "http://localhost:3000",
    "http://localhost:3001",
]


class ConfigError(ValueError):
    """필수 설정 누락/형식 오류."""


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None,
                   required: bool = False) -> Dict[str, str]:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 읽어 os.environ 으로 export 한다.
    후순위 파일이 같은 키를 덮어쓴다.

    실제로 export 된 키/값만 dict 로 돌려준다.
    값이 없는 키(`KEY` 만 적힌 줄)는 export 하지 않는다.
    """
    order = files if files is not None else ENV_FILES_DEFAULT_ORDER
    loaded: Dict[str, str] = {}
    found = False
    for name in order:
        path = os.path.join(base_dir, name)
        if not os.path.exists(path):
            continue
        found = True
        for key, value in dotenv_values(path).items():
            # None 은 dotenv 에서 값이 없는 키를 의미한다
            if value is None:
                continue
            loaded[key] = value

    if required and not found:
        candidates = ", ".join(os.path.join(base_dir, n) for n in order)
        raise ConfigError(
            f".env 파일을 찾을 수 없습니다: {candidates}\n"
            "필요한 값(예: GITHUB_TOKEN=...)을 담은 .env 파일을 만들어 주세요."
        )

    os.environ.update(loaded)
    return loaded


def _split_list(raw: Optional[str], default: List[str]) -> List[str]:
    if raw is None or raw.strip() == "":
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class _Required:
    """from_env 에서 누락된 필수 키를 모아 한 번에 보고하기 위한 헬퍼."""

    def __init__(self) -> None:
        self.missing: List[str] = []

    def __call__(self, name: str) -> str:
        val = os.getenv(name)
        if not val:
            self.missing.append(name)
        return val or ""

    def raise_if_missing(self) -> None:
        if self.missing:
            raise ConfigError(
                "필수 환경변수가 누락되었습니다: " + ", ".join(sorted(set(self.missing)))
            )


@dataclass
class GitHubConfig:
    token: str
    owner: Optional[str] = None
    repo: Optional[str] = None
    api_url: str = DEFAULT_GITHUB_API_URL

    @classmethod
    def from_env(cls) -> "GitHubConfig":
        req = _Required()
        cfg = cls(
            token=req("GITHUB_TOKEN"),
            owner=os.getenv("GITHUB_OWNER") or None,
            repo=os.getenv("GITHUB_REPO") or None,
            api_url=(os.getenv("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL).rstrip("/"),
        )
        req.raise_if_missing()
        return cfg


@dataclass
class ProjectConfig:
    project_id: str
    project_number: Optional[str] = None

    @classmethod
    def from_env(cls, require_number: bool = True) -> "ProjectConfig":
        req = _Required()
        project_id = req("PROJECT_ID")
        if require_number:
            project_number: Optional[str] = req("PROJECT_NUMBER")
        else:
            project_number = os.getenv("PROJECT_NUMBER") or None
        req.raise_if_missing()
        return cls(project_id=project_id, project_number=project_number)


@dataclass
class ApiKeyConfig:
    project_id: str
    prod_domain: str = DEFAULT_PROD_DOMAIN
    android_package: str = DEFAULT_APP_ID
    ios_bundle_id: str = DEFAULT_APP_ID
    firebase_apis: List[str] = field(default_factory=lambda: list(DEFAULT_FIREBASE_APIS))
    maps_apis: List[str] = field(default_factory=lambda: list(DEFAULT_MAPS_APIS))
    server_firebase_apis: List[str] = field(
        default_factory=lambda: list(DEFAULT_SERVER_FIREBASE_APIS)
    )
    localhost_domains: List[str] = field(
        default_factory=lambda: list(DEFAULT_LOCALHOST_DOMAINS)
    )

    @classmethod
    def from_env(cls) -> "ApiKeyConfig":
        req = _Required()
        prod_domain = os.getenv("PROD_DOMAIN") or DEFAULT_PROD_DOMAIN
        cfg = cls(
            project_id=req("PROJECT_ID"),
            prod_domain=prod_domain,
            android_package=os.getenv("ANDROID_APP_PACKAGE_NAME") or DEFAULT_APP_ID,
            ios_bundle_id=os.getenv("IOS_APP_BUNDLE_ID") or DEFAULT_APP_ID,
            firebase_apis=_split_list(os.getenv("FIREBASE_APIS"), DEFAULT_FIREBASE_APIS),
            maps_apis=_split_list(os.getenv("MAPS_APIS"), DEFAULT_MAPS_APIS),
            server_firebase_apis=_split_list(
                os.getenv("SERVER_FIREBASE_APIS"), DEFAULT_SERVER_FIREBASE_APIS
            ),
            localhost_domains=_split_list(
                os.getenv("LOCALHOST_DOMAINS"), DEFAULT_LOCALHOST_DOMAINS
            ),
        )
        req.raise_if_missing()

        # 로컬 키로도 운영 도메인에서 테스트할 수 있도록 운영 도메인을 덧붙인다
        for extra in (f"https://m.{prod_domain}", f"https://{prod_domain}"):
            if extra not in cfg.localhost_domains:
                cfg.localhost_domains.append(extra)

        return cfg
