"""
gcp_service_accounts
--------------------

고정된 IAM 역할 세트를 가진 서비스 계정을 타임스탬프 이름으로 새로 만들고,
JSON 키 파일까지 발급하는 모듈.

서비스 계정은 생성 직후 바로 조회되지 않을 수 있으므로(eventual consistency)
describe 를 고정 간격으로 몇 번 재시도한다.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from . import gcloud
from .logging_utils import get_logger


logger = get_logger(__name__)


TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

FASTLANE_SECRET_NAME = "FASTLANE_SERVICE_ACCOUNT"

# Firebase App Distribution
FASTLANE_ROLES: Tuple[str, ...] = (
    "roles/firebaseappdistro.admin",
)

# Firebase Hosting 및 배포 도구
GITHUB_ACTIONS_ROLES: Tuple[str, ...] = (
    "roles/artifactregistry.admin",
    "roles/cloudbuild.workerPoolUser",
    "roles/cloudfunctions.admin",
    "roles/firebase.growthViewer",
    "roles/firebaseapphosting.computeRunner",
    "roles/firebaseapphosting.serviceAgent",
    "roles/firebaseauth.admin",
    "roles/firebaseextensions.developer",
    "roles/firebasehosting.admin",
    "roles/iam.roleViewer",
    "roles/iam.serviceAccountUser",
    "roles/run.admin",
    "roles/run.viewer",
    "roles/serviceusage.apiKeysViewer",
    "roles/serviceusage.serviceUsageConsumer",
    "roles/storage.admin",
)


@dataclass(frozen=True)
class AccountType:
    display_name_prefix: str
    roles: Tuple[str, ...]
    description: str
    github_secret: Optional[str] = None


ACCOUNT_TYPES: Dict[str, AccountType] = {
    "fastlane": AccountType(
        display_name_prefix="Fastlane Service Account",
        roles=FASTLANE_ROLES,
        description="Firebase App Distribution 용",
        github_secret=FASTLANE_SECRET_NAME,
    ),
    "github-actions": AccountType(
        display_name_prefix="GitHub Actions Service Account",
        roles=GITHUB_ACTIONS_ROLES,
        description="GitHub Actions / Firebase Hosting 용",
    ),
}


@dataclass(frozen=True)
class ServiceAccountSpec:
    account_type: str
    project_id: str
    account_id: str
    email: str
    display_name: str
    description: str
    roles: Tuple[str, ...]
    github_secret: Optional[str] = None


@dataclass(frozen=True)
class ServiceAccountResult:
    spec: ServiceAccountSpec
    key_file: str
    roles_found: int


def build_service_account_spec(account_type: str, project_id: str,
                               now: Optional[datetime] = None) -> ServiceAccountSpec:
    kind = ACCOUNT_TYPES.get(account_type)
    if kind is None:
        raise ValueError(
            f"알 수 없는 계정 타입입니다: {account_type!r}\n"
            f"사용 가능한 계정 타입: {', '.join(ACCOUNT_TYPES)}"
        )
    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    account_id = f"{account_type}-{timestamp}"
    return ServiceAccountSpec(
        account_type=account_type,
        project_id=project_id,
        account_id=account_id,
        email=f"{account_id}@{project_id}.iam.gserviceaccount.com",
        display_name=f"{kind.display_name_prefix} ({timestamp})",
        description=f"Service account for {kind.display_name_prefix} created on {timestamp}",
        roles=kind.roles,
        github_secret=kind.github_secret,
    )


def wait_for_account(spec: ServiceAccountSpec, *, retries: int = 3, delay: float = 5.0,
                     sleep: Callable[[float], None] = time.sleep) -> None:
    """
    생성 직후 delay 만큼 기다린 뒤 describe 를 최대 retries 번 시도한다.
    끝까지 보이지 않으면 RuntimeError.
    """
    sleep(delay)
    for attempt in range(1, retries + 1):
        result = gcloud.run_gcloud(
            ["iam", "service-accounts", "describe", spec.email, f"--project={spec.project_id}"],
            check=False,
        )
        if result.returncode == 0:
            logger.info("서비스 계정 확인 완료: %s", spec.email)
            return
        logger.warning("시도 %d/%d: 서비스 계정이 아직 준비되지 않았습니다. 대기합니다...", attempt, retries)
        sleep(delay)

    raise RuntimeError(
        f"서비스 계정 생성에 실패했거나 {retries}회 시도 후에도 찾을 수 없습니다: {spec.email}"
    )


def assign_roles(spec: ServiceAccountSpec) -> None:
    for role in spec.roles:
        logger.info("역할 부여: %s", role)
        try:
            gcloud.run_gcloud(
                [
                    "projects",
                    "add-iam-policy-binding",
                    spec.project_id,
                    f"--member=serviceAccount:{spec.email}",
                    f"--role={role}",
                    "--no-user-output-enabled",
                    "--condition=None",
                ]
            )
        except RuntimeError as e:
            raise RuntimeError(f"역할 부여에 실패했습니다: {role}\n{e}") from e


def count_bound_roles(spec: ServiceAccountSpec) -> int:
    result = gcloud.run_gcloud(
        [
            "projects",
            "get-iam-policy",
            spec.project_id,
            "--flatten=bindings[].members",
            f"--filter=bindings.members:{spec.email}",
            "--format=value(bindings.role)",
        ]
    )
    return len([line for line in result.stdout.splitlines() if line.strip()])


def create_key_file(spec: ServiceAccountSpec, key_dir: str = ".") -> str:
    key_file = os.path.join(key_dir, f"{spec.account_id}-key.json")
    gcloud.run_gcloud(
        [
            "iam",
            "service-accounts",
            "keys",
            "create",
            key_file,
            f"--iam-account={spec.email}",
            f"--project={spec.project_id}",
        ]
    )
    return key_file


def create_service_account(
    spec: ServiceAccountSpec,
    key_dir: str = ".",
    retries: int = 3,
    delay: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
) -> ServiceAccountResult:
    """
    서비스 계정 생성 -> 조회 가능해질 때까지 대기 -> 역할 부여 -> 역할 수 검증 -> JSON 키 발급.
    """
    logger.info(
        "서비스 계정 생성: %s (%s, 역할 %d개)", spec.display_name, spec.email, len(spec.roles)
    )
    gcloud.run_gcloud(
        [
            "iam",
            "service-accounts",
            "create",
            spec.account_id,
            f"--display-name={spec.display_name}",
            f"--description={spec.description}",
            f"--project={spec.project_id}",
        ]
    )

    wait_for_account(spec, retries=retries, delay=delay, sleep=sleep)
    assign_roles(spec)

    roles_found = count_bound_roles(spec)
    if roles_found == len(spec.roles):
        logger.info("모든 역할이 부여되었습니다: %d개", roles_found)
    else:
        logger.warning("역할 %d개를 기대했지만 %d개가 확인되었습니다.", len(spec.roles), roles_found)

    key_file = create_key_file(spec, key_dir)
    logger.info("JSON 키 파일 생성: %s", key_file)
    return ServiceAccountResult(spec=spec, key_file=key_file, roles_found=roles_found)


def read_key_file(path: str) -> str:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()
