"""
gcp_api_keys
------------

제한(referrer/API target)이 걸린 Google Cloud API 키를 새로 만든다.
키 로테이션 용도: 타임스탬프가 붙은 이름으로 새 키를 발급하고,
이전 키 삭제는 운영자가 확인 후 직접 한다.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from . import gcloud
from .config import ApiKeyConfig
from .logging_utils import get_logger


logger = get_logger(__name__)


TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

_KEY_STRING_RE = re.compile(r'"keyString"\s*:\s*"([^"]*)"')


@dataclass(frozen=True)
class ApiKeyProfile:
    display_name_prefix: str
    referrers: Callable[[ApiKeyConfig], List[str]]
    apis: Callable[[ApiKeyConfig], List[str]]


@dataclass(frozen=True)
class ApiKeySpec:
    key_type: str
    display_name: str
    allowed_referrers: List[str]
    api_targets: List[str]


def _prod_referrers(cfg: ApiKeyConfig) -> List[str]:
    return [f"https://*.{cfg.prod_domain}", f"https://{cfg.prod_domain}"]


def _local_referrers(cfg: ApiKeyConfig) -> List[str]:
    return list(cfg.localhost_domains)


def _no_referrers(cfg: ApiKeyConfig) -> List[str]:  # noqa: ARG001
    return []


KEY_TYPES: Dict[str, ApiKeyProfile] = {
    "prod-firebase": ApiKeyProfile(
        "Prod Firebase Web", _prod_referrers, lambda cfg: cfg.firebase_apis
    ),
    "prod-maps": ApiKeyProfile(
        "Prod Google Maps Web", _prod_referrers, lambda cfg: cfg.maps_apis
    ),
    "local-firebase": ApiKeyProfile(
        "Local Firebase Web", _local_referrers, lambda cfg: cfg.firebase_apis
    ),
    "local-maps": ApiKeyProfile(
        "Local Google Maps Web", _local_referrers, lambda cfg: cfg.maps_apis
    ),
    "server-maps": ApiKeyProfile(
        "Server-Side Google Maps", _no_referrers, lambda cfg: cfg.maps_apis
    ),
    "server-firebase": ApiKeyProfile(
        "Server-Side Firebase", _no_referrers, lambda cfg: cfg.server_firebase_apis
    ),
}


def build_api_key_spec(key_type: str, cfg: ApiKeyConfig,
                       now: Optional[datetime] = None) -> ApiKeySpec:
    profile = KEY_TYPES.get(key_type)
    if profile is None:
        raise ValueError(
            f"알 수 없는 키 타입입니다: {key_type!r}\n"
            f"사용 가능한 키 타입: {', '.join(KEY_TYPES)}"
        )
    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return ApiKeySpec(
        key_type=key_type,
        display_name=f"{profile.display_name_prefix} ({timestamp})",
        allowed_referrers=[r for r in profile.referrers(cfg) if r],
        api_targets=[a.strip() for a in profile.apis(cfg) if a and a.strip()],
    )


def build_create_command(spec: ApiKeySpec) -> List[str]:
    args = [
        "services",
        "api-keys",
        "create",
        f"--display-name={spec.display_name}",
    ]
    if spec.allowed_referrers:
        args.append(f"--allowed-referrers={','.join(spec.allowed_referrers)}")
    for api in spec.api_targets:
        args.append(f"--api-target=service={api}")
    return args


def extract_key_string(output: str) -> Optional[str]:
    m = _KEY_STRING_RE.search(output or "")
    if not m or not m.group(1):
        return None
    return m.group(1)


def create_api_key(spec: ApiKeySpec) -> str:
    """
    API 키를 생성하고 키 문자열을 돌려준다.
    gcloud 는 생성 결과(JSON)를 stderr 쪽으로 내보내므로 stdout/stderr 를 합쳐서 찾는다.
    """
    logger.info(
        "API 키 생성: %s (referrers=%d, apis=%d)",
        spec.display_name,
        len(spec.allowed_referrers),
        len(spec.api_targets),
    )
    result = gcloud.run_gcloud(build_create_command(spec), hide_output=True)
    key_string = extract_key_string(result.output)
    if not key_string:
        raise RuntimeError(
            "API 키 생성에 실패했습니다. 권한을 확인하고 다음 API 가 활성화되어 있는지 확인하세요:\n"
            " - serviceusage.googleapis.com\n"
            " - cloudresourcemanager.googleapis.com"
        )
    return key_string
