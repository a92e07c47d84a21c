"""
gcp_secrets
-----------

새로 발급한 API 키 등을 Secret Manager 에 새 버전으로 저장하는 모듈.
"""

from __future__ import annotations

from typing import Optional

from google.api_core.exceptions import NotFound
from google.cloud import secretmanager

from .logging_utils import get_logger


logger = get_logger(__name__)


def store_secret_value(
    project_id: str,
    secret_id: str,
    value: str,
    client: Optional[secretmanager.SecretManagerServiceClient] = None,
) -> str:
    """
    Secret 이 없으면 생성(automatic replication)하고 새 버전을 추가한다.
    secret 리소스 이름을 돌려준다.
    """
    client = client or secretmanager.SecretManagerServiceClient()
    parent = f"projects/{project_id}"
    secret_name = f"{parent}/secrets/{secret_id}"

    try:
        client.get_secret(name=secret_name)
        logger.info("기존 Secret 에 새 버전을 추가합니다: %s", secret_name)
    except NotFound:
        logger.info("Secret 이 없어 새로 생성합니다: %s", secret_name)
        client.create_secret(
            parent=parent,
            secret_id=secret_id,
            secret={
                "replication": {"automatic": {}},
            },
        )

    client.add_secret_version(
        parent=secret_name,
        payload={"data": value.encode("utf-8")},
    )
    return secret_name
