"""
ops_kit
-------

운영자용 클라우드 관리 CLI 패키지.
Google Cloud API 키 로테이션, 고정 IAM 역할 세트를 가진 서비스 계정 생성,
GitHub Actions 리포지토리 secret 관리(sealed box 암호화)를 한 번의 명령으로 처리한다.
"""

__all__ = [
    "cli",
    "config",
    "console",
    "gcloud",
    "gcp_api_keys",
    "gcp_secrets",
    "gcp_service_accounts",
    "github_secrets",
    "interactive",
    "logging_utils",
    "repo_resolver",
    "secret_encrypt",
    "subprocess_utils",
]
