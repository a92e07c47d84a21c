import sys
from typing import Optional, Tuple

import click

from . import console, gcloud, gcp_api_keys, gcp_secrets, gcp_service_accounts, interactive
from .config import ApiKeyConfig, ConfigError, GitHubConfig, ProjectConfig, load_env_files
from .github_secrets import GitHubApiError, GitHubSecretsClient
from .logging_utils import get_logger, setup_logging
from .repo_resolver import SOURCE_ENV, SOURCE_GIT, SOURCE_PARAM, resolve_repository


logger = get_logger(__name__)

_SOURCE_LABELS = {
    SOURCE_PARAM: "--repo parameter",
    SOURCE_ENV: ".env file",
    SOURCE_GIT: "git remote",
}


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="작업 디렉토리 (기본: 현재 디렉토리). git remote 감지와 키 파일 위치의 기준",
)
@click.option(
    "--env-file",
    "env_files",
    multiple=True,
    help=".env 파일 경로 (여러 번 지정 가능, 기본: .env, common/.env)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 올립니다. (-v: INFO, -vv: DEBUG)",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, env_files: Tuple[str, ...], verbose: int) -> None:
    """GitHub Actions secret / GCP API 키 / 서비스 계정 관리 CLI"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["env_files"] = list(env_files) or None


def _fail(message: str) -> None:
    console.error(message)
    sys.exit(1)


def _load_env(ctx: click.Context, required: bool) -> None:
    loaded = load_env_files(ctx.obj["chdir"], ctx.obj["env_files"], required=required)
    if loaded:
        console.info(f"📁 Loaded {len(loaded)} settings from .env")
    logger.debug("Loaded env keys: %s", sorted(loaded))


def _github_client(ctx: click.Context, repo: Optional[str]) -> GitHubSecretsClient:
    cfg = GitHubConfig.from_env()
    target = resolve_repository(repo, cfg.owner, cfg.repo, cwd=ctx.obj["chdir"])
    console.success(
        f"✅ Using repository from {_SOURCE_LABELS[target.source]}: {target.full_name}"
    )
    return GitHubSecretsClient.from_config(cfg, target)


@main.command()
@click.option("--repo", "repo", default=None, metavar="OWNER/REPO",
              help="GitHub 리포지토리 지정 (자동 감지보다 우선)")
@click.option("--add", "add", nargs=2, default=None, metavar="NAME VALUE",
              help="secret 생성/갱신")
@click.option("--check", "check", default=None, metavar="NAME",
              help="secret 존재 여부 확인 (있으면 0, 없으면 1 로 종료)")
@click.pass_context
def secrets(ctx: click.Context, repo: Optional[str], add: Optional[Tuple[str, str]],
            check: Optional[str]) -> None:
    """
    GitHub Actions 리포지토리 secret 관리.
    옵션 없이 실행하면 대화형 메뉴를 띄운다.

    git submodule 안에서 실행할 때는 --repo 로 상위 리포지토리를 지정하세요.
    """
    if add and check:
        raise click.UsageError("--add 와 --check 는 함께 사용할 수 없습니다.")
    if add and (not add[0] or not add[1]):
        raise click.UsageError("--add 에는 secret 이름과 값이 모두 필요합니다.")

    try:
        _load_env(ctx, required=True)
        client = _github_client(ctx, repo)
    except ConfigError as e:
        _fail(f"설정 로드 실패: {e}")

    try:
        if check:
            if client.secret_exists(check):
                console.success(f"✅ Secret '{check}' exists")
                sys.exit(0)
            console.warn(f"⚠️  Secret '{check}' does not exist")
            sys.exit(1)

        if add:
            name, value = add
            status = client.put_secret(name, value)
            console.success(f"✅ Secret '{name}' successfully {status}!")
            return

        interactive.run_menu(client)
    except (GitHubApiError, ValueError) as e:
        _fail(str(e))


def _push_github_secret(ctx: click.Context, repo: Optional[str], name: str, value: str) -> None:
    """토큰/리포지토리가 없으면 경고만 남기고 건너뛴다."""
    try:
        client = _github_client(ctx, repo)
    except ConfigError as e:
        console.warn(f"⚠️  Skipping GitHub secret management: {e}")
        return
    status = client.put_secret(name, value)
    console.success(f"✅ GitHub secret '{name}' {status}")


@main.command(name="service-account")
@click.argument("account_type", type=click.Choice(list(gcp_service_accounts.ACCOUNT_TYPES)))
@click.option("--key-dir", "key_dir", default=None,
              type=click.Path(file_okay=False, dir_okay=True, exists=True),
              help="JSON 키 파일을 저장할 디렉토리 (기본: -C 디렉토리)")
@click.option("--repo", "repo", default=None, metavar="OWNER/REPO",
              help="키를 올릴 GitHub 리포지토리 (fastlane 전용)")
@click.pass_context
def service_account(ctx: click.Context, account_type: str, key_dir: Optional[str],
                    repo: Optional[str]) -> None:
    """고정 역할 세트를 가진 서비스 계정을 새로 만들고 JSON 키를 발급"""
    try:
        _load_env(ctx, required=True)
        cfg = ProjectConfig.from_env(require_number=True)
    except ConfigError as e:
        _fail(f"설정 로드 실패: {e}")

    spec = gcp_service_accounts.build_service_account_spec(account_type, cfg.project_id)
    click.echo("-" * 50)
    click.echo(f"Creating new service account: '{spec.display_name}'")
    click.echo(f"  - Account ID: {spec.account_id}")
    click.echo(f"  - Email: {spec.email}")
    click.echo(f"  - Roles: {len(spec.roles)} roles")
    click.echo("-" * 50)

    try:
        with gcloud.project_context(cfg.project_id):
            result = gcp_service_accounts.create_service_account(
                spec, key_dir=key_dir or ctx.obj["chdir"]
            )
    except ConfigError as e:
        _fail(str(e))
    except (RuntimeError, OSError, ValueError) as e:
        logger.exception("서비스 계정 생성 중 오류 발생")
        _fail(f"서비스 계정 생성 실패: {e}")

    # 계정과 키는 이미 만들어졌으므로, 이후 단계가 실패해도 먼저 출력해 둔다
    click.echo()
    console.success("✅ New Service Account created successfully!")
    click.echo(f"   Account ID: {spec.account_id}")
    click.echo(f"   Email: {spec.email}")
    click.echo(f"   Display Name: {spec.display_name}")
    click.echo(f"   Key File: {result.key_file}")
    click.echo(f"   Roles bound: {result.roles_found}/{len(spec.roles)}")

    if spec.github_secret:
        click.echo()
        console.info(f"🔐 Managing GitHub Actions Secret: {spec.github_secret}")
        try:
            key_json = gcp_service_accounts.read_key_file(result.key_file)
            _push_github_secret(ctx, repo, spec.github_secret, key_json)
        except (GitHubApiError, OSError, ValueError) as e:
            _fail(
                f"GitHub secret '{spec.github_secret}' 저장 실패: {e}\n"
                f"키 파일은 {result.key_file} 에 남아 있습니다."
            )

    click.echo()
    click.echo("➡️  Next steps:")
    click.echo("   - Store the key file securely and add it to your .gitignore if applicable.")
    click.echo("   - After confirming the new service account works, consider deleting old service accounts.")


@main.command(name="api-key")
@click.argument("key_type", type=click.Choice(list(gcp_api_keys.KEY_TYPES)))
@click.option("--store-secret", "store_secret", default=None, metavar="SECRET_ID",
              help="새 키를 Secret Manager 의 SECRET_ID 에 새 버전으로 저장")
@click.option("--github-secret", "github_secret", default=None, metavar="NAME",
              help="새 키를 GitHub Actions secret NAME 으로 저장")
@click.option("--repo", "repo", default=None, metavar="OWNER/REPO",
              help="--github-secret 대상 리포지토리")
@click.pass_context
def api_key(ctx: click.Context, key_type: str, store_secret: Optional[str],
            github_secret: Optional[str], repo: Optional[str]) -> None:
    """제한이 걸린 API 키를 새로 발급 (키 로테이션)"""
    try:
        _load_env(ctx, required=False)
        cfg = ApiKeyConfig.from_env()
    except ConfigError as e:
        _fail(f"설정 로드 실패: {e}")

    spec = gcp_api_keys.build_api_key_spec(key_type, cfg)
    click.echo("-" * 50)
    click.echo(f"Creating new API key: '{spec.display_name}'")
    click.echo(f"  - Allowed Referrers: {','.join(spec.allowed_referrers) or '(none)'}")
    click.echo(f"  - Enabled APIs: {len(spec.api_targets)}")
    click.echo("-" * 50)

    try:
        with gcloud.project_context(cfg.project_id):
            key_string = gcp_api_keys.create_api_key(spec)
    except ConfigError as e:
        _fail(str(e))
    except RuntimeError as e:
        logger.exception("API 키 생성 중 오류 발생")
        _fail(f"API 키 생성 실패: {e}")

    # 키는 이미 프로젝트에 존재하므로, 저장 단계가 실패해도 먼저 출력해 둔다
    click.echo()
    console.success("✅ New API Key created successfully!")
    click.echo(f"   Key: {key_string}")

    failed = False
    if store_secret:
        try:
            name = gcp_secrets.store_secret_value(cfg.project_id, store_secret, key_string)
            console.success(f"✅ Stored in Secret Manager: {name}")
        except Exception as e:  # noqa: BLE001
            logger.exception("Secret Manager 저장 중 오류 발생")
            console.error(f"Secret Manager 저장 실패 ({store_secret}): {e}")
            failed = True
    if github_secret:
        try:
            _push_github_secret(ctx, repo, github_secret, key_string)
        except (GitHubApiError, ValueError) as e:
            console.error(f"GitHub secret '{github_secret}' 저장 실패: {e}")
            failed = True
    if failed:
        sys.exit(1)

    click.echo()
    click.echo("➡️  Next steps:")
    click.echo("   1. Replace the old key in your .env file or GitHub secrets.")
    click.echo("   2. After confirming the new key works, DELETE the old key from the "
               "Google Cloud Console to complete the rotation.")


@main.command(name="list-types")
def list_types() -> None:
    """사용 가능한 서비스 계정 / API 키 타입 출력"""
    click.echo("## Service account types")
    for name, kind in gcp_service_accounts.ACCOUNT_TYPES.items():
        click.echo(f"- {name}: {kind.description} ({len(kind.roles)} roles)")
    click.echo("")
    click.echo("## API key types")
    for name, profile in gcp_api_keys.KEY_TYPES.items():
        click.echo(f"- {name}: {profile.display_name_prefix}")
