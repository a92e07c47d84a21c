"""
interactive
-----------

인자 없이 `ops-kit secrets` 를 실행했을 때의 대화형 메뉴.
"""

from __future__ import annotations

from typing import List, Optional

import click

from . import console
from .github_secrets import GitHubApiError, GitHubSecretsClient


def render_menu(client: GitHubSecretsClient, names: List[str]) -> None:
    click.echo()
    console.info("🔐 GitHub Secrets Manager")
    console.info(f"Repository: {client.full_name}")
    click.echo()
    if not names:
        console.warn("No existing secrets found. Choose an option:")
        click.echo("1. Add new secret")
        click.echo("2. Exit")
    else:
        console.success("Existing secrets:")
        for idx, name in enumerate(names, start=1):
            click.echo(f"   {idx}. {name}")
        click.echo(f"   {len(names) + 1}. Add new secret")
        click.echo(f"   {len(names) + 2}. Exit")
    click.echo()


def prompt_secret_value(name: str) -> Optional[str]:
    """값을 입력받아 그대로 보여주고 확인을 받는다. 취소/빈 값이면 None."""
    value = click.prompt(f"Enter value for secret '{name}'", default="", show_default=False)
    click.echo(f"You entered: '{value}'")
    if not value:
        return None
    if not click.confirm(f"Confirm value for '{name}'?", default=False):
        return None
    return value


def handle_selection(client: GitHubSecretsClient, name: Optional[str] = None) -> bool:
    """
    secret 하나를 생성/갱신한다. 실제로 저장했으면 True.
    """
    if not name:
        name = click.prompt("Enter secret name", default="", show_default=False).strip()
    if not name:
        console.error("Secret name cannot be empty")
        return False

    try:
        if client.secret_exists(name):
            console.warn(f"⚠️  Secret '{name}' already exists")
            if not click.confirm("Do you want to overwrite it?", default=False):
                console.info("Operation cancelled")
                return False

        value = prompt_secret_value(name)
        if value is None:
            console.info("Operation cancelled")
            return False

        status = client.put_secret(name, value)
    except (GitHubApiError, ValueError) as e:
        console.error(str(e))
        return False

    console.success(f"✅ Secret '{name}' successfully {status}!")
    return True


def run_menu(client: GitHubSecretsClient) -> None:
    while True:
        names = client.list_secrets()
        render_menu(client, names)

        add_choice = len(names) + 1
        exit_choice = len(names) + 2
        choice = click.prompt(f"Enter your choice (1-{exit_choice})", type=int, default=0,
                              show_default=False)

        if 1 <= choice <= len(names):
            selected = names[choice - 1]
            console.info(f"Selected secret: {selected}")
            handle_selection(client, selected)
        elif choice == add_choice:
            handle_selection(client)
        elif choice == exit_choice:
            console.success("👋 Goodbye!")
            return
        else:
            console.error(f"Invalid choice. Please enter 1-{exit_choice}.")

        click.prompt("Press Enter to continue", default="", show_default=False)
