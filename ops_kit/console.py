"""
console
-------

사람이 읽는 결과 출력(색상 포함). 로그와 달리 항상 출력된다.
"""

from __future__ import annotations

import click


def info(message: str) -> None:
    click.secho(message, fg="blue")


def success(message: str) -> None:
    click.secho(message, fg="green")


def warn(message: str) -> None:
    click.secho(message, fg="yellow")


def error(message: str) -> None:
    click.secho(f"[ERROR] {message}", fg="red", err=True)
