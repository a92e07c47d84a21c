"""
secret_encrypt
--------------

GitHub Actions secret 암호화 헬퍼.
리포지토리 public key 로 libsodium sealed box 암호화를 수행한다.

subprocess 로 실행되는 것을 전제로 한다:

    python -m ops_kit.secret_encrypt <PUBLIC_KEY> <VALUE>
    python -m ops_kit.secret_encrypt <PUBLIC_KEY> @<FILE>
"""

from __future__ import annotations

import base64
import binascii
import sys

import click
from nacl import exceptions as nacl_exceptions
from nacl import public


def seal(public_key_b64: str, value: str) -> str:
    """base64 public key 로 value 를 sealed box 암호화해 base64 문자열로 돌려준다."""
    key = public.PublicKey(base64.b64decode(public_key_b64, validate=True))
    encrypted = public.SealedBox(key).encrypt(value.encode("utf-8"))
    return base64.b64encode(encrypted).decode("utf-8")


def _read_value(value_or_path: str) -> str:
    if value_or_path.startswith("@"):
        with open(value_or_path[1:], "r", encoding="utf-8", newline="") as f:
            return f.read()
    return value_or_path


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("public_key")
@click.argument("value_or_path")
def main(public_key: str, value_or_path: str) -> None:
    """PUBLIC_KEY 로 VALUE(또는 @파일 내용)를 암호화해 stdout 으로 출력"""
    try:
        value = _read_value(value_or_path)
        click.echo(seal(public_key, value))
    except OSError as e:
        click.echo(f"Error: 파일을 읽을 수 없습니다: {e}", err=True)
        sys.exit(1)
    except (binascii.Error, ValueError, nacl_exceptions.CryptoError) as e:
        click.echo(f"Error: 암호화 실패: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
