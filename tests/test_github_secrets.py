from __future__ import annotations

import base64
import json
import sys
from typing import Any, Dict, List, Optional

import pytest
import requests
from nacl import public

from ops_kit import github_secrets as gs
from ops_kit.github_secrets import EncryptionResult, GitHubApiError, GitHubSecretsClient


class FakeResponse:
    def __init__(self, status_code: int, data: Optional[Dict[str, Any]] = None) -> None:
        self.status_code = status_code
        self._data = data
        self.text = json.dumps(data) if data is not None else ""

    def json(self) -> Dict[str, Any]:
        return self._data or {}


class FakeSession:
    """요청을 기록하고 (method, url 접미사) 기준으로 준비된 응답을 돌려준다."""

    def __init__(self, routes: Dict[tuple, Any]) -> None:
        self.headers: Dict[str, str] = {}
        self.routes = routes
        self.calls: List[Dict[str, Any]] = []

    def request(self, method: str, url: str, timeout: float = 0, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        suffix = url.split("/actions/secrets", 1)[1]
        route = self.routes[(method, suffix)]
        if callable(route):
            return route(kwargs)
        return route


def _client(routes: Dict[tuple, Any]) -> tuple[GitHubSecretsClient, FakeSession]:
    session = FakeSession(routes)
    client = GitHubSecretsClient("octo", "widgets", "ghp_token", session=session)  # type: ignore[arg-type]
    return client, session


def test_client_sets_bearer_auth_header() -> None:
    _, session = _client({})
    assert session.headers["Authorization"] == "Bearer ghp_token"
    assert session.headers["Accept"] == "application/vnd.github+json"


def test_secret_exists_true_false_and_error() -> None:
    client, session = _client(
        {
            ("GET", "/PRESENT"): FakeResponse(200, {"name": "PRESENT"}),
            ("GET", "/ABSENT"): FakeResponse(404, {"message": "Not Found"}),
            ("GET", "/BROKEN"): FakeResponse(500, {"message": "boom"}),
        }
    )

    assert client.secret_exists("PRESENT") is True
    assert client.secret_exists("ABSENT") is False
    with pytest.raises(GitHubApiError) as excinfo:
        client.secret_exists("BROKEN")
    assert excinfo.value.status_code == 500
    assert session.calls[0]["url"] == "https://api.github.com/repos/octo/widgets/actions/secrets/PRESENT"


def test_list_secrets_paginates() -> None:
    first_page = [{"name": f"S{i}"} for i in range(gs.PER_PAGE)]

    def listing(kwargs: Dict[str, Any]) -> FakeResponse:
        page = kwargs["params"]["page"]
        if page == 1:
            return FakeResponse(200, {"total_count": gs.PER_PAGE + 1, "secrets": first_page})
        return FakeResponse(200, {"total_count": gs.PER_PAGE + 1, "secrets": [{"name": "LAST"}]})

    client, session = _client({("GET", ""): listing})

    names = client.list_secrets()

    assert len(names) == gs.PER_PAGE + 1
    assert names[-1] == "LAST"
    assert [c["params"]["page"] for c in session.calls] == [1, 2]


def test_list_secrets_error_raises() -> None:
    client, _ = _client({("GET", ""): FakeResponse(401, {"message": "Bad credentials"})})
    with pytest.raises(GitHubApiError):
        client.list_secrets()


def test_get_public_key_missing_fields_raises() -> None:
    client, _ = _client({("GET", "/public-key"): FakeResponse(200, {"key_id": "1"})})
    with pytest.raises(GitHubApiError):
        client.get_public_key()


@pytest.mark.parametrize("status,expected", [(201, "created"), (204, "updated")])
def test_put_secret_sends_encrypted_payload(monkeypatch: pytest.MonkeyPatch, status: int, expected: str) -> None:
    seen: Dict[str, str] = {}

    def fake_encrypt(key: str, value: str, helper_cmd=None) -> EncryptionResult:  # noqa: ANN001
        seen["key"] = key
        seen["value"] = value
        return EncryptionResult(value="ENCRYPTED", sealed=True)

    monkeypatch.setattr(gs, "encrypt_secret", fake_encrypt)
    client, session = _client(
        {
            ("GET", "/public-key"): FakeResponse(200, {"key_id": "kid-1", "key": "PUBKEY"}),
            ("PUT", "/API_TOKEN"): FakeResponse(status),
        }
    )

    assert client.put_secret("API_TOKEN", "plain") == expected
    assert seen == {"key": "PUBKEY", "value": "plain"}
    assert session.calls[-1]["json"] == {"encrypted_value": "ENCRYPTED", "key_id": "kid-1"}


def test_put_secret_failure_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gs, "encrypt_secret", lambda k, v, helper_cmd=None: EncryptionResult("E", True))
    client, _ = _client(
        {
            ("GET", "/public-key"): FakeResponse(200, {"key_id": "kid-1", "key": "PUBKEY"}),
            ("PUT", "/API_TOKEN"): FakeResponse(422, {"message": "Bad"}),
        }
    )
    with pytest.raises(GitHubApiError) as excinfo:
        client.put_secret("API_TOKEN", "plain")
    assert excinfo.value.status_code == 422


@pytest.mark.parametrize("name", ["", "1ABC", "has-dash", "GITHUB_TOKEN"])
def test_invalid_secret_names_rejected_before_request(name: str) -> None:
    client, session = _client({})
    with pytest.raises(ValueError):
        client.secret_exists(name)
    assert session.calls == []


def test_network_error_wrapped() -> None:
    class Exploding(FakeSession):
        def request(self, method, url, timeout=0, **kwargs):  # noqa: ANN001
            raise requests.ConnectionError("down")

    client = GitHubSecretsClient("o", "r", "t", session=Exploding({}))  # type: ignore[arg-type]
    with pytest.raises(GitHubApiError):
        client.list_secrets()


def test_encrypt_secret_falls_back_to_base64_when_helper_missing() -> None:
    result = gs.encrypt_secret("PUBKEY", "hello wörld", helper_cmd=["/nonexistent/ops-kit-helper"])

    assert result.sealed is False
    assert base64.b64decode(result.value, validate=True).decode("utf-8") == "hello wörld"


def test_encrypt_secret_falls_back_when_helper_fails() -> None:
    result = gs.encrypt_secret(
        "PUBKEY", "value", helper_cmd=[sys.executable, "-c", "import sys; sys.exit(3)"]
    )

    assert result.sealed is False
    assert base64.b64decode(result.value) == b"value"


def test_encrypt_secret_uses_helper_subprocess() -> None:
    private = public.PrivateKey.generate()
    public_b64 = base64.b64encode(bytes(private.public_key)).decode("ascii")

    result = gs.encrypt_secret(public_b64, "line1\nline2 $HOME 'quoted'")

    assert result.sealed is True
    opened = public.SealedBox(private).decrypt(base64.b64decode(result.value))
    assert opened.decode("utf-8") == "line1\nline2 $HOME 'quoted'"


def test_encrypt_secret_keeps_carriage_returns() -> None:
    private = public.PrivateKey.generate()
    public_b64 = base64.b64encode(bytes(private.public_key)).decode("ascii")

    result = gs.encrypt_secret(public_b64, "line1\r\nline2\rend")

    assert result.sealed is True
    opened = public.SealedBox(private).decrypt(base64.b64decode(result.value))
    assert opened.decode("utf-8") == "line1\r\nline2\rend"
