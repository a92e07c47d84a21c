from google.api_core.exceptions import NotFound

from ops_kit.gcp_secrets import store_secret_value


class FakeSecretClient:
    def __init__(self, exists: bool) -> None:
        self.exists = exists
        self.created = []
        self.versions = []

    def get_secret(self, name):  # noqa: ANN001
        if not self.exists:
            raise NotFound("missing")
        return {"name": name}

    def create_secret(self, parent, secret_id, secret):  # noqa: ANN001
        self.created.append((parent, secret_id, secret))

    def add_secret_version(self, parent, payload):  # noqa: ANN001
        self.versions.append((parent, payload))


def test_creates_missing_secret_then_adds_version() -> None:
    client = FakeSecretClient(exists=False)

    name = store_secret_value("proj", "MAPS_KEY", "AIzaX", client=client)

    assert name == "projects/proj/secrets/MAPS_KEY"
    assert client.created == [("projects/proj", "MAPS_KEY", {"replication": {"automatic": {}}})]
    assert client.versions == [(name, {"data": b"AIzaX"})]


def test_existing_secret_only_gets_new_version() -> None:
    client = FakeSecretClient(exists=True)

    store_secret_value("proj", "MAPS_KEY", "AIzaY", client=client)

    assert client.created == []
    assert len(client.versions) == 1
