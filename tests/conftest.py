import logging

import pytest

from tests.support.certgen import FakeAuthority

# Reset the root logger to its default level(because salt changed it)
logging.root.setLevel(logging.WARNING)


# This swallows all logging to stdout.
# To show select logs, set --log-cli-level=<level>
for handler in logging.root.handlers[:]:  # pragma: no cover
    logging.root.removeHandler(handler)
    handler.close()

log = logging.getLogger(__name__)


@pytest.fixture
def capability():
    return FakeAuthority()


@pytest.fixture
def sizing():
    return {"KUBE_SIZING_API_COUNT": "2", "KUBE_SIZING_DB_PROXY_COUNT": "1"}


@pytest.fixture
def variables():
    return [
        {
            "name": "INTERNAL_CA_CERT",
            "generator": {"id": "cacert", "type": "CACertificate", "value_type": "certificate"},
        },
        {
            "name": "INTERNAL_CA_KEY",
            "generator": {"id": "cacert", "type": "CACertificate", "value_type": "private_key"},
        },
        {
            "name": "API_CERT",
            "generator": {
                "id": "api",
                "type": "Certificate",
                "value_type": "certificate",
                "role_name": "api",
            },
        },
        {
            "name": "API_KEY",
            "generator": {
                "id": "api",
                "type": "Certificate",
                "value_type": "private_key",
                "role_name": "api",
            },
        },
        {
            "name": "ROUTER_CERT",
            "generator": {
                "id": "router",
                "type": "Certificate",
                "value_type": "certificate",
                "subject_names": ["router.{{.DOMAIN}}", "*.{{.DOMAIN}}"],
            },
        },
        {
            "name": "ROUTER_KEY",
            "generator": {"id": "router", "type": "Certificate", "value_type": "private_key"},
        },
        {
            "name": "ADMIN_PASSWORD",
            "generator": {"id": "admin", "type": "Password"},
        },
    ]
