import pytest

from saltext.certgen.utils.certgen import sans
from saltext.certgen.utils.certgen.exceptions import ConfigurationError
from saltext.certgen.utils.certgen.helpers import sizing_key
from saltext.certgen.utils.certgen.registry import CertificateRecord


@pytest.fixture
def topology(sizing):
    return sans.Topology(
        namespace="ns1",
        domain="example.com",
        service_domain_suffix="svc.example.com",
        sizing=sizing,
    )


def test_derive_hosts_role():
    hosts = sans.derive_hosts("api", "ns1", "svc.example.com", 2, [], "example.com")
    assert hosts == [
        "api",
        "*.api",
        "api.ns1.svc",
        "*.api.ns1.svc",
        "api.ns1.svc.cluster.local",
        "*.api.ns1.svc.cluster.local",
        "api-0.api-set",
        "api-0.api-set.ns1.svc",
        "api-0.api-set.ns1.svc.cluster.local",
        "api-1.api-set",
        "api-1.api-set.ns1.svc",
        "api-1.api-set.ns1.svc.cluster.local",
        "api.svc.example.com",
        "*.api.svc.example.com",
    ]


def test_derive_hosts_zero_replicas():
    hosts = sans.derive_hosts("api", "ns1", "svc.example.com", 0, [], "example.com")
    assert not [x for x in hosts if "-set" in x]
    assert len(hosts) == 8


def test_derive_hosts_subject_names_follow_role():
    hosts = sans.derive_hosts(
        "api", "ns1", "svc.example.com", 1, ["api.{{.DOMAIN}}", "literal"], "example.com"
    )
    assert hosts[-2:] == ["api.example.com", "literal"]
    assert hosts[0] == "api"


def test_derive_hosts_subject_names_only():
    hosts = sans.derive_hosts(
        "", "ns1", "svc.example.com", 5, ["{{.KUBERNETES_NAMESPACE}}.{{ .DOMAIN }}", "*.x"], "d"
    )
    assert hosts == ["ns1.d", "*.x"]


def test_derive_hosts_fallback_to_certificate_name():
    assert sans.derive_hosts("", "ns1", "suffix", 3, [], "d", certificate_name="blob-cert") == [
        "blob-cert"
    ]


def test_derive_hosts_is_deterministic():
    args = ("api", "ns1", "svc.example.com", 3, ["{{.DOMAIN}}"], "example.com")
    assert sans.derive_hosts(*args) == sans.derive_hosts(*args)


@pytest.mark.parametrize(
    "template,expected",
    [
        ("plain.example.org", "plain.example.org"),
        ("{{.DOMAIN}}", "example.com"),
        ("{{ .DOMAIN }}", "example.com"),
        ("x.{{.KUBERNETES_NAMESPACE}}.svc", "x.ns1.svc"),
        ("*.{{.KUBE_SERVICE_DOMAIN_SUFFIX}}", "*.svc.example.com"),
        ("{{.DOMAIN}}-{{.DOMAIN}}", "example.com-example.com"),
    ],
)
def test_render_subject_name(template, expected):
    assert sans.render_subject_name(template, "ns1", "example.com", "svc.example.com") == expected


def test_render_subject_name_unknown_placeholder():
    """
    Placeholders outside of the known set are rejected instead of being
    rendered into the certificate
    """
    with pytest.raises(ConfigurationError, match="Unknown placeholder 'HOSTNAME'"):
        sans.render_subject_name("{{.HOSTNAME}}.x", "ns1", "d", "s", cert_id="api")


@pytest.mark.parametrize("template", ["{{.DOMAIN", "{{DOMAIN}}", "x}}", "{{ }}"])
def test_render_subject_name_malformed(template):
    with pytest.raises(ConfigurationError, match="Can't parse subject name"):
        sans.render_subject_name(template, "ns1", "d", "s")


@pytest.mark.parametrize(
    "role,expected",
    [
        ("api", "KUBE_SIZING_API_COUNT"),
        ("db-proxy", "KUBE_SIZING_DB_PROXY_COUNT"),
        ("tcp-router-2", "KUBE_SIZING_TCP_ROUTER_2_COUNT"),
    ],
)
def test_sizing_key(role, expected):
    assert sizing_key(role) == expected


def test_hosts_for_record_reads_sizing(topology):
    info = CertificateRecord("proxy")
    info.role_name = "db-proxy"
    hosts = sans.hosts_for_record(info, topology)
    assert "db-proxy-0.db-proxy-set" in hosts
    assert "db-proxy-1.db-proxy-set" not in hosts


def test_hosts_for_record_without_role_ignores_sizing():
    info = CertificateRecord("blob")
    info.certificate_name = "blob-cert"
    assert sans.hosts_for_record(info, sans.Topology(sizing={})) == ["blob-cert"]


@pytest.mark.parametrize(
    "sizing,match",
    [
        ({}, "is not set"),
        ({"KUBE_SIZING_API_COUNT": "two"}, "is not a number"),
        ({"KUBE_SIZING_API_COUNT": None}, "is not a number"),
        ({"KUBE_SIZING_API_COUNT": "-1"}, "is negative"),
    ],
)
def test_hosts_for_record_invalid_sizing(sizing, match):
    info = CertificateRecord("api")
    info.role_name = "api"
    with pytest.raises(ConfigurationError, match=match):
        sans.hosts_for_record(info, sans.Topology(sizing=sizing))


def test_topology_defaults_to_environment(monkeypatch):
    monkeypatch.setenv("KUBE_SIZING_API_COUNT", "1")
    info = CertificateRecord("api")
    info.role_name = "api"
    hosts = sans.hosts_for_record(info, sans.Topology(namespace="ns1"))
    assert "api-0.api-set.ns1.svc" in hosts
