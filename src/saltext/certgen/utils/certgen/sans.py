"""
Derive certificate host names from role topology
"""

import os
import re

from saltext.certgen.utils.certgen.exceptions import ConfigurationError
from saltext.certgen.utils.certgen.helpers import replica_count

PLACEHOLDERS = ("DOMAIN", "KUBERNETES_NAMESPACE", "KUBE_SERVICE_DOMAIN_SUFFIX")

_PLACEHOLDER_RE = re.compile(r"\{\{\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


class Topology:
    """
    Cluster parameters that host names are derived from.

    sizing
        Mapping of ``KUBE_SIZING_<ROLE>_COUNT`` keys to replica counts.
        Defaults to the process environment.
    """

    def __init__(self, namespace="", domain="", service_domain_suffix="", sizing=None):
        self.namespace = namespace
        self.domain = domain
        self.service_domain_suffix = service_domain_suffix
        self.sizing = sizing

    def get_sizing(self):
        if self.sizing is None:
            return os.environ
        return self.sizing


def render_subject_name(template, namespace, domain, service_domain_suffix, cert_id=None):
    """
    Substitute ``{{.DOMAIN}}``, ``{{.KUBERNETES_NAMESPACE}}`` and
    ``{{.KUBE_SERVICE_DOMAIN_SUFFIX}}`` in a subject name template.
    Any other placeholder is rejected.
    """
    mapping = {
        "DOMAIN": domain,
        "KUBERNETES_NAMESPACE": namespace,
        "KUBE_SERVICE_DOMAIN_SUFFIX": service_domain_suffix,
    }

    def _sub(match):
        name = match.group(1)
        if name not in mapping:
            raise ConfigurationError(
                f"Unknown placeholder '{name}' in subject name '{template}' "
                f"for certificate '{cert_id}'. Valid: {', '.join(PLACEHOLDERS)}"
            )
        return mapping[name]

    rendered = _PLACEHOLDER_RE.sub(_sub, template)
    # anything left over is an unterminated or malformed action
    leftover = _PLACEHOLDER_RE.sub("", template)
    if "{{" in leftover or "}}" in leftover:
        raise ConfigurationError(
            f"Can't parse subject name '{template}' for certificate '{cert_id}'"
        )
    return rendered


def _add_host(hosts, wildcard, name):
    hosts.append(name)
    if wildcard:
        hosts.append(f"*.{name}")


def derive_hosts(
    role_name,
    namespace,
    service_domain_suffix,
    count,
    subject_names,
    domain,
    certificate_name="",
    cert_id=None,
):
    """
    Return the ordered host list for a certificate. The first entry is
    used as the Common Name, all entries become Subject Alternative Names.

    role_name
        Role the certificate identifies. May be empty.

    namespace
        The namespace the cluster is deployed to.

    service_domain_suffix
        External service domain suffix.

    count
        Number of replicas of the role. Ignored without ``role_name``.

    subject_names
        Subject name templates, appended verbatim after rendering.

    domain
        The cluster domain.

    certificate_name
        Used as the only host when nothing else applies.
    """
    hosts = []

    if role_name:
        _add_host(hosts, True, role_name)
        _add_host(hosts, True, f"{role_name}.{namespace}.svc")
        _add_host(hosts, True, f"{role_name}.{namespace}.svc.cluster.local")

        for i in range(count):
            replica = f"{role_name}-{i}.{role_name}-set"
            _add_host(hosts, False, replica)
            _add_host(hosts, False, f"{replica}.{namespace}.svc")
            _add_host(hosts, False, f"{replica}.{namespace}.svc.cluster.local")

        _add_host(hosts, True, f"{role_name}.{service_domain_suffix}")

    for template in subject_names or []:
        _add_host(
            hosts,
            False,
            render_subject_name(template, namespace, domain, service_domain_suffix, cert_id=cert_id),
        )

    if not hosts:
        hosts.append(certificate_name)
    return hosts


def hosts_for_record(info, topology):
    """
    Derive the host list for a :py:class:`CertificateRecord`, looking up
    the replica count of its role in the topology's sizing source.
    """
    count = 0
    if info.role_name:
        count = replica_count(info.role_name, topology.get_sizing())
    return derive_hosts(
        info.role_name,
        topology.namespace,
        topology.service_domain_suffix,
        count,
        info.subject_names,
        topology.domain,
        certificate_name=info.certificate_name,
        cert_id=info.id,
    )
