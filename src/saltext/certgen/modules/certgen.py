"""
.. _certgen:

Generate cluster certificates into a Vault KV secret.

.. important::
    This module reads and writes secrets through the ``vault`` execution
    module provided by ``saltext.vault``, which requires the general Vault setup.

Configuration
-------------
Defaults for all arguments can be set in the minion configuration or pillar
below the ``certgen`` key:

.. code-block:: yaml

    certgen:
      path: secret/scf/certs
      update_path: secret/scf/certs-update
      namespace: scf
      domain: example.com
      service_domain_suffix: scf.svc.example.com
      sizing:
        KUBE_SIZING_API_COUNT: 2
      variables:
        - name: INTERNAL_CA_CERT
          generator:
            id: cacert
            type: CACertificate
            value_type: certificate
"""

import logging
import os

from salt.exceptions import CommandExecutionError
from salt.exceptions import SaltInvocationError

from saltext.certgen.utils import certgen
from saltext.certgen.utils.certgen.helpers import to_bytes
from saltext.certgen.utils.certgen.helpers import to_str

log = logging.getLogger(__name__)

__virtualname__ = "certgen"


def __virtual__():
    return __virtualname__


def generate(
    path=None,
    variables=None,
    update_path=None,
    namespace=None,
    domain=None,
    service_domain_suffix=None,
    sizing=None,
):
    """
    Generate all missing certificates and private keys and write them
    to the secret at ``path``. Existing values are kept. Values found at
    ``update_path`` take precedence over generation.

    Returns a dictionary with ``dirty`` (whether the secret was written)
    and ``changed`` (the ids of generated or adopted certificates).

    CLI Example:

    .. code-block:: bash

        salt '*' certgen.generate secret/scf/certs namespace=scf

    path
        The path to the secret, including mount. Required, either here or in the configuration.

    variables
        List of configuration variables describing certificates and keys.

    update_path
        Path to a secret holding operator supplied values. Optional.

    namespace
        The namespace the cluster is deployed to.
        Defaults to the ``KUBERNETES_NAMESPACE`` environment variable.

    domain
        The cluster domain. Defaults to the ``DOMAIN`` environment variable.

    service_domain_suffix
        External service domain suffix.
        Defaults to the ``KUBE_SERVICE_DOMAIN_SUFFIX`` environment variable.

    sizing
        Mapping of ``KUBE_SIZING_<ROLE>_COUNT`` to replica counts.
        Defaults to the process environment.
    """
    config = _get_config(
        path=path,
        variables=variables,
        update_path=update_path,
        namespace=namespace,
        domain=domain,
        service_domain_suffix=service_domain_suffix,
        sizing=sizing,
    )
    registry = certgen.from_variables(config["variables"])
    current = _read_secret(config["path"])
    store = _to_store(current)
    overlay = _to_store(_read_secret(config["update_path"])) if config["update_path"] else {}

    res = certgen.generate_certs(
        registry,
        store,
        _topology(config),
        overlay=overlay,
        capability=certgen.LocalCertificateAuthority(key_size=config["key_size"]),
    )
    if res.dirty:
        # persist progress even on failure, reruns pick up where this one stopped
        _write_changes(config["path"], current, store)
    if res.error is not None:
        raise CommandExecutionError(
            f"Failed generating certificates! {type(res.error).__name__}: {res.error}",
            info={"dirty": res.dirty, "changed": res.changed},
        ) from res.error
    return {"dirty": res.dirty, "changed": res.changed}


def pending(path=None, variables=None, update_path=None):
    """
    List the ids of certificates :py:func:`generate` would generate or adopt.

    CLI Example:

    .. code-block:: bash

        salt '*' certgen.pending secret/scf/certs

    path
        The path to the secret, including mount.

    variables
        List of configuration variables describing certificates and keys.

    update_path
        Path to a secret holding operator supplied values. Incomplete
        overrides found there are reported as errors.
    """
    config = _get_config(path=path, variables=variables, update_path=update_path)
    registry = certgen.from_variables(config["variables"])
    store = _to_store(_read_secret(config["path"]))
    overlay = _to_store(_read_secret(config["update_path"])) if config["update_path"] else {}
    try:
        return certgen.pending(registry, store, overlay=overlay)
    except certgen.CertgenException as err:
        raise CommandExecutionError(f"{type(err).__name__}: {err}") from err


def hosts(
    role_name=None,
    subject_names=None,
    certificate_name="",
    namespace=None,
    domain=None,
    service_domain_suffix=None,
    sizing=None,
):
    """
    Return the host names a certificate would be issued for. The first
    one is used as the Common Name.

    CLI Example:

    .. code-block:: bash

        salt '*' certgen.hosts role_name=api namespace=scf

    role_name
        The role the certificate identifies.

    subject_names
        List of subject name templates.

    certificate_name
        Fallback host name if neither ``role_name`` nor ``subject_names`` are set.
    """
    config = _get_config(
        namespace=namespace,
        domain=domain,
        service_domain_suffix=service_domain_suffix,
        sizing=sizing,
        require_path=False,
    )
    info = certgen.CertificateRecord(certificate_name or role_name or "hosts")
    info.role_name = role_name or ""
    info.subject_names = list(subject_names or [])
    info.certificate_name = certificate_name
    try:
        return certgen.sans.hosts_for_record(info, _topology(config))
    except certgen.CertgenException as err:
        raise SaltInvocationError(str(err)) from err


def _get_config(require_path=True, **kwargs):
    config = __salt__["config.get"]("certgen", {}) or {}
    merged = {
        "path": None,
        "update_path": None,
        "variables": [],
        "namespace": os.environ.get("KUBERNETES_NAMESPACE", ""),
        "domain": os.environ.get("DOMAIN", ""),
        "service_domain_suffix": os.environ.get("KUBE_SERVICE_DOMAIN_SUFFIX", ""),
        "sizing": None,
        "key_size": certgen.authority.DEFAULT_KEY_SIZE,
    }
    merged.update({k: v for k, v in config.items() if k in merged and v is not None})
    merged.update({k: v for k, v in kwargs.items() if v is not None})
    if require_path and not merged["path"]:
        raise SaltInvocationError("Missing path to the secret")
    if not isinstance(merged["variables"], list):
        raise SaltInvocationError("variables must be a list")
    return merged


def _topology(config):
    return certgen.Topology(
        namespace=config["namespace"],
        domain=config["domain"],
        service_domain_suffix=config["service_domain_suffix"],
        sizing=config["sizing"],
    )


def _read_secret(path):
    """
    Return the secret at ``path``, or None if it does not exist.
    """
    log.debug("Reading certificate secret for %s at %s", __grains__.get("id"), path)
    try:
        return __salt__["vault.read_secret"](path) or {}
    except CommandExecutionError as err:
        if "VaultNotFoundError" not in str(err):
            raise
        return None


def _to_store(data):
    # other values are not ours to interpret, keep them as they are
    return {k: to_bytes(v) if isinstance(v, str) else v for k, v in (data or {}).items()}


def _write_changes(path, current, store):
    """
    Write the entries of ``store`` that differ from what was read.
    Existing secrets are patched, so entries the generator did not
    touch are never rewritten.
    """
    before = _to_store(current)
    data = {k: to_str(v) for k, v in store.items() if k not in before or before[k] != v}
    if not data:
        return
    verb = "write" if current is None else "patch"
    log.debug("Writing %d certificate values for %s at %s", len(data), __grains__.get("id"), path)
    if not __salt__[f"vault.{verb}_secret"](path, **data):
        raise CommandExecutionError(f"Failed to {verb} secret, see logs for details")
