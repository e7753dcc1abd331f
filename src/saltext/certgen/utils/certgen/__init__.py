"""
High-level functions to generate certificates into a secret store
"""

import logging

from saltext.certgen.utils.certgen.authority import CertificateAuthority
from saltext.certgen.utils.certgen.authority import LocalCertificateAuthority
from saltext.certgen.utils.certgen.builders import DEFAULT_CA
from saltext.certgen.utils.certgen.builders import create_authority
from saltext.certgen.utils.certgen.builders import create_certificate
from saltext.certgen.utils.certgen.builders import exists
from saltext.certgen.utils.certgen.builders import has_override
from saltext.certgen.utils.certgen.exceptions import CapabilityError
from saltext.certgen.utils.certgen.exceptions import CertgenException
from saltext.certgen.utils.certgen.exceptions import ConfigurationError
from saltext.certgen.utils.certgen.exceptions import InvariantViolation
from saltext.certgen.utils.certgen.registry import CertificateRecord
from saltext.certgen.utils.certgen.registry import Registry
from saltext.certgen.utils.certgen.registry import from_variables
from saltext.certgen.utils.certgen.sans import Topology
from saltext.certgen.utils.certgen.sans import derive_hosts

log = logging.getLogger(__name__)


class GenerationResult:
    """
    Outcome of :py:func:`generate_certs`.

    dirty
        Whether the store was changed and needs to be persisted.
        Also set when a later record failed.

    changed
        Ids of the records that were generated or adopted, in order.

    error
        The exception that stopped the run, if any.
    """

    def __init__(self, dirty=False, changed=None, error=None):
        self.dirty = dirty
        self.changed = changed or []
        self.error = error

    @property
    def ok(self):
        return self.error is None

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(dirty={self.dirty!r}, "
            f"changed={self.changed!r}, error={self.error!r})"
        )


def check_authorities(registry):
    """
    Only the single default authority is supported. Reject anything
    else instead of signing with the wrong one.
    """
    ids = [info.id for info in registry.authorities()]
    unsupported = [x for x in ids if x != DEFAULT_CA]
    if unsupported:
        raise ConfigurationError(
            f"Multiple CAs are not supported. Found authorities {', '.join(ids)}, "
            f"only '{DEFAULT_CA}' is allowed"
        )
    for info in registry.authorities():
        if info.has_identity():
            raise ConfigurationError(
                f"CA '{info.id}' must not have a role name or subject names"
            )


def generate_certs(registry, store, topology, overlay=None, capability=None):
    """
    Generate all authorities, then all leaf certificates of ``registry``
    that are neither present in ``store`` nor supplied by ``overlay``.
    Does not raise on generation failures. The first error stops the
    run and is returned in the result.

    registry
        The :py:class:`Registry` to generate.

    store
        Mutable mapping of names to values. Written in place.

    topology
        The :py:class:`Topology` leaf host names are derived from.

    overlay
        Mapping of operator supplied values that take precedence over generation.

    capability
        The :py:class:`CertificateAuthority` to use. Defaults to
        :py:class:`LocalCertificateAuthority`.
    """
    if capability is None:
        capability = LocalCertificateAuthority()
    overlay = overlay or {}
    result = GenerationResult()

    try:
        check_authorities(registry)

        # the CAs are needed to sign the leaves
        for info in registry.authorities():
            log.info("SSL CA: %s", info.id)
            if create_authority(info, store, overlay, capability):
                result.dirty = True
                result.changed.append(info.id)

        authority = registry.get(DEFAULT_CA)
        for info in registry.leaves():
            log.info("SSL CRT: %s (%s / %s)", info.id, info.certificate_name, info.private_key_name)
            if create_certificate(info, store, overlay, authority, capability, topology):
                result.dirty = True
                result.changed.append(info.id)
    except CertgenException as err:
        log.error("Failed generating certificates: %s: %s", type(err).__name__, err)
        result.error = err
    return result


def pending(registry, store, overlay=None):
    """
    Return the ids of the records a run of :py:func:`generate_certs`
    would generate or adopt, in the order they would be processed.
    Raises :py:class:`ConfigurationError` for unsupported authorities
    and incomplete overrides, which would stop a run.
    """
    check_authorities(registry)
    res = []
    for info in registry.authorities() + registry.leaves():
        if exists(info, store):
            continue
        has_override(info, overlay)
        res.append(info.id)
    return res
