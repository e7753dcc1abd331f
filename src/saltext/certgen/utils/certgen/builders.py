"""
Build (or adopt) authorities and leaf certificates for single records
"""

import logging

from saltext.certgen.utils.certgen.authority import DEFAULT_EXPIRY
from saltext.certgen.utils.certgen.authority import ROOT_COMMON_NAME
from saltext.certgen.utils.certgen.authority import USAGE_CLIENT_AUTH
from saltext.certgen.utils.certgen.authority import USAGE_SERVER_AUTH
from saltext.certgen.utils.certgen.exceptions import CapabilityError
from saltext.certgen.utils.certgen.exceptions import CertgenException
from saltext.certgen.utils.certgen.exceptions import ConfigurationError
from saltext.certgen.utils.certgen.exceptions import InvariantViolation
from saltext.certgen.utils.certgen.helpers import unquote_newlines
from saltext.certgen.utils.certgen.sans import hosts_for_record

log = logging.getLogger(__name__)

DEFAULT_CA = "cacert"
LEAF_USAGE = (USAGE_SERVER_AUTH, USAGE_CLIENT_AUTH)


def exists(info, store):
    return bool(info.private_key_name) and bool(store.get(info.private_key_name))


def has_override(info, overlay):
    """
    Return True if ``overlay`` supplies material for ``info``. Both the
    key and the certificate have to be supplied.
    """
    if not overlay:
        return False
    has_key = bool(info.private_key_name) and info.private_key_name in overlay
    has_cert = bool(info.certificate_name) and info.certificate_name in overlay
    if not has_key and not has_cert:
        return False
    if not has_cert:
        raise ConfigurationError(
            f"Override for '{info.id}' supplies key '{info.private_key_name}' "
            f"without certificate '{info.certificate_name}'"
        )
    if not has_key:
        raise ConfigurationError(
            f"Override for '{info.id}' supplies certificate '{info.certificate_name}' "
            f"without key '{info.private_key_name}'"
        )
    return True


def check_override(info, overlay, store):
    """
    Adopt operator supplied material for ``info`` from ``overlay``.
    The values are copied into ``store`` verbatim. Returns True if the
    record was adopted from the overlay.
    """
    if not has_override(info, overlay):
        return False
    log.debug("Adopting override for '%s'", info.id)
    info.private_key = unquote_newlines(overlay[info.private_key_name])
    info.certificate = unquote_newlines(overlay[info.certificate_name])
    store[info.private_key_name] = overlay[info.private_key_name]
    store[info.certificate_name] = overlay[info.certificate_name]
    return True


def _adopt_existing(info, store):
    info.private_key = unquote_newlines(store[info.private_key_name])
    info.certificate = unquote_newlines(store.get(info.certificate_name))


def _verify(info):
    if not info.private_key_name:
        raise InvariantViolation(f"Certificate {info.id} created with empty private key name")
    if not info.private_key:
        raise InvariantViolation(f"Certificate {info.id} created with empty private key")
    if not info.certificate_name:
        raise InvariantViolation(f"Certificate {info.id} created with empty certificate name")
    if not info.certificate:
        raise InvariantViolation(f"Certificate {info.id} created with empty certificate")


def _persist(info, store):
    _verify(info)
    store[info.private_key_name] = info.private_key
    store[info.certificate_name] = info.certificate


def create_authority(info, store, overlay, capability):
    """
    Make sure the authority described by ``info`` is available, both in
    ``store`` and in memory. Returns True if ``store`` was changed.
    """
    if exists(info, store):
        log.debug("Using existing CA '%s'", info.id)
        # needed in memory to sign leaves
        _adopt_existing(info, store)
        return False

    if check_override(info, overlay, store):
        return True

    try:
        info.certificate, info.private_key = capability.mint_root(ROOT_COMMON_NAME, DEFAULT_EXPIRY)
    except CertgenException:
        raise
    except Exception as err:  # pylint: disable=broad-except
        raise CapabilityError(f"Cannot create CA: {err}") from err
    _persist(info, store)
    return True


def create_certificate(info, store, overlay, authority, capability, topology):
    """
    Make sure the leaf certificate described by ``info`` is present in
    ``store``, signing a new one with ``authority`` if necessary.
    Returns True if ``store`` was changed.

    authority
        The :py:class:`CertificateRecord` of the signing authority,
        with its material loaded. May be None if no authority is configured.

    topology
        The :py:class:`Topology` host names are derived from.
    """
    if exists(info, store):
        log.debug("Certificate '%s' already exists", info.id)
        return False

    if check_override(info, overlay, store):
        return True

    # TODO: select the signing authority per record once multiple CAs are supported
    if authority is None or not authority.private_key or not authority.certificate:
        raise ConfigurationError(f"CA {DEFAULT_CA} not found")

    if not info.has_identity():
        log.warning("Certificate %s has no names", info.certificate_name)

    hosts = hosts_for_record(info, topology)
    try:
        info.certificate, info.private_key = capability.sign(
            authority.private_key,
            authority.certificate,
            hosts[0],
            hosts,
            LEAF_USAGE,
            DEFAULT_EXPIRY,
        )
    except CertgenException:
        raise
    except Exception as err:  # pylint: disable=broad-except
        raise CapabilityError(f"Cannot generate cert: {err}") from err
    _persist(info, store)
    return True
