"""
Certificate authority capability used to mint roots and sign leaves
"""

import ipaddress
import logging
from datetime import datetime
from datetime import timedelta
from datetime import timezone

import salt.utils.x509 as x509util
from cryptography import x509 as cx509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID
from cryptography.x509.oid import NameOID
from salt.exceptions import SaltException

from saltext.certgen.utils.certgen.exceptions import CapabilityError
from saltext.certgen.utils.certgen.helpers import to_str

log = logging.getLogger(__name__)

# 30 years
DEFAULT_EXPIRY = timedelta(hours=262800)
DEFAULT_KEY_SIZE = 4096
ROOT_COMMON_NAME = "SCF CA"

USAGE_SERVER_AUTH = "server auth"
USAGE_CLIENT_AUTH = "client auth"

EXTENDED_KEY_USAGES = {
    USAGE_SERVER_AUTH: ExtendedKeyUsageOID.SERVER_AUTH,
    USAGE_CLIENT_AUTH: ExtendedKeyUsageOID.CLIENT_AUTH,
}


class CertificateAuthority:
    """
    Interface of the capability the generator delegates all
    cryptography to. Both methods return ``(certificate, private_key)``
    as PEM bytes and raise :py:class:`CapabilityError` on failure.
    """

    def mint_root(self, common_name, expiry):
        raise NotImplementedError

    def sign(self, ca_private_key, ca_certificate, common_name, hosts, usage, expiry):
        raise NotImplementedError


class LocalCertificateAuthority(CertificateAuthority):
    """
    Generates RSA keys and X.509 certificates in-process.

    key_size
        Size of every generated RSA key. Defaults to 4096.
    """

    def __init__(self, key_size=DEFAULT_KEY_SIZE):
        self.key_size = key_size

    def mint_root(self, common_name, expiry):
        log.debug("Minting self-signed root '%s'", common_name)
        try:
            key = self._generate_key()
            name = cx509.Name([cx509.NameAttribute(NameOID.COMMON_NAME, common_name)])
            now = datetime.now(timezone.utc)
            cert = (
                cx509.CertificateBuilder()
                .subject_name(name)
                .issuer_name(name)
                .public_key(key.public_key())
                .serial_number(cx509.random_serial_number())
                .not_valid_before(now)
                .not_valid_after(now + expiry)
                .add_extension(cx509.BasicConstraints(ca=True, path_length=None), critical=True)
                .add_extension(
                    cx509.KeyUsage(
                        digital_signature=True,
                        content_commitment=False,
                        key_encipherment=False,
                        data_encipherment=False,
                        key_agreement=False,
                        key_cert_sign=True,
                        crl_sign=True,
                        encipher_only=False,
                        decipher_only=False,
                    ),
                    critical=True,
                )
                .add_extension(
                    cx509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False
                )
                .sign(key, hashes.SHA256())
            )
        except (TypeError, ValueError) as err:
            raise CapabilityError(f"Cannot create CA: {err}") from err
        return _encode_cert(cert), _encode_key(key)

    def sign(self, ca_private_key, ca_certificate, common_name, hosts, usage, expiry):
        try:
            ca_cert = x509util.load_cert(to_str(ca_certificate))
        except (SaltException, TypeError, ValueError) as err:
            raise CapabilityError(f"Cannot parse CA cert: {err}") from err
        try:
            ca_key = x509util.load_privkey(to_str(ca_private_key))
        except (SaltException, TypeError, ValueError) as err:
            raise CapabilityError(f"Cannot parse CA private key: {err}") from err

        try:
            eku = [EXTENDED_KEY_USAGES[x] for x in usage]
        except KeyError as err:
            raise CapabilityError(f"Unsupported key usage: {err}") from err

        log.debug("Signing certificate for '%s' with %d host names", common_name, len(hosts))
        try:
            key = self._generate_key()
            now = datetime.now(timezone.utc)
            builder = (
                cx509.CertificateBuilder()
                .subject_name(cx509.Name([cx509.NameAttribute(NameOID.COMMON_NAME, common_name)]))
                .issuer_name(ca_cert.subject)
                .public_key(key.public_key())
                .serial_number(cx509.random_serial_number())
                .not_valid_before(now)
                .not_valid_after(now + expiry)
                .add_extension(cx509.BasicConstraints(ca=False, path_length=None), critical=True)
                .add_extension(
                    cx509.KeyUsage(
                        digital_signature=True,
                        content_commitment=False,
                        key_encipherment=True,
                        data_encipherment=False,
                        key_agreement=False,
                        key_cert_sign=False,
                        crl_sign=False,
                        encipher_only=False,
                        decipher_only=False,
                    ),
                    critical=True,
                )
                .add_extension(
                    cx509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()),
                    critical=False,
                )
            )
            if eku:
                builder = builder.add_extension(cx509.ExtendedKeyUsage(eku), critical=False)
            if hosts:
                builder = builder.add_extension(
                    cx509.SubjectAlternativeName([_general_name(host) for host in hosts]),
                    critical=False,
                )
            cert = builder.sign(ca_key, hashes.SHA256())
        except (TypeError, ValueError) as err:
            raise CapabilityError(f"Failed to sign cert: {err}") from err
        return _encode_cert(cert), _encode_key(key)

    def _generate_key(self):
        return rsa.generate_private_key(public_exponent=65537, key_size=self.key_size)


def _general_name(host):
    try:
        return cx509.IPAddress(ipaddress.ip_address(host))
    except ValueError:
        return cx509.DNSName(host)


def _encode_cert(cert):
    return cert.public_bytes(serialization.Encoding.PEM)


def _encode_key(key):
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
