"""
Collect certificate and private key metadata from configuration
"""

import logging

from saltext.certgen.utils.certgen.helpers import convert_name_to_key

log = logging.getLogger(__name__)

KIND_CERTIFICATE = "certificate"
KIND_PRIVATE_KEY = "private_key"

GENERATOR_TYPE_CA = "CACertificate"
GENERATOR_TYPE_CERT = "Certificate"


class CertificateRecord:
    """
    Everything needed to generate (or adopt) one certificate/key pair.
    """

    def __init__(self, id):  # pylint: disable=redefined-builtin
        self.id = id
        self.private_key_name = ""
        self.certificate_name = ""
        self.is_authority = False
        self.subject_names = []
        self.role_name = ""
        self.certificate = b""
        self.private_key = b""

    def has_identity(self):
        return bool(self.subject_names or self.role_name)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(id={self.id!r}, certificate_name={self.certificate_name!r}, "
            f"private_key_name={self.private_key_name!r}, is_authority={self.is_authority!r})"
        )


class Registry:
    """
    Id-keyed collection of :py:class:`CertificateRecord`.
    Records are listed in the order their ids were first recorded.
    """

    def __init__(self):
        self._records = {}

    def __contains__(self, id):  # pylint: disable=redefined-builtin
        return id in self._records

    def __len__(self):
        return len(self._records)

    def get(self, id):  # pylint: disable=redefined-builtin
        return self._records.get(id)

    def record(
        self,
        id,
        kind,
        name,
        is_authority=False,
        subject_names=None,
        role_name=None,
    ):  # pylint: disable=redefined-builtin
        """
        Merge one configuration event into the record for ``id``.

        id
            The generator id shared by the certificate and its private key.

        kind
            Either ``certificate`` or ``private_key``. Selects which storage
            name ``name`` is assigned to. Other values are logged and ignored.

        name
            The storage name of the value.

        is_authority
            Whether the record describes a self-signed authority.

        subject_names
            Subject name templates. Only replaces earlier values when non-empty.

        role_name
            The role the certificate identifies. Only replaces earlier values when non-empty.
        """
        info = self._records.get(id)
        if info is None:
            info = CertificateRecord(id)

        if kind == KIND_CERTIFICATE:
            info.certificate_name = name
        elif kind == KIND_PRIVATE_KEY:
            info.private_key_name = name
        else:
            log.warning("Invalid certificate generator value_type: %s", kind)
            return self._records.get(id)
        info.is_authority = bool(is_authority)

        if subject_names:
            info.subject_names = list(subject_names)
        if role_name:
            info.role_name = role_name
        self._records[id] = info
        return info

    def record_variable(self, config_var):
        """
        Feed a configuration variable into the registry. Returns the
        affected record, or None if the variable does not describe
        a certificate or private key.

        config_var
            Mapping with ``name`` and a ``generator`` mapping holding
            ``id``, ``type``, ``value_type`` and optionally
            ``subject_names`` and ``role_name``.
        """
        generator = config_var.get("generator") or {}
        if generator.get("type") not in (GENERATOR_TYPE_CA, GENERATOR_TYPE_CERT):
            return None
        return self.record(
            generator["id"],
            generator.get("value_type"),
            convert_name_to_key(config_var["name"]),
            is_authority=generator["type"] == GENERATOR_TYPE_CA,
            subject_names=generator.get("subject_names"),
            role_name=generator.get("role_name"),
        )

    def authorities(self):
        return [info for info in self._records.values() if info.is_authority]

    def leaves(self):
        return [info for info in self._records.values() if not info.is_authority]


def from_variables(variables):
    """
    Build a :py:class:`Registry` from an iterable of configuration variables.
    """
    registry = Registry()
    for config_var in variables or []:
        registry.record_variable(config_var)
    return registry
