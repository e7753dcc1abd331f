"""
Helpers shared by the certificate generator and the Salt modules
"""

from saltext.certgen.utils.certgen.exceptions import ConfigurationError

SIZING_KEY_TEMPLATE = "KUBE_SIZING_{}_COUNT"


def convert_name_to_key(name):
    """
    Convert a configuration variable name (``INTERNAL_CA_CERT``)
    to the name it is stored under in the secret (``internal-ca-cert``).
    """
    return name.lower().replace("_", "-")


def unquote_newlines(value):
    """
    Undo the newline escaping of the storage layer. Values that were
    never escaped pass through unchanged.
    """
    return to_bytes(value).replace(b"\\n", b"\n")


def to_bytes(value):
    """
    Return ``value`` as bytes. Only strings are converted, anything
    else cannot hold key material.
    """
    if value is None:
        return b""
    if isinstance(value, str):
        return value.encode()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise ConfigurationError(f"Expected a string, got {type(value).__name__}")


def to_str(value):
    if isinstance(value, (bytes, bytearray)):
        return value.decode()
    return value


def sizing_key(role_name):
    """
    Return the key the replica count of ``role_name`` is looked up by.
    """
    return SIZING_KEY_TEMPLATE.format(role_name.upper().replace("-", "_"))


def replica_count(role_name, sizing):
    """
    Look up the replica count of ``role_name`` in ``sizing``.

    role_name
        The name of the role.

    sizing
        Mapping of sizing keys to integers or integer strings.
    """
    key = sizing_key(role_name)
    try:
        raw = sizing[key]
    except KeyError as err:
        raise ConfigurationError(f"Sizing parameter {key} for role '{role_name}' is not set") from err
    try:
        count = int(raw)
    except (TypeError, ValueError) as err:
        raise ConfigurationError(
            f"Sizing parameter {key} for role '{role_name}' is not a number: {raw!r}"
        ) from err
    if count < 0:
        raise ConfigurationError(f"Sizing parameter {key} for role '{role_name}' is negative")
    return count
