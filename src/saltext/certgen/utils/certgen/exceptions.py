"""
Certificate generation exceptions
"""

from salt.exceptions import SaltException


class CertgenException(SaltException):
    """
    Base class for exceptions raised while generating certificates
    """


class ConfigurationError(CertgenException):
    """
    The configuration handed to the generator cannot be satisfied,
    e.g. an override pair is incomplete or a sizing value is missing
    """


class CapabilityError(CertgenException):
    """
    The certificate authority failed to mint or sign, or authority
    material could not be parsed
    """


class InvariantViolation(CertgenException):
    """
    A generated record is missing a name or its key material.
    This indicates a bug, not a transient failure.
    """
