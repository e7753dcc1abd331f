"""
Test doubles for the certificate generator
"""

from saltext.certgen.utils.certgen.authority import CertificateAuthority
from saltext.certgen.utils.certgen.exceptions import CapabilityError


class FakeAuthority(CertificateAuthority):
    """
    Returns predictable material instead of real certificates and
    remembers every call, together with a copy of the store at that
    time if one was attached.
    """

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on
        self.store = None
        self.serial = 0

    def _material(self, common_name):
        self.serial += 1
        return (
            f"-----CERT {common_name} {self.serial}-----\n".encode(),
            f"-----KEY {common_name} {self.serial}-----\n".encode(),
        )

    def _record(self, call):
        snapshot = dict(self.store) if self.store is not None else None
        self.calls.append((call, snapshot))

    def mint_root(self, common_name, expiry):
        self._record(("mint_root", common_name, expiry))
        if self.fail_on == common_name:
            raise CapabilityError(f"Cannot create CA: refusing {common_name}")
        return self._material(common_name)

    def sign(self, ca_private_key, ca_certificate, common_name, hosts, usage, expiry):
        self._record(("sign", common_name, tuple(hosts), tuple(usage), ca_private_key))
        if self.fail_on == common_name:
            raise CapabilityError(f"Failed to sign cert: refusing {common_name}")
        return self._material(common_name)

    @property
    def methods(self):
        return [call[0] for call, _ in self.calls]
