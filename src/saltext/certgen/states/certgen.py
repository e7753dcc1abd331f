"""
Ensure cluster certificates are present in a Vault KV secret.

.. important::
    This module requires the ``certgen`` execution module and the
    ``vault`` execution module from ``saltext.vault``.
"""

import logging

from salt.exceptions import SaltException

log = logging.getLogger(__name__)


def certificates_present(
    name,
    variables=None,
    update_path=None,
    namespace=None,
    domain=None,
    service_domain_suffix=None,
    sizing=None,
):
    """
    Ensure all certificates and private keys described by ``variables``
    are present in the secret ``name``. Missing ones are generated,
    or taken from ``update_path`` if they are supplied there.
    Existing values are never replaced.

    name
        The path of the secret.

    variables
        List of configuration variables describing certificates and keys.
        Defaults to ``certgen:variables`` from the configuration.

    update_path
        Path to a secret holding operator supplied values.

    namespace, domain, service_domain_suffix, sizing
        See :py:func:`certgen.generate <saltext.certgen.modules.certgen.generate>`.
    """
    ret = {
        "name": name,
        "result": True,
        "comment": "All certificates are already present",
        "changes": {},
    }
    try:
        missing = __salt__["certgen.pending"](
            name, variables=variables, update_path=update_path
        )
        if not missing:
            return ret
        if __opts__["test"]:
            ret["result"] = None
            ret["changes"]["generated"] = missing
            ret["comment"] = f"Would have generated {len(missing)} certificate(s)"
            return ret
        res = __salt__["certgen.generate"](
            name,
            variables=variables,
            update_path=update_path,
            namespace=namespace,
            domain=domain,
            service_domain_suffix=service_domain_suffix,
            sizing=sizing,
        )
        if res["changed"]:
            ret["changes"]["generated"] = res["changed"]
            ret["comment"] = f"Generated {len(res['changed'])} certificate(s)"
    except SaltException as err:
        ret["result"] = False
        ret["comment"] = str(err)
        ret["changes"] = {}
        # a failed run still persists what it generated before failing
        partial = (getattr(err, "info", None) or {}).get("changed")
        if partial:
            ret["changes"]["generated"] = partial
    return ret
