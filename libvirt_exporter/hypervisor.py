import logging

import libvirt

from libvirt_exporter.errors import (
    DescriptorFetchError,
    EnumerationUnsupportedError,
    HypervisorConnectionError,
    LookupRaceError,
    NameResolutionError,
    StatsQueryError,
)
from libvirt_exporter.metrics import block_stats_from_params

log = logging.getLogger("libvirt_exporter.hypervisor")


def _describe(error):
    message = error.get_error_message()
    return message if message else str(error)


def _ignore_error(ctx, error):
    pass


def open_connection(uri):
    # Without a handler libvirt prints every error to stderr, caught or not.
    libvirt.registerErrorHandler(_ignore_error, None)
    try:
        conn = libvirt.openReadOnly(uri)
    except libvirt.libvirtError as e:
        raise HypervisorConnectionError(f"failed to open {uri}: {_describe(e)}") from e
    if conn is None:
        raise HypervisorConnectionError(f"failed to open {uri}")
    return Connection(conn)


class Connection:

    def __init__(self, conn):
        self._conn = conn

    def list_active_domains(self):
        if not hasattr(self._conn, "listAllDomains"):
            raise EnumerationUnsupportedError("bindings lack listAllDomains")
        try:
            domains = self._conn.listAllDomains(libvirt.VIR_CONNECT_LIST_DOMAINS_ACTIVE)
        except libvirt.libvirtError as e:
            if e.get_error_code() == libvirt.VIR_ERR_NO_SUPPORT:
                raise EnumerationUnsupportedError(_describe(e)) from e
            raise HypervisorConnectionError(f"listing active domains failed: {_describe(e)}") from e
        return [Domain(domain) for domain in domains]

    def list_active_domain_ids(self):
        try:
            return list(self._conn.listDomainsID())
        except libvirt.libvirtError as e:
            raise HypervisorConnectionError(f"listing active domain ids failed: {_describe(e)}") from e

    def lookup_by_id(self, domain_id):
        try:
            return Domain(self._conn.lookupByID(domain_id))
        except libvirt.libvirtError as e:
            raise LookupRaceError(f"domain {domain_id}: {_describe(e)}") from e

    def close(self):
        try:
            self._conn.close()
        except libvirt.libvirtError as e:
            log.warning(f"Closing connection failed: {_describe(e)}")


class Domain:

    def __init__(self, domain):
        self._domain = domain

    def name(self):
        try:
            return self._domain.name()
        except libvirt.libvirtError as e:
            raise NameResolutionError(_describe(e)) from e

    def xml_descriptor(self):
        try:
            return self._domain.XMLDesc(0)
        except libvirt.libvirtError as e:
            raise DescriptorFetchError(_describe(e)) from e

    def block_stats(self, device):
        try:
            params = self._domain.blockStatsFlags(device, 0)
        except libvirt.libvirtError as e:
            raise StatsQueryError(f"block stats for {device}: {_describe(e)}") from e
        return block_stats_from_params(params or {})

    def release(self):
        # virDomain is freed by the bindings once its last reference is gone.
        self._domain = None
