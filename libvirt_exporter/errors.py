class LibvirtExporterError(Exception):
    """Base class for everything that can fail a scrape cycle."""


class HypervisorConnectionError(LibvirtExporterError):
    """The hypervisor could not be reached or answered with a protocol error."""


class EnumerationUnsupportedError(LibvirtExporterError):
    """The server is too old to list active domains in bulk."""


class LookupRaceError(LibvirtExporterError):
    """A domain went away between listing its id and looking it up."""


class NameResolutionError(LibvirtExporterError):
    pass


class DescriptorFetchError(LibvirtExporterError):
    pass


class ParseError(LibvirtExporterError):
    pass


class StatsQueryError(LibvirtExporterError):
    pass
