import logging
from contextlib import ExitStack, contextmanager

from libvirt_exporter.errors import EnumerationUnsupportedError, LookupRaceError
from libvirt_exporter.metrics import BLOCK_STATS_FIELDS, MetricSample
from libvirt_exporter.schema import parse_domain

log = logging.getLogger("libvirt_exporter.collector")


@contextmanager
def released(domain):
    try:
        yield domain
    finally:
        domain.release()


def block_stats_samples(domain, domain_name, disk):
    """Query one disk and map every reported counter to a sample.

    The query happens before anything is built, so a failing device yields
    nothing at all.
    """
    stats = domain.block_stats(disk.target)
    labels = (domain_name, disk.source, disk.target)

    samples = []
    for descriptor, field, nanoseconds in BLOCK_STATS_FIELDS:
        value = getattr(stats, field)
        if value is None:
            continue
        if nanoseconds:
            value = value / 1e9
        samples.append(MetricSample(descriptor, labels, value))
    return samples


def collect_domain(domain):
    domain_name = domain.name()
    descriptor = parse_domain(domain.xml_descriptor())

    for disk in descriptor.disks:
        yield from block_stats_samples(domain, domain_name, disk)


def collect_from_libvirt(conn):
    """Yield samples for every active domain on an open connection.

    Servers older than libvirt 0.9.13 cannot list active domains in bulk; for
    those the numeric ids are listed and looked up one by one instead.
    """
    try:
        domains = conn.list_active_domains()
    except EnumerationUnsupportedError as e:
        log.debug(f"Bulk domain listing unsupported ({e}), falling back to lookup by id")
        yield from _collect_by_id(conn)
        return

    with ExitStack() as stack:
        for domain in domains:
            stack.callback(domain.release)
        for domain in domains:
            yield from collect_domain(domain)


def _collect_by_id(conn):
    for domain_id in conn.list_active_domain_ids():
        try:
            domain = conn.lookup_by_id(domain_id)
        except LookupRaceError as e:
            log.debug(f"Skipping domain {domain_id}: {e}")
            continue

        with released(domain):
            yield from collect_domain(domain)
