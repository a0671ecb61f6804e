import logging
from contextlib import closing

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily

from libvirt_exporter.collector import collect_from_libvirt
from libvirt_exporter.errors import LibvirtExporterError
from libvirt_exporter.metrics import COUNTER, DESCRIPTORS, UP

log = logging.getLogger("libvirt_exporter.exporter")


def _family(descriptor, value=None):
    if descriptor.kind == COUNTER:
        return CounterMetricFamily(descriptor.name, descriptor.documentation,
                                   labels=list(descriptor.labels))
    return GaugeMetricFamily(descriptor.name, descriptor.documentation,
                             value=value, labels=list(descriptor.labels) or None)


class LibvirtExporter:
    """prometheus_client collector scraping one libvirt URI per collect() call.

    ``connect`` opens a connection for a URI; every collect() opens its own,
    so concurrent scrapes share nothing but the immutable descriptor table.
    """

    def __init__(self, uri, connect, descriptors=DESCRIPTORS):
        self.uri = uri
        self.connect = connect
        self.descriptors = descriptors

    def describe(self):
        for descriptor in self.descriptors:
            yield _family(descriptor)

    def collect(self):
        families = {}
        up = 1
        try:
            with closing(self.connect(self.uri)) as conn:
                for sample in collect_from_libvirt(conn):
                    family = families.get(sample.descriptor.name)
                    if family is None:
                        family = families[sample.descriptor.name] = _family(sample.descriptor)
                    family.add_metric(list(sample.labels), sample.value)
        except LibvirtExporterError as e:
            log.error(f"Failed to scrape metrics: {e}")
            up = 0

        yield from families.values()
        yield _family(UP, value=up)
