from collections import namedtuple

COUNTER = "counter"
GAUGE = "gauge"

BLOCK_LABELS = ("domain", "source_file", "target_device")

MetricDescriptor = namedtuple("MetricDescriptor", ["name", "documentation", "kind", "labels"])
MetricSample = namedtuple("MetricSample", ["descriptor", "labels", "value"])

UP = MetricDescriptor(
    "libvirt_up",
    "Whether scraping libvirt's metrics was successful.",
    GAUGE,
    ())

BLOCK_READ_BYTES = MetricDescriptor(
    "libvirt_block_stats_read_bytes_total",
    "Number of bytes read from a block device, in bytes.",
    COUNTER,
    BLOCK_LABELS)
BLOCK_READ_REQUESTS = MetricDescriptor(
    "libvirt_block_stats_read_requests_total",
    "Number of read requests from a block device.",
    COUNTER,
    BLOCK_LABELS)
BLOCK_READ_SECONDS = MetricDescriptor(
    "libvirt_block_stats_read_seconds_total",
    "Amount of time spent reading from a block device, in seconds.",
    COUNTER,
    BLOCK_LABELS)
BLOCK_WRITE_BYTES = MetricDescriptor(
    "libvirt_block_stats_write_bytes_total",
    "Number of bytes written from a block device, in bytes.",
    COUNTER,
    BLOCK_LABELS)
BLOCK_WRITE_REQUESTS = MetricDescriptor(
    "libvirt_block_stats_write_requests_total",
    "Number of write requests from a block device.",
    COUNTER,
    BLOCK_LABELS)
BLOCK_WRITE_SECONDS = MetricDescriptor(
    "libvirt_block_stats_write_seconds_total",
    "Amount of time spent writing from a block device, in seconds.",
    COUNTER,
    BLOCK_LABELS)
BLOCK_FLUSH_REQUESTS = MetricDescriptor(
    "libvirt_block_stats_flush_requests_total",
    "Number of flush requests from a block device.",
    COUNTER,
    BLOCK_LABELS)
BLOCK_FLUSH_SECONDS = MetricDescriptor(
    "libvirt_block_stats_flush_seconds_total",
    "Amount of time spent flushing of a block device, in seconds.",
    COUNTER,
    BLOCK_LABELS)

# (descriptor, BlockStats field, value is in nanoseconds).
# "errs" is left out: libvirt does not define what it counts.
BLOCK_STATS_FIELDS = (
    (BLOCK_READ_BYTES, "rd_bytes", False),
    (BLOCK_READ_REQUESTS, "rd_operations", False),
    (BLOCK_READ_SECONDS, "rd_total_times", True),
    (BLOCK_WRITE_BYTES, "wr_bytes", False),
    (BLOCK_WRITE_REQUESTS, "wr_operations", False),
    (BLOCK_WRITE_SECONDS, "wr_total_times", True),
    (BLOCK_FLUSH_REQUESTS, "flush_operations", False),
    (BLOCK_FLUSH_SECONDS, "flush_total_times", True),
)

DESCRIPTORS = (UP,) + tuple(descriptor for descriptor, _, _ in BLOCK_STATS_FIELDS)


BLOCK_STATS_KEYS = (
    "rd_bytes",
    "rd_operations",
    "rd_total_times",
    "wr_bytes",
    "wr_operations",
    "wr_total_times",
    "flush_operations",
    "flush_total_times",
    "errs",
)
BlockStats = namedtuple("BlockStats", BLOCK_STATS_KEYS, defaults=(None,) * len(BLOCK_STATS_KEYS))


def block_stats_from_params(params):
    """Build BlockStats from the typed-parameter dict of blockStatsFlags().

    Counters the driver did not report stay None.
    """
    return BlockStats(**{field: params.get(field) for field in BlockStats._fields})
