import logging

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from libvirt_exporter.errors import StatsQueryError
from libvirt_exporter.exporter import LibvirtExporter
from libvirt_exporter.metrics import DESCRIPTORS, BlockStats
from tests.fakes import FakeConnection, FakeDomain, failing_connect, legacy_connection

URI = "qemu:///system"


def connect_to(conn):
    def connect(uri):
        assert uri == URI
        return conn
    return connect


def scrape(exporter):
    registry = CollectorRegistry()
    registry.register(exporter)
    return [
        (sample.name, sample.labels, sample.value)
        for family in registry.collect()
        for sample in family.samples
    ]


def test_describe_lists_every_metric_without_connecting():
    def connect(uri):
        pytest.fail("describe() must not connect")

    families = list(LibvirtExporter(URI, connect).describe())

    assert [f.name for f in families] == [
        "libvirt_up",
        "libvirt_block_stats_read_bytes",
        "libvirt_block_stats_read_requests",
        "libvirt_block_stats_read_seconds",
        "libvirt_block_stats_write_bytes",
        "libvirt_block_stats_write_requests",
        "libvirt_block_stats_write_seconds",
        "libvirt_block_stats_flush_requests",
        "libvirt_block_stats_flush_seconds",
    ]
    assert [f.type for f in families] == ["gauge"] + ["counter"] * 8
    assert all(f.samples == [] for f in families)
    assert len(families) == len(DESCRIPTORS)


def test_collect_single_domain():
    vm1 = FakeDomain("vm1", disks=[("/a.img", "vda")], stats={"vda": BlockStats(rd_bytes=1024)})
    conn = FakeConnection(domains=[vm1])

    samples = scrape(LibvirtExporter(URI, connect_to(conn)))

    assert samples == [
        ("libvirt_block_stats_read_bytes_total",
         {"domain": "vm1", "source_file": "/a.img", "target_device": "vda"},
         1024),
        ("libvirt_up", {}, 1),
    ]
    assert vm1.releases == 1
    assert conn.closes == 1


def test_collect_exposition_text():
    vm1 = FakeDomain("vm1", disks=[("/a.img", "vda")],
                     stats={"vda": BlockStats(rd_bytes=1024, rd_total_times=2_500_000_000)})
    registry = CollectorRegistry()
    registry.register(LibvirtExporter(URI, connect_to(FakeConnection(domains=[vm1]))))

    text = generate_latest(registry).decode()

    assert "# TYPE libvirt_block_stats_read_bytes_total counter" in text
    assert 'libvirt_block_stats_read_bytes_total{domain="vm1",source_file="/a.img",target_device="vda"} 1024.0' in text
    assert 'libvirt_block_stats_read_seconds_total{domain="vm1",source_file="/a.img",target_device="vda"} 2.5' in text
    assert "# TYPE libvirt_up gauge" in text
    assert "libvirt_up 1.0" in text
    assert "write_bytes" not in text


def test_collect_groups_samples_per_metric():
    vm1 = FakeDomain("vm1", disks=[("/a.img", "vda"), ("/b.img", "vdb")],
                     stats={"vda": BlockStats(rd_bytes=1), "vdb": BlockStats(rd_bytes=2)})
    registry = CollectorRegistry()
    registry.register(LibvirtExporter(URI, connect_to(FakeConnection(domains=[vm1]))))

    assert registry.get_sample_value(
        "libvirt_block_stats_read_bytes_total",
        {"domain": "vm1", "source_file": "/b.img", "target_device": "vdb"}) == 2
    assert generate_latest(registry).decode().count("# TYPE libvirt_block_stats_read_bytes_total") == 1


def test_collect_connection_failure(caplog):
    with caplog.at_level(logging.ERROR, logger="libvirt_exporter"):
        samples = scrape(LibvirtExporter(URI, failing_connect))

    assert samples == [("libvirt_up", {}, 0)]
    assert "Failed to scrape metrics" in caplog.text


def test_collect_failure_mid_domain():
    vm1 = FakeDomain("vm1", disks=[("/a.img", "vda"), ("/b.img", "vdb"), ("/c.img", "vdc")],
                     stats={"vda": BlockStats(rd_bytes=1),
                            "vdb": StatsQueryError("vdb vanished"),
                            "vdc": BlockStats(rd_bytes=3)})
    vm2 = FakeDomain("vm2")
    conn = FakeConnection(domains=[vm1, vm2])

    samples = scrape(LibvirtExporter(URI, connect_to(conn)))

    assert vm1.queried == ["vda", "vdb"]
    assert ("libvirt_up", {}, 0) in samples
    assert ("libvirt_up", {}, 1) not in samples
    assert vm1.releases == 1
    assert vm2.releases == 1
    assert conn.closes == 1


def test_collect_legacy_server():
    vm3 = FakeDomain("vm3", disks=[("/3.img", "vda")], stats={"vda": BlockStats(wr_operations=5)})
    vm9 = FakeDomain("vm9", disks=[("/9.img", "vda")], stats={"vda": BlockStats(wr_operations=6)})
    conn = legacy_connection({3: vm3, 7: None, 9: vm9})

    samples = scrape(LibvirtExporter(URI, connect_to(conn)))

    assert [labels.get("domain") for _, labels, _ in samples] == ["vm3", "vm9", None]
    assert samples[-1] == ("libvirt_up", {}, 1)
    assert (vm3.releases, vm9.releases, conn.closes) == (1, 1, 1)


def test_collect_opens_a_fresh_connection_every_time():
    opened = []

    def connect(uri):
        conn = FakeConnection()
        opened.append(conn)
        return conn

    exporter = LibvirtExporter(URI, connect)
    scrape(exporter)
    scrape(exporter)

    assert len(opened) == 2
    assert [conn.closes for conn in opened] == [1, 1]
