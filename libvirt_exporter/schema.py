from collections import namedtuple
from xml.etree import ElementTree

from libvirt_exporter.errors import ParseError

Disk = namedtuple("Disk", ["source", "target"])
DomainDescriptor = namedtuple("DomainDescriptor", ["name", "disks"])

# Attributes of <source> tried in order: file images, host block devices, network volumes.
SOURCE_ATTRIBUTES = ("file", "dev", "name")


def parse_domain(xml_desc):
    """Parse a libvirt domain XML document.

    Only ``devices/disk`` is modeled; anything else in the document is ignored.
    """
    try:
        root = ElementTree.fromstring(xml_desc)
    except ElementTree.ParseError as e:
        raise ParseError(f"malformed domain XML: {e}") from e

    if root.tag != "domain":
        raise ParseError(f"expected <domain> root element, got <{root.tag}>")

    disks = tuple(_parse_disk(disk) for disk in root.findall("devices/disk"))
    return DomainDescriptor(name=root.findtext("name", default=""), disks=disks)


def _parse_disk(element):
    target = element.find("target")
    if target is None or not target.get("dev"):
        raise ParseError("disk without a target device")

    source = ""
    source_element = element.find("source")
    if source_element is not None:
        for attribute in SOURCE_ATTRIBUTES:
            if source_element.get(attribute):
                source = source_element.get(attribute)
                break

    return Disk(source=source, target=target.get("dev"))
