#!/usr/bin/python3

import argparse
import logging
from os import getenv

import uvicorn
from fastapi import FastAPI, Response
from fastapi.responses import HTMLResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from libvirt_exporter.exporter import LibvirtExporter

log = logging.getLogger("libvirt_exporter")

LISTEN_ADDRESS = getenv("LISTEN_ADDRESS", ":9167")
METRICS_PATH = getenv("METRICS_PATH", "/metrics")
LIBVIRT_URI = getenv("LIBVIRT_URI", "qemu:///system")
LOG_LEVEL = getenv("LOG_LEVEL", "info")
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")

LANDING_PAGE = """<html>
<head><title>Libvirt Exporter</title></head>
<body>
<h1>Libvirt Exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
</body>
</html>
"""


def parse_listen_address(address):
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {address!r}, expected [host]:port")
    return host.strip("[]") or "0.0.0.0", int(port)


def create_app(exporter, metrics_path=METRICS_PATH):
    registry = CollectorRegistry()
    registry.register(exporter)

    app = FastAPI(title="Libvirt Exporter")

    @app.get(metrics_path)
    def metrics():
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/")
    def index():
        return HTMLResponse(LANDING_PAGE.format(metrics_path=metrics_path))

    return app


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Prometheus exporter for libvirt block device statistics")
    parser.add_argument("--web.listen-address", dest="listen_address", default=LISTEN_ADDRESS,
                        help="Address to listen on for web interface and telemetry.")
    parser.add_argument("--web.telemetry-path", dest="metrics_path", default=METRICS_PATH,
                        help="Path under which to expose metrics.")
    parser.add_argument("--libvirt.uri", dest="libvirt_uri", default=LIBVIRT_URI,
                        help="Libvirt URI from which to extract metrics.")
    parser.add_argument("--log.level", dest="log_level", default=LOG_LEVEL,
                        type=str.lower, choices=LOG_LEVELS, help="Logging level.")
    args = parser.parse_args(argv)
    if args.log_level not in LOG_LEVELS:
        parser.error(f"invalid log level {args.log_level!r}, choose from {', '.join(LOG_LEVELS)}")
    try:
        args.host, args.port = parse_listen_address(args.listen_address)
    except ValueError as e:
        parser.error(str(e))
    return args


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    from libvirt_exporter.hypervisor import open_connection

    exporter = LibvirtExporter(args.libvirt_uri, open_connection)
    app = create_app(exporter, metrics_path=args.metrics_path)

    log.info(f"Listening on {args.listen_address}, metrics at {args.metrics_path}, libvirt URI {args.libvirt_uri}")
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
