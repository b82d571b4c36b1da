"""Command line tools: server probes and configuration helpers."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from dnspipe.configtool import SUPPORTED_EXTS, convert_config, gen_config
from dnspipe.probe import probe_connection_reuse, probe_idle_timeout, probe_pipeline

logger = logging.getLogger(__name__)

_ADDR_METAVAR = "{tcp|tls}://server_addr[:port]"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dnspipe")
    commands = parser.add_subparsers(dest="command", required=True)

    probe = commands.add_parser("probe", help="Run some server tests.")
    probes = probe.add_subparsers(dest="probe_command", required=True)
    for name, help_text, func in (
        (
            "conn-reuse",
            "Check whether this server supports RFC 1035 connection reuse.",
            probe_connection_reuse,
        ),
        ("idle-timeout", "Probe server's idle timeout.", probe_idle_timeout),
        (
            "pipeline",
            "Check whether this server supports RFC 7766 query pipelining.",
            probe_pipeline,
        ),
    ):
        sub = probes.add_parser(name, help=help_text)
        sub.add_argument("addr", metavar=_ADDR_METAVAR)
        sub.set_defaults(func=lambda a, f=func: f(a.addr))

    exts = ", ".join(SUPPORTED_EXTS)
    config = commands.add_parser(
        "config", help="Tools that can generate/convert config files."
    )
    configs = config.add_subparsers(dest="config_command", required=True)
    gen = configs.add_parser(
        "gen", help=f"Generate a template config. Supported extensions: {exts}"
    )
    gen.add_argument("config_file")
    gen.set_defaults(func=lambda a: gen_config(a.config_file))

    conv = configs.add_parser(
        "conv", help=f"Convert configuration file format. Supported extensions: {exts}"
    )
    conv.add_argument("-i", "--in", dest="src", required=True, help="input config")
    conv.add_argument("-o", "--out", dest="dst", required=True, help="output config")
    conv.set_defaults(func=lambda a: convert_config(a.src, a.dst))
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the exit status."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    try:
        args.func(args)
    except Exception as exc:  # noqa: BLE001 - any failure ends the command
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())