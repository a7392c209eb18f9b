"""
Command-line entry point.

    python -m flowdm [-l LOGFILE] [-v 1..5] <command> [args]

Commands print the device manager's JSON reply on stdout.  Exit status is 0
on ``OK``/``ALREADY_PROVISIONED``/true, 1 otherwise, 2 on bad arguments.
The licensee secret is read from ``--secret`` or ``$FLOWDM_LICENSEE_SECRET``.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Sequence

from .config import Settings
from .core.errors import FlowDMError
from .core.status import ProvisionStatus
from .manager import DeviceManager

logger = logging.getLogger("flowdm")

# -v 1 (fatal) … 5 (debug)
_LEVELS = {
    1: logging.CRITICAL,
    2: logging.ERROR,
    3: logging.WARNING,
    4: logging.INFO,
    5: logging.DEBUG,
}

_SUCCESS = (ProvisionStatus.OK, ProvisionStatus.ALREADY_PROVISIONED)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flowdm", description="Flow device manager")
    parser.add_argument("-l", "--logfile", help="write logs to LOGFILE instead of stderr")
    parser.add_argument(
        "-v", "--verbosity", type=int, choices=sorted(_LEVELS), default=4,
        help="log level: 1 fatal, 2 error, 3 warning, 4 info, 5 debug (default 4)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gw = sub.add_parser("provision-gateway", help="provision this gateway")
    gw.add_argument("device_name")
    gw.add_argument("device_type")
    gw.add_argument("licensee_id", type=int)
    gw.add_argument("fcap")
    gw.add_argument("--secret", default=os.environ.get("FLOWDM_LICENSEE_SECRET"),
                    help="base64 licensee secret (default $FLOWDM_LICENSEE_SECRET)")

    sub.add_parser("is-gateway-provisioned", help="check whether this gateway is provisioned")

    cd = sub.add_parser("provision-constrained", help="provision a constrained device")
    cd.add_argument("client_id")
    cd.add_argument("device_type")
    cd.add_argument("licensee_id", type=int)
    cd.add_argument("fcap")
    cd.add_argument("parent_id", help='gateway device id as 16 "XX " hex groups')

    ic = sub.add_parser("is-constrained-provisioned", help="check whether a constrained device is provisioned")
    ic.add_argument("client_id")

    sub.add_parser("clients", help="list registered clients")
    return parser


def _configure_logging(logfile: str | None, verbosity: int) -> None:
    handler: logging.Handler = logging.FileHandler(logfile) if logfile else logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("flowdm")
    root.handlers[:] = [handler]
    root.setLevel(_LEVELS[verbosity])


def _dispatch(manager: DeviceManager, args: argparse.Namespace) -> tuple[dict, bool]:
    if args.command == "provision-gateway":
        reply = manager.provision_gateway_device(
            args.device_name, args.device_type, args.licensee_id, args.fcap, args.secret,
        )
        return reply, reply["provision_status"] in _SUCCESS
    if args.command == "is-gateway-provisioned":
        reply = manager.is_gateway_device_provisioned()
        return reply, reply["provision_status"]
    if args.command == "provision-constrained":
        reply = manager.provision_constrained_device(
            args.client_id, args.device_type, args.licensee_id, args.fcap, args.parent_id,
        )
        return reply, reply["status"] in _SUCCESS
    if args.command == "is-constrained-provisioned":
        reply = manager.is_constrained_device_provisioned(args.client_id)
        return reply, reply["provision_status"]
    reply = manager.get_client_list()
    return reply, True


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args   = parser.parse_args(argv)
    if args.command == "provision-gateway" and not args.secret:
        parser.error("provision-gateway needs --secret or $FLOWDM_LICENSEE_SECRET")

    _configure_logging(args.logfile, args.verbosity)

    try:
        manager = DeviceManager.from_settings(Settings.from_env())
    except FlowDMError as e:
        logger.critical("Cannot start device manager: %s", e)
        return 1
    try:
        reply, ok = _dispatch(manager, args)
    finally:
        manager.close()

    print(json.dumps(reply))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
