"""Command-line entry point: genomicdao-deploy."""

import argparse
import logging
import sys
from typing import List, Optional

from .config import load_config
from .constants import DEFAULT_NETWORK, NETWORK_CONFIG
from .deployments import run_deployment
from .exceptions import ConfigurationError, LedgerError
from .types import PlanResult, StepEvent
from .verifier import summarize


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="genomicdao-deploy",
        description=(
            "Deploy GeneNFT, PostCovidStrokePrevention and Controller, "
            "then hand ownership of both tokens to the Controller."
        ),
    )
    parser.add_argument("--network", default=DEFAULT_NETWORK, choices=sorted(NETWORK_CONFIG))
    parser.add_argument("--rpc-url", help="override the network's RPC endpoint")
    parser.add_argument("--artifacts-dir", help="hardhat artifacts directory")
    parser.add_argument("--output", help="deployment record path")
    parser.add_argument("--timeout", type=float, help="seconds to wait for each confirmation")
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="fail when post-deployment verification finds a mismatch",
    )
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="deploy independent contracts concurrently",
    )
    parser.add_argument("--no-record", action="store_true", help="do not write a deployment record")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _print_event(event: StepEvent) -> None:
    if event.status == "started":
        return
    line = f"[{event.status}] {event.kind} {event.step}"
    if event.address:
        line += f" {event.address}"
    if event.error:
        line += f": {event.error}"
    print(line)


def _print_summary(result: PlanResult) -> None:
    if result.ok:
        print("Deployment complete.")
        for name, contract in result.deployed.items():
            print(f"  {contract.artifact:<28} {contract.address}  ({name})")
    else:
        print(f"Deployment failed at step '{result.failed_step}'.", file=sys.stderr)
        for message in result.error_chain():
            print(f"  caused by {message}", file=sys.stderr)
        transaction_hash = getattr(result.error, "transaction_hash", None)
        if transaction_hash:
            print(f"  transaction: {transaction_hash}", file=sys.stderr)
        if result.deployed:
            print("Confirmed before the failure:", file=sys.stderr)
            for name, contract in result.deployed.items():
                print(f"  {name}: {contract.address}", file=sys.stderr)
            for name, transfer in result.transfers.items():
                print(f"  {name}: {transfer.transaction_hash}", file=sys.stderr)

    if result.verification is not None:
        counts = summarize(result.verification)
        print(f"Verification: {counts['passed']}/{counts['checks']} checks passed")
        for check in result.verification.mismatches():
            print(f"  mismatch: {check}")


def main(argv: Optional[List[str]] = None) -> int:
    """Run the deployment; returns the process exit status."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(
            network=args.network,
            rpc_url=args.rpc_url,
            artifacts_dir=args.artifacts_dir,
            record_path=args.output,
            confirmation_timeout=args.timeout,
            strict_verification=args.strict,
            max_workers=2 if args.parallel else 1,
        )
        result = run_deployment(config, on_event=_print_event, save_record=not args.no_record)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except LedgerError as e:
        print(f"Network error before deployment: {e}", file=sys.stderr)
        return 1

    _print_summary(result)
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
