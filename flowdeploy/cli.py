"""
Command line interface.

    flowdeploy --network mumbai deploy --tags all
    flowdeploy --network mumbai create-flow RECEIVER fDAIx 1000000000000
    flowdeploy --network mumbai deployments
"""
import argparse
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv
from web3 import Web3

from .artifacts import ArtifactRegistry
from .config import NetworkConfig
from .deployments import DEFAULT_REQUESTS, bind, load_plan, named_accounts
from .exceptions import (
    ConfirmationTimeout,
    FlowDeployError,
    InvalidFlowRate,
    SubmissionRejected,
    UnknownSuperToken,
)
from .executor import DeploymentExecutor
from .flows import FlowOperationBuilder
from .ledger import DeploymentLedger
from .models import FlowKind, FlowOperationSpec
from .resolver import ALL_TAG, resolve
from .signer import LocalSigner
from .submitter import TransactionSubmitter
from .version import __version__

logger = logging.getLogger("flowdeploy")

GUIDANCE = {
    ConfirmationTimeout: (
        "The transaction was broadcast and may still be mined. Check its hash "
        "before retrying; resubmitting now could execute it twice."
    ),
    SubmissionRejected: (
        "Nothing was broadcast. Fix the cause (inputs, balance, nonce) and re-run."
    ),
}


def _connect(network: str, rpc_url: Optional[str]) -> Web3:
    """
    Connect to the network's RPC endpoint and check the chain id.

    Raises:
        ValueError: If the node reports a different chain than configured
    """
    url = NetworkConfig.get_rpc_url(network, override=rpc_url)
    w3 = Web3(Web3.HTTPProvider(url))
    expected = NetworkConfig.get_chain_id(network)
    actual = w3.eth.chain_id
    if actual != expected:
        raise ValueError(f"Chain ID mismatch for '{network}': expected {expected}, node reports {actual}")
    logger.debug(f"Connected to {network} (chain {actual})")
    return w3


def _make_submitter(args: argparse.Namespace, signer: Optional[LocalSigner] = None) -> TransactionSubmitter:
    signer = signer or LocalSigner.from_env("PRIVATE_KEY")
    w3 = _connect(args.network, args.rpc_url)
    return TransactionSubmitter(
        w3, signer, timeout=args.timeout, poll_interval=args.poll_interval
    )


def _parse_tags(text: str) -> List[str]:
    tags = [tag.strip() for tag in text.split(",") if tag.strip()]
    return tags or [ALL_TAG]


def cmd_deploy(args: argparse.Namespace) -> int:
    registry = ArtifactRegistry.from_source(
        args.artifacts or os.environ.get("FLOWDEPLOY_ARTIFACTS_DIR", "artifacts")
    )
    requests = load_plan(args.plan) if args.plan else DEFAULT_REQUESTS
    submitter = _make_submitter(args)
    accounts = named_accounts(submitter.address, os.environ.get("OWNER_ADDRESS"))

    bound = bind(requests, args.network, accounts)
    ordered = resolve(_parse_tags(args.tags), bound, registry)
    executor = DeploymentExecutor(registry, DeploymentLedger(args.ledger), submitter, args.network)

    if args.dry_run:
        for step in executor.plan(ordered):
            target = step.address or "(new address)"
            print(f"{step.action:<7} {step.name}: {target}")
        return 0

    for record in executor.apply(ordered):
        url = NetworkConfig.get_address_url(args.network, record.address)
        print(f"{record.name}: {record.address}" + (f" {url}" if url else ""))
    return 0


def _resolve_token(network: str, token: str):
    """Accept a super token symbol or address; returns (address, expected symbol)"""
    if Web3.is_address(token):
        return token, None
    entry = NetworkConfig.get_super_token(network, token)
    if entry is None:
        raise UnknownSuperToken(token, network)
    return entry["address"], token


def _parse_flow_rate(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise InvalidFlowRate(text, "must be an integer amount of wei per second") from None


def cmd_flow(args: argparse.Namespace) -> int:
    kind = FlowKind(args.kind)
    token_address, symbol = _resolve_token(args.network, args.token)
    flow_rate = _parse_flow_rate(args.flow_rate) if kind != FlowKind.DELETE else 0
    builder = FlowOperationBuilder.from_network(args.network)
    signer = LocalSigner.from_env("PRIVATE_KEY")

    spec = FlowOperationSpec(
        kind=kind,
        sender=signer.address,
        receiver=args.receiver,
        token_address=token_address,
        flow_rate=flow_rate,
        expected_super_token=symbol,
    )
    # Inputs are validated before touching the node
    intent = builder.build(spec)
    receipt = _make_submitter(args, signer).submit(intent)
    url = NetworkConfig.get_tx_url(args.network, receipt.transaction_hash)
    print(f"Transaction: {receipt.transaction_hash}" + (f" {url}" if url else ""))
    if not receipt.succeeded:
        print(f"Transaction reverted in block {receipt.block_number}", file=sys.stderr)
        return 1
    print(f"{kind.value.capitalize()}d flow in block {receipt.block_number}")
    return 0


def cmd_deployments(args: argparse.Namespace) -> int:
    records = DeploymentLedger(args.ledger).records(args.network)
    if not records:
        print(f"No deployments recorded for {args.network}")
        return 0
    for record in records:
        url = NetworkConfig.get_address_url(args.network, record.address)
        print(f"{record.name}: {record.address} (block {record.block_number})" + (f" {url}" if url else ""))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowdeploy",
        description="Deploy contracts and manage Superfluid flows.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--network", default="mumbai", help="Network name (default: mumbai)")
    parser.add_argument("--rpc-url", help="RPC endpoint overriding configuration and environment")
    parser.add_argument("--timeout", type=float, default=120, help="Seconds to wait for confirmation")
    parser.add_argument("--poll-interval", type=float, default=1.0, help="Seconds between receipt polls")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy = subparsers.add_parser("deploy", help="Deploy tagged contracts")
    deploy.add_argument("--tags", default=ALL_TAG, help="Comma separated tags (default: all)")
    deploy.add_argument("--plan", help="JSON deployment plan (default: built-in contracts)")
    deploy.add_argument("--artifacts", help="Hardhat artifacts directory")
    deploy.add_argument("--ledger", help="Deployment ledger file")
    deploy.add_argument("--dry-run", action="store_true", help="Show what would be deployed")
    deploy.set_defaults(func=cmd_deploy)

    for kind in FlowKind:
        flow = subparsers.add_parser(f"{kind.value}-flow", help=f"{kind.value.capitalize()} a flow")
        flow.add_argument("receiver", help="Receiver address")
        flow.add_argument("token", help="Super token symbol or address")
        if kind != FlowKind.DELETE:
            flow.add_argument("flow_rate", help="Flow rate in wei per second")
        flow.set_defaults(func=cmd_flow, kind=kind.value)

    listing = subparsers.add_parser("deployments", help="List recorded deployments")
    listing.add_argument("--ledger", help="Deployment ledger file")
    listing.set_defaults(func=cmd_deployments)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except FlowDeployError as e:
        print(f"{e.kind}: {e}", file=sys.stderr)
        for error_type, hint in GUIDANCE.items():
            if isinstance(e, error_type):
                print(hint, file=sys.stderr)
        return 1
    except (ValueError, OSError) as e:
        if args.debug:
            logger.exception("Command failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
