"""zapdist CLI — command-line interface for the distribution engine.

Usage:
    python -m zapdist.cli info
    python -m zapdist.cli generate --contributions exports/snapshot.json
    python -m zapdist.cli estimate --address zil1... --contributions exports/snapshot.json
    python -m zapdist.cli data --distributor 0x... --epoch 3
    python -m zapdist.cli claimable --address zil1...
    python -m zapdist.cli verify-proof "<leaf> <sibling> ... <root>"
    python -m zapdist.cli anchor --distributor 0x... --epoch 3

Defaults come from the environment (and ``.env``); see zapdist.config.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from zapdist.config import Settings, load_distribution_configs
from zapdist.crypto.merkle import verify_proof
from zapdist.errors import BudgetExceededError, DistributionError
from zapdist.log import configure_logging
from zapdist.persistence.contributions import InMemoryContributions
from zapdist.persistence.distribution_store import DistributionStore
from zapdist.service import DistributionService, ServiceResult


DEFAULT_ENV_FILE = Path(".env")


def _make_service(args: argparse.Namespace, settings: Settings) -> DistributionService:
    """Create a DistributionService from CLI arguments and settings."""
    configs = load_distribution_configs(
        args.config_file or settings.config_file,
        args.network or settings.network,
        settings.address_hrp,
    )
    if getattr(args, "contributions", None) is not None:
        source = InMemoryContributions.from_json_file(args.contributions)
    else:
        source = InMemoryContributions()
    store = DistributionStore(args.database or settings.database_path)
    return DistributionService(
        configs,
        source,
        store,
        hrp=settings.address_hrp,
        run_generate=settings.run_generate,
    )


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_info(args: argparse.Namespace, settings: Settings) -> int:
    service = _make_service(args, settings)
    return _report(service.distribution_info(now=args.now))


def cmd_generate(args: argparse.Namespace, settings: Settings) -> int:
    service = _make_service(args, settings)
    return _report(service.generate_epochs(args.distributor, now=args.now))


def cmd_estimate(args: argparse.Namespace, settings: Settings) -> int:
    service = _make_service(args, settings)
    return _report(service.estimate_amounts(args.address, now=args.now))


def cmd_data(args: argparse.Namespace, settings: Settings) -> int:
    service = _make_service(args, settings)
    return _report(service.distribution_data(args.distributor, args.epoch))


def cmd_claimable(args: argparse.Namespace, settings: Settings) -> int:
    service = _make_service(args, settings)
    return _report(service.claimable_data(args.address))


def cmd_verify_proof(args: argparse.Namespace, settings: Settings) -> int:
    """Check a proof offline; no config or database needed."""
    try:
        valid = verify_proof(args.proof)
    except ValueError as exc:
        print(f"Failed: {exc}", file=sys.stderr)
        return 1
    print("valid" if valid else "invalid")
    return 0 if valid else 1


def cmd_anchor(args: argparse.Namespace, settings: Settings) -> int:
    service = _make_service(args, settings)
    return _report(service.anchor_root(
        args.distributor,
        args.epoch,
        rpc_url=settings.rpc_url,
        private_key=settings.private_key,
        chain_id=args.chain_id,
    ))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zapdist",
        description="zapdist — epoch reward distribution CLI",
    )
    parser.add_argument("--config-file", type=Path, help="Distribution YAML (default: $ZAPDIST_CONFIG_FILE)")
    parser.add_argument("--network", choices=["testnet", "mainnet"], help="Network section to load")
    parser.add_argument("--database", type=Path, help="SQLite file (default: $ZAPDIST_DATABASE_PATH)")
    parser.add_argument("--env-file", type=Path, default=DEFAULT_ENV_FILE, help="dotenv file (default: .env)")
    sub = parser.add_subparsers(dest="command")

    # info
    p_info = sub.add_parser("info", help="Show configured distributions and current epochs")
    p_info.add_argument("--now", type=int, help="Unix time to evaluate at (default: now)")

    # generate
    p_gen = sub.add_parser("generate", help="Generate the last completed epoch")
    p_gen.add_argument("--contributions", type=Path, help="Contribution snapshot JSON")
    p_gen.add_argument("--distributor", help="Only this distributor address")
    p_gen.add_argument("--now", type=int, help="Unix time to evaluate at (default: now)")

    # estimate
    p_est = sub.add_parser("estimate", help="Estimate current-epoch rewards for an address")
    p_est.add_argument("--address", required=True, help="bech32 or hex address")
    p_est.add_argument("--contributions", type=Path, help="Contribution snapshot JSON")
    p_est.add_argument("--now", type=int, help="Unix time to evaluate at (default: now)")

    # data
    p_data = sub.add_parser("data", help="Show the records of one generated epoch")
    p_data.add_argument("--distributor", required=True, help="Distributor address")
    p_data.add_argument("--epoch", required=True, type=int, help="Epoch number")

    # claimable
    p_claim = sub.add_parser("claimable", help="Show unclaimed rewards of an address")
    p_claim.add_argument("--address", required=True, help="bech32 or hex address")

    # verify-proof
    p_ver = sub.add_parser("verify-proof", help="Verify a space-separated hex proof")
    p_ver.add_argument("proof", help="Leaf hash first, root hash last")

    # anchor
    p_anc = sub.add_parser("anchor", help="Anchor an epoch root on Ethereum")
    p_anc.add_argument("--distributor", required=True, help="Distributor address")
    p_anc.add_argument("--epoch", required=True, type=int, help="Epoch number")
    p_anc.add_argument("--chain-id", type=int, default=11155111, help="Chain ID (default: Sepolia)")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "info": cmd_info,
        "generate": cmd_generate,
        "estimate": cmd_estimate,
        "data": cmd_data,
        "claimable": cmd_claimable,
        "verify-proof": cmd_verify_proof,
        "anchor": cmd_anchor,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        settings = Settings.from_env(args.env_file)
        configure_logging(settings.log_level)
        return handler(args, settings)
    except BudgetExceededError:
        raise
    except DistributionError as exc:
        print(f"Failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
