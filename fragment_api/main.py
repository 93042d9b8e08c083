import asyncio
import argparse
import json
import signal
from typing import Optional

from .services import FragmentAPIClient, CancelToken
from .models import PayerCredentials, ProductKind, VerificationMode, RemoteOutcome
from .utils.logger import logger, setup_logging
from .config import settings
from .exceptions import ConfigError, FragmentAPIError


PRODUCTS = {
    'stars': ProductKind.STARS,
    'premium': ProductKind.PREMIUM,
    'ton': ProductKind.TON,
}


def _print(data):
    if isinstance(data, RemoteOutcome):
        data = data.raw or {
            'success': data.success,
            'order_id': data.order_id,
            'error_code': data.error_code,
            'message': data.message
        }
    print(json.dumps(data, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fragment API client: buy Telegram Stars, Premium and TON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fragment_api ping
  python -m fragment_api balance --wallet-type v5r1
  python -m fragment_api buy stars durov 100
  python -m fragment_api buy premium durov 3 --without-kyc
  python -m fragment_api check stars 6f1c...
        """
    )
    parser.add_argument("--auth-key", help="Auth key to use instead of seed/cookies")
    parser.add_argument("--wallet-type", choices=["v4r2", "v5r1"], help="Wallet contract version")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("ping", help="Check API liveness")
    commands.add_parser("balance", help="Show wallet balance")
    commands.add_parser("auth", help="Issue an auth key from configured cookies and seed")

    user_info = commands.add_parser("user-info", help="Look up a Telegram user")
    user_info.add_argument("username")

    orders = commands.add_parser("orders", help="Show order history")
    orders.add_argument("--limit", type=int, default=10)
    orders.add_argument("--offset", type=int, default=0)

    buy = commands.add_parser("buy", help="Buy Stars, Premium or TON")
    buy.add_argument("product", choices=sorted(PRODUCTS))
    buy.add_argument("username")
    buy.add_argument("quantity", type=int, nargs="?", help="Amount (stars/ton) or months (premium)")
    buy.add_argument("--without-kyc", action="store_true", help="Use the flow without KYC")
    buy.add_argument("--show-sender", action="store_true", help="Reveal sender to the recipient")
    buy.add_argument("--timeout", type=float, help="Give up waiting after this many seconds")

    check = commands.add_parser("check", help="Check an order's status")
    check.add_argument("product", choices=sorted(PRODUCTS))
    check.add_argument("order_id")
    check.add_argument("--without-kyc", action="store_true")

    return parser


async def run(args: argparse.Namespace, cancel: Optional[CancelToken] = None):
    async with FragmentAPIClient(auth_key=args.auth_key) as client:
        if args.command == "ping":
            _print(await client.ping())
        elif args.command == "balance":
            _print(await client.get_balance(wallet_type=args.wallet_type, auth_key=args.auth_key))
        elif args.command == "auth":
            _print({'auth_key': await client.create_auth_key()})
        elif args.command == "user-info":
            _print(await client.get_user_info(args.username))
        elif args.command == "orders":
            _print(await client.get_orders(limit=args.limit, offset=args.offset))
        elif args.command == "check":
            mode = VerificationMode.WITHOUT_KYC if args.without_kyc else VerificationMode.STANDARD
            _print(await client.get_order_status(PRODUCTS[args.product], args.order_id, mode))
        elif args.command == "buy":
            mode = VerificationMode.WITHOUT_KYC if args.without_kyc else VerificationMode.STANDARD
            outcome = await client.buy(
                PRODUCTS[args.product],
                mode,
                args.username,
                args.quantity,
                PayerCredentials(auth_key=args.auth_key),
                args.wallet_type,
                args.show_sender,
                None,
                cancel
            )
            if outcome.is_timeout:
                logger.warning(f"⏳ Order {outcome.order_id} still processing, check it later")
            elif outcome.success:
                logger.info(f"✅ Order {outcome.order_id} finished: {outcome.status.value if outcome.status else 'ok'}")
            else:
                logger.error(f"❌ Order {outcome.order_id} failed: {outcome.error_code} {outcome.message}")
            _print(outcome)


async def main():
    args = build_parser().parse_args()
    setup_logging()

    try:
        settings.validate()
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        logger.info("Please check your environment variables")
        return

    cancel = CancelToken(timeout=getattr(args, 'timeout', None))

    def signal_handler():
        logger.info("Received shutdown signal, cancelling at next wait")
        cancel.cancel()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await run(args, cancel)
    except FragmentAPIError as e:
        logger.error(f"{type(e).__name__}: {e}")


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
