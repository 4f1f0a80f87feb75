"""Command line entry point for the onramp demo.

    onramp-demo checkout --address 0x... --network base --asset USDC --observe
    onramp-demo status user_1718000000000
    onramp-demo webhook-server
    onramp-demo webhooks list
"""

import argparse
import logging
import sys

from src.config import OnrampConfig, load_config
from src.errors import ConfigurationError, OnrampError, TransportError
from src.models.observation import StatusOutcome
from src.models.session import SessionTokenRequest
from src.onramp.checkout import CheckoutParams, build_checkout_url
from src.onramp.client import OnrampClient
from src.status import ObservationLog, build_status_observer
from src.utils.tracking import new_partner_user_id
from src.webhook_receiver.server import OnrampWebhookServer

logger = logging.getLogger(__name__)

SAMPLE_WALLET = "0x1234567890123456789012345678901234567890"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="onramp-demo", description="Coinbase Onramp demo client")
    parser.add_argument("--env-file", help="path to a .env file (default: search from cwd)")
    sub = parser.add_subparsers(dest="command", required=True)

    checkout = sub.add_parser("checkout", help="create a session token and checkout URL")
    checkout.add_argument("--address", default=SAMPLE_WALLET)
    checkout.add_argument("--network", action="append", dest="networks")
    checkout.add_argument("--asset", action="append", dest="assets")
    checkout.add_argument("--default-network")
    checkout.add_argument("--default-asset")
    amount = checkout.add_mutually_exclusive_group()
    amount.add_argument("--fiat-amount", type=float, default=None)
    amount.add_argument("--crypto-amount", type=float, default=None)
    checkout.add_argument("--currency", default="USD")
    checkout.add_argument("--experience", choices=["buy", "send"], default="buy")
    checkout.add_argument("--payment-method")
    checkout.add_argument("--redirect-url", default="https://example.com/success")
    checkout.add_argument("--partner-name")
    checkout.add_argument("--partner-user-id", help="tracking id (default: user_<epoch ms>)")
    checkout.add_argument("--observe", action="store_true", help="watch the transaction status afterwards")

    status = sub.add_parser("status", help="observe the status of a tracking id")
    status.add_argument("partner_user_id")

    sub.add_parser("webhook-server", help="run the webhook receiver in the foreground")

    webhooks = sub.add_parser("webhooks", help="manage provider webhook registrations")
    actions = webhooks.add_subparsers(dest="action", required=True)
    actions.add_parser("list")
    create = actions.add_parser("create")
    create.add_argument("notification_uri")
    create.add_argument("--signature-header", default="X-Webhook-Signature")
    delete = actions.add_parser("delete")
    delete.add_argument("webhook_id")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(dotenv_path=args.env_file)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "checkout": cmd_checkout,
        "status": cmd_status,
        "webhook-server": cmd_webhook_server,
        "webhooks": cmd_webhooks,
    }
    try:
        return commands[args.command](args, config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except OnrampError as e:
        logger.error("Error in onramp demo: %s", e)
        return 1


def cmd_checkout(args, config: OnrampConfig) -> int:
    partner_user_id = args.partner_user_id or new_partner_user_id()
    networks = args.networks or ["ethereum", "base"]
    assets = args.assets or ["ETH", "USDC"]
    fiat_amount = args.fiat_amount
    if fiat_amount is None and args.crypto_amount is None:
        fiat_amount = 100

    with OnrampClient.from_config(config) as client:
        token = client.create_session_token(
            SessionTokenRequest.for_address(args.address, networks, assets)
        )
        params = CheckoutParams.from_session(
            token,
            default_network=args.default_network or networks[0],
            default_asset=args.default_asset or assets[0],
            preset_crypto_amount=args.crypto_amount,
            preset_fiat_amount=fiat_amount,
            default_experience=args.experience,
            default_payment_method=args.payment_method,
            fiat_currency=args.currency,
            partner_user_id=partner_user_id,
            redirect_url=args.redirect_url,
            end_partner_name=args.partner_name,
        )
        url = build_checkout_url(params, base_url=config.pay_base_url)

        print(f"Partner user id: {partner_user_id}")
        print(f"Onramp URL: {url}")

        if args.observe:
            _print_outcome(observe_status(config, client, partner_user_id))
    return 0


def cmd_status(args, config: OnrampConfig) -> int:
    with OnrampClient.from_config(config) as client:
        outcome = observe_status(config, client, args.partner_user_id)
    _print_outcome(outcome)
    return 0


def cmd_webhook_server(args, config: OnrampConfig) -> int:
    server = OnrampWebhookServer.from_config(config)
    if not config.webhook_signature_secret:
        logger.warning("WEBHOOK_SIGNATURE_SECRET not set: webhook signatures are not verified")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Webhook server stopped")
    return 0


def cmd_webhooks(args, config: OnrampConfig) -> int:
    with OnrampClient.from_config(config) as client:
        try:
            if args.action == "list":
                webhooks = client.list_webhooks()
                if not webhooks:
                    print("No existing webhooks found")
                for webhook in webhooks:
                    print(f"{webhook.id}\t{webhook.notification_uri}\t{webhook.event_type}")
            elif args.action == "create":
                webhook = client.create_webhook(args.notification_uri, args.signature_header)
                print(f"Created webhook {webhook.id} -> {webhook.notification_uri}")
            elif args.action == "delete":
                client.delete_webhook(args.webhook_id)
                print(f"Deleted webhook {args.webhook_id}")
        except TransportError as e:
            if e.is_not_found:
                print("Webhook endpoints returned 404: they are not available for this account yet.")
            raise
    return 0


def observe_status(config: OnrampConfig, client: OnrampClient, partner_user_id: str) -> StatusOutcome:
    if config.status_strategy == "webhook":
        log = ObservationLog()
        with OnrampWebhookServer.from_config(config, observation_log=log):
            return build_status_observer(config, client, log).observe(partner_user_id)
    return build_status_observer(config, client).observe(partner_user_id)


def _print_outcome(outcome: StatusOutcome) -> None:
    status = outcome.final_status.value if outcome.final_status else "no transaction yet"
    print(f"Status via {outcome.source} after {outcome.attempts} observation(s): {status}")


if __name__ == "__main__":
    sys.exit(main())
