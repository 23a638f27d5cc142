import argparse
import json
import logging
from logging.handlers import RotatingFileHandler

from . import config, services
from .chain import FullnodeClient
from .db import init_db
from .errors import DidMoveError
from .transactions import ConfirmationPolicy, TransactionBuilder


def configure_logging():
    # root logger with rotating file handler
    logdir = config.get_log_dir()
    logdir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(str(logdir / 'didmove.log'), maxBytes=5_000_000, backupCount=5)
    handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s'))
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(handler)


def build_parser():
    parser = argparse.ArgumentParser(prog='didmove')
    sub = parser.add_subparsers(dest='cmd')
    webp = sub.add_parser('web')
    webp.add_argument('--host', default='127.0.0.1')
    webp.add_argument('--port', type=int, default=8000)
    sub.add_parser('acct-gen')
    infop = sub.add_parser('acct-info')
    infop.add_argument('addr')
    balp = sub.add_parser('balance')
    balp.add_argument('addr')
    didp = sub.add_parser('did-init')
    didp.add_argument('addr')
    didp.add_argument('type', help='0=Human 1=Organization 2=AI Agent 3=Smart Contract')
    didp.add_argument('description')
    svcp = sub.add_parser('register-service')
    svcp.add_argument('addr')
    svcp.add_argument('name')
    svcp.add_argument('description')
    svcp.add_argument('--url')
    svcp.add_argument('--verification-url', default='')
    svcp.add_argument('--spec-fields', default='')
    svcp.add_argument('--expired-at', type=int, default=0)
    recp = sub.add_parser('records')
    recp.add_argument('addr')
    return parser


def run(args):
    if args.cmd == 'web':
        from .api import app
        app.run(host=args.host, port=args.port)
        return None
    store = init_db(config.get_db_path())
    client = FullnodeClient(config.get_node_url())
    builder = TransactionBuilder(client, ConfirmationPolicy(**config.get_confirm_settings()))
    if args.cmd == 'acct-gen':
        return services.generate_account(store)
    if args.cmd == 'acct-info':
        return services.account_info(store, args.addr, config.get_network())
    if args.cmd == 'balance':
        return client.balance(args.addr)
    if args.cmd == 'did-init':
        return services.init_did(store, builder, config.get_module_address(), args.addr, args.type, args.description)
    if args.cmd == 'register-service':
        return services.register_service(
            store, builder, config.get_module_address(), config.get_service_base_url(),
            args.addr, args.name, args.description, url=args.url,
            verification_url=args.verification_url, spec_fields=args.spec_fields, expired_at=args.expired_at)
    if args.cmd == 'records':
        return services.list_records(store, args.addr)
    return None


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.cmd:
        parser.print_help()
        return 2
    configure_logging()
    try:
        result = run(args)
    except DidMoveError as e:
        print(f'error ({e.kind}): {e.message}')
        return 1
    if result is not None:
        print(json.dumps(result, indent=2))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
