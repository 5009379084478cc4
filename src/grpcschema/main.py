import argparse
import sys

from grpcschema.constants import DEFAULT_TIMEOUT
from grpcschema.errors import SchemaError
from grpcschema.helper import helper
from grpcschema.models import services_to_json
from grpcschema.resolver import get_info


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grpcschema",
        description="Dump the schema of a gRPC server through server reflection as JSON.",
    )
    parser.add_argument("address", help="Server address, e.g. localhost:50051")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT,
                        help="Seconds to wait for the channel and for each reflection call")
    parser.add_argument("--ca-cert", dest="ca_certificate", help="PEM root certificates; enables TLS")
    parser.add_argument("--client-key", dest="client_key", help="PEM client private key (mutual TLS)")
    parser.add_argument("--client-cert", dest="client_certificate", help="PEM client certificate chain (mutual TLS)")
    parser.add_argument("--bearer-token", dest="bearer_token", help="Send 'authorization: Bearer <token>'")
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation")
    parser.add_argument("--log-to-console", action="store_true", help="Echo the function log to stderr")
    return parser


def run(argv=None) -> int:
    args = build_parser().parse_args(argv)
    helper(log_to_console=args.log_to_console)

    creds = {
        key: getattr(args, key)
        for key in ("ca_certificate", "client_key", "client_certificate")
        if getattr(args, key)
    }
    auth = {"auth_type": "bearer_token", "token": args.bearer_token} if args.bearer_token else None

    try:
        services = get_info(args.address, creds=creds, auth=auth, timeout=args.timeout)
    except (SchemaError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(services_to_json(services, indent=args.indent))
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
