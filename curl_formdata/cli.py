import argparse
import asyncio
import sys

from .errors import FormDataError, TransportError
from .requests import AsyncSession


def parse_form_arg(value: str) -> tuple[str, str, bool]:
    """Parse a curl style ``-F`` argument.

    ``name=value`` is a field, ``name=@path`` is a file
    uploaded under ``name``.

    Returns:
        (name, value or path, is_file)
    """
    name, sep, rest = value.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected name=value or name=@file, got {value!r}")
    if rest.startswith("@"):
        return name, rest[1:], True
    return name, rest, False


def parse_header_arg(value: str) -> tuple[str, str]:
    name, sep, rest = value.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected 'Name: value', got {value!r}")
    return name.strip(), rest.strip()


async def run(args) -> int:
    async with AsyncSession(
        impersonate=args.impersonate, verify=not args.insecure, debug=args.verbose
    ) as s:
        method = args.request or ("POST" if args.form else "GET")
        req = s.build(method, args.url, headers=args.header)
        for name, value, is_file in args.form:
            if is_file:
                req.attach(value, name)
            else:
                req.field(name, value)
        r = await req.end()
        sys.stdout.write(r.text)
        return 0 if r.ok or not args.fail else 22


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="curl-formdata",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        description="A curl-like tool to send multipart/form-data requests",
    )
    parser.add_argument("-X", "--request", help="HTTP method, POST if any -F is given")
    parser.add_argument(
        "-F",
        "--form",
        action="append",
        default=[],
        type=parse_form_arg,
        help="form field name=value, or file name=@path",
    )
    parser.add_argument(
        "-H", "--header", action="append", default=[], type=parse_header_arg,
        help="extra header, 'Name: value'",
    )
    parser.add_argument("-i", "--impersonate", default=None, help="Browser to impersonate")
    parser.add_argument("-k", "--insecure", action="store_true", help="Skip cert verification")
    parser.add_argument("-f", "--fail", action="store_true", help="Exit 22 on HTTP errors")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print the request body")
    parser.add_argument("url", help="URL to send the form to")

    args = parser.parse_args(argv)

    try:
        code = asyncio.run(run(args))
    except (FormDataError, TransportError) as e:
        print(f"Error sending to {args.url}: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
