# =============================================================================
# tagmailer Command Line
# =============================================================================
# Builds and sends one message from command-line options, on top of the
# defaults in config.toml:
#
#   tagmailer --to ops@example.com --subject "Disk full" --body-file alert.txt
#   tagmailer --message newsletter --to list@example.com --attach issue.pdf
#
# Options map one-to-one onto the mail constructs, so the command line is
# also a quick way to try a configuration out.
#
# Exit codes:
#   0  accepted for delivery
#   1  validation errors, bad options or configuration
# =============================================================================

import argparse
import logging
import sys
from pathlib import Path

from tagmailer import __app_name__, __version__
from tagmailer.config import Config, ConfigError, print_paths
from tagmailer.core import MailerError
from tagmailer.message import AddRecipient, Attach, Body, Header, MailBuilder, Sender
from tagmailer.smtp import MailDispatcher

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog=__app_name__,
        description="tagmailer: build and send an e-mail",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--paths",
        action="store_true",
        help="Print configuration paths and exit",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (default: XDG config location)",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (verbose logging)",
    )

    # Recipients and envelope
    parser.add_argument("--to", action="append", default=[], help="Add a To address")
    parser.add_argument("--cc", action="append", default=[], help="Add a Cc address")
    parser.add_argument("--bcc", action="append", default=[], help="Add a Bcc address")
    parser.add_argument("--from", dest="from_address", help="From address")
    parser.add_argument("--reply-to", help="Reply-To address")
    parser.add_argument("--subject", help="Message subject")
    parser.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="NAME:VALUE",
        help="Add an extra header (repeatable)",
    )

    # Body
    body = parser.add_mutually_exclusive_group()
    body.add_argument("--body", help="Message body text")
    body.add_argument("--body-file", type=Path, help="Read the message body from a file")
    parser.add_argument("--html", action="store_true", help="Send the body as HTML")
    parser.add_argument("--charset", help="Body character set")

    # Attachments
    parser.add_argument(
        "--attach",
        action="append",
        default=[],
        metavar="PATH",
        help="Attach a file, relative to the document root (repeatable)",
    )
    parser.add_argument(
        "--attach-url",
        action="append",
        default=[],
        metavar="URL",
        help="Attach a resource fetched at delivery time (repeatable)",
    )

    # Transport
    parser.add_argument("--server", help="SMTP server for an ad-hoc session")
    parser.add_argument("--port", help="SMTP port for an ad-hoc session")
    parser.add_argument("--user", help="SMTP login name")
    parser.add_argument(
        "--authenticate",
        action="store_true",
        help="Log in before sending (password from config or keyring)",
    )
    parser.add_argument("--session", help="Send through a named session")
    parser.add_argument("--message", help="Send as a named message")

    return parser.parse_args(argv)


def build_mail(args: argparse.Namespace, config: Config) -> MailBuilder:
    """Fill a MailBuilder from the config defaults and the options."""
    mail = MailBuilder.from_config(config)

    if args.session:
        mail.set_session(args.session)
    if args.message:
        mail.set_mime_message(args.message)
    if args.user:
        mail.set_user(args.user)
    if args.authenticate:
        mail.set_authenticate(True)

    with mail:
        for kind in ("to", "cc", "bcc"):
            for address in getattr(args, kind):
                AddRecipient(mail, kind, address).close()

        if args.from_address:
            mail.reset_from(args.from_address)
        if args.reply_to:
            mail.reset_reply_to(args.reply_to)
        if args.subject is not None:
            mail.reset_subject(args.subject)
        if args.server:
            mail.reset_server(args.server)
        if args.port:
            mail.reset_port(args.port)

        for header in args.header:
            name, sep, value = header.partition(":")
            if not sep:
                raise ValueError(f"Header must be NAME:VALUE, got {header!r}")
            Header(mail, name.strip(), value.strip()).close()

        text = args.body
        if args.body_file:
            text = args.body_file.read_text()
        if text is not None:
            body_type = "html" if args.html else "text"
            Body(mail, type=body_type, charset=args.charset).close(text)

        for path in args.attach:
            Attach(mail, file=path).close()
        for url in args.attach_url:
            Attach(mail, url=url).close()

    return mail


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for tagmailer.

    This function:
        1. Parses command-line arguments
        2. Handles special commands (--paths, --version)
        3. Loads configuration
        4. Builds and sends the message, then waits for delivery

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Handle --paths flag
    if args.paths:
        print_paths()
        return 0

    try:
        config = Config.load(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    dispatcher = MailDispatcher()

    try:
        mail = build_mail(args, config)
        result = Sender(mail, dispatcher).send()
    except (MailerError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    if not result.accepted:
        cursor = result.cursor()
        while cursor.advance():
            print(cursor.current, file=sys.stderr)
        return 1

    print("Message accepted for delivery")

    # Delivery runs in the background; don't exit under it
    dispatcher.wait()
    return 0


if __name__ == "__main__":
    sys.exit(main())
