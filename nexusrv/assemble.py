"""Command that turns the text form of Nexus-RV messages into wire bytes."""

from __future__ import annotations

import argparse
import io
import re
import sys
from contextlib import ExitStack

from .encoder import encode_msg
from .errors import NexusRvError
from .messages import MSG_MAX_BYTES, DencoderConfig
from .reader import parse_msg

PROG = "nexusrv-assemble"

_PREFIX = re.compile(r"\s*Msg\s*#\s*(\d+)\s*(\S+)")


class _UsageError(Exception):
    """Raised by the argument parser instead of exiting."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise _UsageError(message)


def _usage() -> str:
    return (
        f"{PROG}: Usage: \n"
        f"\t{PROG}: [OPTIONS...] [<output trace file> or stdout if not specified] \n"
        "\n"
        "\t-h, --help       Display this help message\n"
        "\t-t, --timestamp  Enable timestamp\n"
        "\t-s, --srcbits    Bits of SRC field, default 0\n"
        "\t-x, --text       Text mode\n"
    )


def _report(message: str) -> None:
    sys.stderr.write(f"{PROG}: {message}\n")


def assemble(cfg, inp, out, text=False) -> int:
    """Encode every "Msg #N <Type> ..." line of ``inp`` and write it to ``out``.

    In text mode ``out`` is a text stream and gets one "[len] xx xx ..." line
    per message; otherwise it is a binary stream and gets the wire bytes.
    Returns the number of bytes emitted. Raises ValueError for a line without
    the message prefix and NexusRvError when a message cannot be parsed or
    encoded.
    """
    msgid = 0
    emitted = 0
    for line in inp:
        if not line.strip():
            continue
        match = _PREFIX.match(line)
        if match is None:
            raise ValueError("Unexpected msg prefix")
        msgid = int(match.group(1))
        msg = parse_msg(line[match.end():])
        encoded = encode_msg(cfg, msg, MSG_MAX_BYTES)
        emitted += len(encoded)
        if text:
            out.write(f"[{len(encoded)}]" + "".join(f" {b:02x}" for b in encoded) + "\n")
        else:
            out.write(encoded)
    sys.stderr.write(f"\n Last Msg {msgid}, Emitted {emitted} bytes\n")
    return emitted


def _build_parser() -> _ArgumentParser:
    parser = _ArgumentParser(prog=PROG, add_help=False)
    parser.add_argument("-h", "--help", action="store_true")
    parser.add_argument("-x", "--text", action="store_true")
    parser.add_argument("-t", "--timestamp", action="store_true")
    parser.add_argument("-s", "--srcbits", type=int, default=0)
    parser.add_argument("output", nargs="?")
    return parser


def main(argv=None) -> int:
    """Run the assemble command; return the exit status."""
    try:
        args = _build_parser().parse_args(argv)
    except _UsageError as exc:
        _report(str(exc))
        return 1
    if args.help:
        sys.stderr.write(_usage())
        return 1

    cfg = DencoderConfig(src_bits=args.srcbits, has_timestamp=args.timestamp)
    text = args.text
    with ExitStack() as stack:
        try:
            if args.output is None:
                binary = sys.stdout.buffer
            else:
                binary = stack.enter_context(open(args.output, "wb"))
        except OSError as exc:
            _report(f"Failed to open output: {exc.strerror or exc}")
            return 1
        if binary.isatty():
            _report("Output to tty, forcing text mode")
            text = True
        if not text:
            out = binary
        elif args.output is None:
            out = sys.stdout
        else:
            out = stack.enter_context(
                io.TextIOWrapper(binary, encoding="ascii", newline="\n")
            )
        try:
            assemble(cfg, sys.stdin, out, text)
            out.flush()
        except ValueError as exc:
            _report(str(exc))
            return 1
        except NexusRvError as exc:
            _report(f"Failed to parse msg: {exc}")
            return 1
        except OSError as exc:
            _report(f"Failed to write msg: {exc}")
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())