"""Command that decodes a binary Nexus-RV trace and prints its messages."""

from __future__ import annotations

import argparse
import errno
import io
import re
import sys
from contextlib import ExitStack

from .decoder import DEFAULT_BUFFER_SIZE, StreamDecoder
from .errors import NexusRvError
from .messages import MSG_MAX_BYTES, DencoderConfig
from .printer import format_msg

PROG = "nexusrv-dump"

# Chunk size used when skipping bytes of an unseekable stream.
_SKIP_CHUNK = 1 << 16


class _UsageError(Exception):
    """Raised by the argument parser instead of exiting."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise _UsageError(message)


def _parse_ulong(text: str) -> int:
    """Parse an unsigned integer with a C-style prefix (0x hex, 0 octal)."""
    text = text.strip()
    if re.fullmatch(r"0[0-7]+", text):
        return int(text, 8)
    value = int(text, 0)
    if value < 0:
        raise ValueError(f"negative value: {text}")
    return value


def _usage() -> str:
    return (
        f"{PROG}: Usage: \n"
        f"\t{PROG}: [OPTIONS...] <trace file> or - for stdin\n"
        "\n"
        "\t-h, --help       Display this help message\n"
        "\t-y, --sync       Synchronize before decoding\n"
        "\t-t, --timestamp  Enable timestamp\n"
        "\t-s, --srcbits    Bits of SRC field, default 0\n"
        f"\t-b, --buffersz   Buffer size (default {DEFAULT_BUFFER_SIZE})\n"
        "\t-r, --raw        Decode to raw binary\n"
    )


def _report(message: str) -> None:
    sys.stderr.write(f"{PROG}: {message}\n")


def seek_pipe(stream, skip: int) -> int:
    """Read and discard up to ``skip`` bytes; return how many were skipped."""
    skipped = 0
    while skipped < skip:
        chunk = min(_SKIP_CHUNK, skip - skipped)
        data = stream.read(chunk) or b""
        skipped += len(data)
        if len(data) < chunk:
            break
    return skipped


def seek_file(stream, offset: int) -> None:
    """Position ``stream`` at ``offset``, reading past bytes if it cannot seek.

    Raises OSError when seeking fails or the stream ends before ``offset``.
    """
    try:
        stream.seek(offset)
        return
    except io.UnsupportedOperation:
        pass
    except OSError as exc:
        if exc.errno != errno.ESPIPE:
            raise
    if seek_pipe(stream, offset) != offset:
        raise OSError("Short read of pipe")


def dump(cfg, out, stream, bufsz=DEFAULT_BUFFER_SIZE, synced=True, raw=False) -> int:
    """Decode every message of ``stream`` and write it to ``out``.

    In raw mode ``out`` is a binary stream and receives each message's raw
    record; otherwise it is a text stream and receives one line per message.
    A summary goes to standard error. Returns the number of messages.
    Decoding errors are raised after the summary is written.
    """
    msgid = 0
    decoded_bytes = 0
    stor_bytes = 0
    try:
        for msg, consumed in StreamDecoder(stream, cfg, bufsz, synced):
            decoded_bytes += consumed
            stor_bytes += msg.storage_size()
            if raw:
                out.write(msg.to_raw())
            else:
                out.write(f"Msg #{msgid} {format_msg(msg)}\n")
            msgid += 1
    finally:
        sys.stderr.write(
            f"\n Total: {msgid} Msg, Decoded {decoded_bytes} bytes,"
            f" Storage {stor_bytes} bytes\n"
        )
    return msgid


def _build_parser() -> _ArgumentParser:
    parser = _ArgumentParser(prog=PROG, add_help=False)
    parser.add_argument("-h", "--help", action="store_true")
    parser.add_argument("-y", "--sync", dest="synced", action="store_false")
    parser.add_argument("-t", "--timestamp", action="store_true")
    parser.add_argument("-s", "--srcbits", type=int, default=0)
    parser.add_argument("-b", "--buffersz", type=_parse_ulong, default=DEFAULT_BUFFER_SIZE)
    parser.add_argument("-r", "--raw", action="store_true")
    parser.add_argument("file", nargs="?")
    return parser


def main(argv=None) -> int:
    """Run the dump command; return the exit status."""
    try:
        args = _build_parser().parse_args(argv)
    except _UsageError as exc:
        _report(str(exc))
        return 1
    if args.help:
        sys.stderr.write(_usage())
        return 1
    if args.raw and sys.stdout.isatty():
        _report("refuse to dump raw data to tty")
        return 1
    if args.buffersz < MSG_MAX_BYTES:
        _report(f"Buffer size cannot be smaller than {MSG_MAX_BYTES}")
        return 1
    if args.file is None:
        _report("Insufficient arguments")
        return 1

    filename, sep, offset_text = args.file.partition(":")
    try:
        offset = _parse_ulong(offset_text) if sep else 0
    except ValueError:
        _report(f"Invalid offset {offset_text!r}")
        return 1

    cfg = DencoderConfig(src_bits=args.srcbits, has_timestamp=args.timestamp)
    with ExitStack() as stack:
        if filename == "-":
            stream = sys.stdin.buffer
        else:
            try:
                stream = stack.enter_context(open(filename, "rb"))
            except OSError as exc:
                _report(f"Failed to open file {filename}: {exc.strerror or exc}")
                return 1
        try:
            seek_file(stream, offset)
        except OSError as exc:
            _report(f"Failed to seek file: {exc}")
            return 1
        out = sys.stdout.buffer if args.raw else sys.stdout
        try:
            dump(cfg, out, stream, args.buffersz, args.synced, args.raw)
        except NexusRvError as exc:
            _report(f"Decoding failed: {exc}")
            return 1
        except OSError as exc:
            _report(f"Failed to write msg: {exc}")
            return 1
        out.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())