"""Parsing of the human readable message form back into messages."""

from __future__ import annotations

import re

from .errors import ErrorCode, NexusRvError
from .messages import Message, Tcode

_HEX_FIELDS = frozenset({"timestamp", "context", "ecode", "uaddr", "faddr", "hist", "rdata"})

_BODY_FIELDS = {
    Tcode.OWNERSHIP: ("format", "prv", "v", "context"),
    Tcode.ERROR: ("etype", "ecode"),
    Tcode.DIRBR: ("icnt",),
    Tcode.INDIRBR: ("icnt", "btype", "uaddr"),
    Tcode.PROG_SYNC: ("icnt", "sync", "faddr"),
    Tcode.DIRBR_SYNC: ("icnt", "sync", "faddr"),
    Tcode.INDIRBR_SYNC: ("icnt", "sync", "btype", "faddr"),
    Tcode.INDIRBR_HIST: ("icnt", "btype", "uaddr", "hist"),
    Tcode.INDIRBR_HIST_SYNC: ("icnt", "sync", "btype", "faddr", "hist"),
    Tcode.REPEAT_BR: ("hrepeat",),
    Tcode.PROG_CORR: ("evcode", "icnt", "hist"),
}

_RESOURCE_FULL_FIELDS = {
    0: ("icnt",),
    1: ("hist",),
    2: ("hist", "hrepeat"),
}

_LABELS = {"source": "Src", "timestamp": "Time", "tcode": "TCODE"}


def _pattern(field: str) -> re.Pattern:
    label = re.escape(_LABELS.get(field, field.upper()))
    if field in _HEX_FIELDS:
        return re.compile(rf"\s*{label}=0x\s*([+-]?(?:0[xX])?[0-9a-fA-F]+)")
    return re.compile(rf"\s*{label}=\s*([+-]?[0-9]+)")


_PATTERNS = {
    field: _pattern(field)
    for field in (
        "source", "timestamp", "tcode", "format", "prv", "v", "context",
        "etype", "ecode", "icnt", "btype", "uaddr", "sync", "faddr",
        "hist", "rcode", "rdata", "hrepeat", "evcode",
    )
}


class _Scanner:
    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def field(self, name: str) -> int:
        match = _PATTERNS[name].match(self._text, self._pos)
        if match is None:
            raise NexusRvError(ErrorCode.MSG_MISSING_FIELD)
        self._pos = match.end()
        return int(match.group(1), 16 if name in _HEX_FIELDS else 10)

    def rest(self) -> str:
        return self._text[self._pos:]


def parse_msg(text: str) -> Message:
    """Parse the text form of a message, starting at its ``Src=`` field.

    Raises NexusRvError with MSG_MISSING_FIELD when a field is absent or
    malformed, MSG_UNSUPPORTED for a type that has no text form, and
    MSG_INVALID when unexpected text follows the last field.
    """
    scanner = _Scanner(text)
    source = scanner.field("source")
    timestamp = scanner.field("timestamp")
    tcode = scanner.field("tcode")
    msg = Message(tcode=tcode, source=source, timestamp=timestamp)

    if msg.tcode == Tcode.RESOURCE_FULL:
        msg.rcode = scanner.field("rcode")
        fields = _RESOURCE_FULL_FIELDS.get(msg.rcode, ("rdata",))
    elif msg.tcode in _BODY_FIELDS:
        fields = _BODY_FIELDS[msg.tcode]
    else:
        raise NexusRvError(ErrorCode.MSG_UNSUPPORTED)

    for name in fields:
        setattr(msg, name, scanner.field(name))

    if scanner.rest().strip():
        raise NexusRvError(ErrorCode.MSG_INVALID, "unexpected text after message")
    return msg


def read_msg(fp) -> Message:
    """Read one line from ``fp`` and parse it with parse_msg."""
    line = fp.readline()
    if not line:
        raise NexusRvError(ErrorCode.MSG_MISSING_FIELD)
    return parse_msg(line)