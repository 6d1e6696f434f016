"""Nexus-RV message model, field widths and wire-protocol constants."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

# Each wire byte holds 2 bits of MSEO (low) and 6 bits of MDO (high).
MSEO_BITS = 2
MDO_BITS = 6

MSG_MAX_BYTES = 38

BITS_TCODE = 6
BITS_ADDR_SYNC = 4
BITS_ADDR_BTYPE = 2
BITS_ETYPE = 4
BITS_EVCODE = 4
BITS_CDF = 2
BITS_RCODE = 4
BITS_OWNERSHIP_FMT = 2
BITS_OWNERSHIP_PRV = 2
BITS_OWNERSHIP_V = 1

# Storage width of each message field; values are truncated to it.
FIELD_BITS = {
    "tcode": 6,
    "source": 10,
    "timestamp": 54,
    "format": 2,
    "prv": 2,
    "v": 1,
    "context": 64,
    "etype": 4,
    "ecode": 32,
    "icnt": 22,
    "btype": 2,
    "uaddr": 58,
    "sync": 4,
    "faddr": 58,
    "hist": 32,
    "rcode": 4,
    "rdata": 32,
    "hrepeat": 18,
    "evcode": 4,
}


class Tcode(IntEnum):
    """Message type codes."""

    OWNERSHIP = 2
    DIRBR = 3
    INDIRBR = 4
    ERROR = 8
    PROG_SYNC = 9
    DIRBR_SYNC = 11
    INDIRBR_SYNC = 12
    RESOURCE_FULL = 27
    INDIRBR_HIST = 28
    INDIRBR_HIST_SYNC = 29
    REPEAT_BR = 30
    PROG_CORR = 33
    IDLE = 63


_TCODE_NAMES = {
    Tcode.OWNERSHIP: "Ownership",
    Tcode.DIRBR: "DirectBranch",
    Tcode.INDIRBR: "IndirectBranch",
    Tcode.ERROR: "Error",
    Tcode.PROG_SYNC: "ProgTraceSync",
    Tcode.DIRBR_SYNC: "DirectBranchSync",
    Tcode.INDIRBR_SYNC: "IndirectBranchSync",
    Tcode.RESOURCE_FULL: "ResourceFull",
    Tcode.INDIRBR_HIST: "IndirectBranchHist",
    Tcode.INDIRBR_HIST_SYNC: "IndirectBranchHistSync",
    Tcode.REPEAT_BR: "RepeatBranch",
    Tcode.PROG_CORR: "ProgTraceCorrelation",
    Tcode.IDLE: "Idle",
}

_STORAGE_SIZES = {
    Tcode.OWNERSHIP: 24,
    Tcode.DIRBR: 16,
    Tcode.INDIRBR: 24,
    Tcode.ERROR: 16,
    Tcode.PROG_SYNC: 24,
    Tcode.DIRBR_SYNC: 24,
    Tcode.INDIRBR_SYNC: 24,
    Tcode.RESOURCE_FULL: 16,
    Tcode.INDIRBR_HIST: 24,
    Tcode.INDIRBR_HIST_SYNC: 24,
    Tcode.REPEAT_BR: 16,
    Tcode.PROG_CORR: 16,
}
_COMMON_SIZE = 16


def tcode_str(tcode) -> str:
    """Return the display name of a type code, or "Unknown"."""
    return _TCODE_NAMES.get(tcode, "Unknown")


@dataclass
class DencoderConfig:
    """Encoder/decoder settings; must match the hardware that made the trace."""

    src_bits: int = 0
    has_timestamp: bool = False


@dataclass
class Message:
    """A decoded Nexus-RV message.

    Only the fields relevant to ``tcode`` carry meaning; the rest stay zero.
    Every field is truncated to its storage width on assignment.
    """

    tcode: int
    source: int = 0
    timestamp: int = 0
    format: int = 0
    prv: int = 0
    v: int = 0
    context: int = 0
    etype: int = 0
    ecode: int = 0
    icnt: int = 0
    btype: int = 0
    uaddr: int = 0
    sync: int = 0
    faddr: int = 0
    hist: int = 0
    rcode: int = 0
    rdata: int = 0
    hrepeat: int = 0
    evcode: int = 0

    def __setattr__(self, name, value):
        bits = FIELD_BITS.get(name)
        if bits is not None:
            value = int(value) & ((1 << bits) - 1)
        object.__setattr__(self, name, value)

    def storage_size(self) -> int:
        """Size in bytes of the message's fixed-layout raw form."""
        return _STORAGE_SIZES.get(self.tcode, _COMMON_SIZE)

    def to_raw(self) -> bytes:
        """Pack the message into its fixed little-endian raw record."""
        head = self.timestamp | self.source << 54
        tcode = self.tcode
        icnt_word = tcode | self.icnt << 10
        match tcode:
            case Tcode.OWNERSHIP:
                own = self.format | self.prv << 2 | self.v << 4
                return struct.pack("<QBB6xQ", head, tcode, own, self.context)
            case Tcode.DIRBR:
                return struct.pack("<QI4x", head, icnt_word)
            case Tcode.INDIRBR:
                addr = self.uaddr | self.btype << 62
                return struct.pack("<QI4xQ", head, icnt_word, addr)
            case Tcode.PROG_SYNC | Tcode.DIRBR_SYNC:
                addr = self.faddr | self.sync << 58
                return struct.pack("<QI4xQ", head, icnt_word, addr)
            case Tcode.INDIRBR_SYNC:
                addr = self.faddr | self.sync << 58 | self.btype << 62
                return struct.pack("<QI4xQ", head, icnt_word, addr)
            case Tcode.INDIRBR_HIST:
                addr = self.uaddr | self.btype << 62
                return struct.pack("<QIIQ", head, icnt_word, self.hist, addr)
            case Tcode.INDIRBR_HIST_SYNC:
                addr = self.faddr | self.sync << 58 | self.btype << 62
                return struct.pack("<QIIQ", head, icnt_word, self.hist, addr)
            case Tcode.RESOURCE_FULL:
                word = tcode | self.rcode << 6
                if self.rcode == 0:
                    word |= self.icnt << 10
                elif self.rcode == 2:
                    word |= self.hrepeat << 10
                data = self.rdata if self.rcode > 2 else self.hist
                return struct.pack("<QII", head, word, data)
            case Tcode.REPEAT_BR:
                return struct.pack("<QI4x", head, tcode | self.hrepeat << 10)
            case Tcode.PROG_CORR:
                word = icnt_word | self.evcode << 6
                return struct.pack("<QII", head, word, self.hist)
            case Tcode.ERROR:
                return struct.pack("<QII", head, tcode | self.etype << 6, self.ecode)
            case _:
                return struct.pack("<QB7x", head, tcode)