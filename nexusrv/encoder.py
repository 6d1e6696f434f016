"""Encoding of Nexus-RV messages into wire bytes."""

from __future__ import annotations

from .errors import ErrorCode, NexusRvError
from .messages import (
    BITS_ADDR_BTYPE,
    BITS_ADDR_SYNC,
    BITS_CDF,
    BITS_ETYPE,
    BITS_EVCODE,
    BITS_OWNERSHIP_FMT,
    BITS_OWNERSHIP_PRV,
    BITS_OWNERSHIP_V,
    BITS_RCODE,
    BITS_TCODE,
    MDO_BITS,
    MSEO_BITS,
    MSG_MAX_BYTES,
    DencoderConfig,
    Message,
    Tcode,
)

_MSEO_MASK = (1 << MSEO_BITS) - 1
_MDO_MASK = (1 << MDO_BITS) - 1
_U64_MASK = (1 << 64) - 1

_MSEO_END_FIELD = 1
_MSEO_END_MSG = 3


class _BitWriter:
    """Packs fields into the MDO bits of a bounded byte buffer."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._buffer = bytearray(max(limit, 0))
        self._bit_offset = 0

    def _pack(self, value: int, bits: int) -> None:
        if self._bit_offset + bits > self._limit * MDO_BITS:
            raise NexusRvError(ErrorCode.STREAM_TRUNCATE)
        value &= (1 << bits) - 1
        offset = self._bit_offset
        remaining = bits
        while remaining > 0:
            index, shift = divmod(offset, MDO_BITS)
            if shift == 0:
                self._buffer[index] = 0
            self._buffer[index] |= ((value << shift) & _MDO_MASK) << MSEO_BITS
            taken = min(MDO_BITS - shift, remaining)
            value >>= taken
            remaining -= taken
            offset += taken
        self._bit_offset += bits

    def fixed(self, value: int, bits: int) -> None:
        self._pack(value, bits)

    def variable(self, value: int) -> None:
        """Pack a field that may be empty, then close it."""
        value &= _U64_MASK
        self._pack(value, value.bit_length())
        self.end_field(_MSEO_END_FIELD)

    def required(self, value: int) -> None:
        """Pack a field of at least one bit, then close it."""
        value &= _U64_MASK
        self._pack(value, max(value.bit_length(), 1))
        self.end_field(_MSEO_END_FIELD)

    def end_field(self, mseo: int) -> None:
        index = -(-self._bit_offset // MDO_BITS)
        self._bit_offset = index * MDO_BITS
        last = index - 1
        self._buffer[last] = (self._buffer[last] & ~_MSEO_MASK & 0xFF) | mseo

    def getvalue(self) -> bytes:
        return bytes(self._buffer[:self._bit_offset // MDO_BITS])


def _encode_body(msg: Message, out: _BitWriter) -> None:
    match msg.tcode:
        case Tcode.OWNERSHIP:
            out.fixed(msg.format, BITS_OWNERSHIP_FMT)
            out.fixed(msg.prv, BITS_OWNERSHIP_PRV)
            out.fixed(msg.v, BITS_OWNERSHIP_V)
            out.variable(msg.context)
        case Tcode.DIRBR:
            out.required(msg.icnt)
        case Tcode.INDIRBR:
            out.fixed(msg.btype, BITS_ADDR_BTYPE)
            out.required(msg.icnt)
            out.required(msg.uaddr)
        case Tcode.ERROR:
            out.fixed(msg.etype, BITS_ETYPE)
            out.variable(msg.ecode)
        case Tcode.PROG_SYNC | Tcode.DIRBR_SYNC:
            out.fixed(msg.sync, BITS_ADDR_SYNC)
            out.required(msg.icnt)
            out.required(msg.faddr)
        case Tcode.INDIRBR_SYNC:
            out.fixed(msg.sync, BITS_ADDR_SYNC)
            out.fixed(msg.btype, BITS_ADDR_BTYPE)
            out.required(msg.icnt)
            out.required(msg.faddr)
        case Tcode.RESOURCE_FULL:
            out.fixed(msg.rcode, BITS_RCODE)
            if msg.rcode == 0:
                out.required(msg.icnt)
            elif msg.rcode > 2:
                out.variable(msg.rdata)
            else:
                out.required(msg.hist)
                if msg.rcode == 2:
                    out.required(msg.hrepeat)
        case Tcode.INDIRBR_HIST:
            out.fixed(msg.btype, BITS_ADDR_BTYPE)
            out.required(msg.icnt)
            out.required(msg.uaddr)
            out.required(msg.hist)
        case Tcode.INDIRBR_HIST_SYNC:
            out.fixed(msg.sync, BITS_ADDR_SYNC)
            out.fixed(msg.btype, BITS_ADDR_BTYPE)
            out.required(msg.icnt)
            out.required(msg.faddr)
            out.required(msg.hist)
        case Tcode.REPEAT_BR:
            out.required(msg.hrepeat)
        case Tcode.PROG_CORR:
            cdf = 1 if msg.icnt != 0 else 0
            out.fixed(msg.evcode, BITS_EVCODE)
            out.fixed(cdf, BITS_CDF)
            out.required(msg.icnt)
            if cdf == 1:
                out.required(msg.hist)
        case Tcode.IDLE:
            pass
        case _:
            raise NexusRvError(ErrorCode.MSG_UNSUPPORTED)


def encode_msg(cfg: DencoderConfig, msg: Message, limit: int = MSG_MAX_BYTES) -> bytes:
    """Encode ``msg`` into at most ``limit`` wire bytes.

    Raises NexusRvError with STREAM_TRUNCATE when ``limit`` bytes are not
    enough, and MSG_UNSUPPORTED for a message type that cannot be encoded.
    """
    out = _BitWriter(limit)
    out.fixed(msg.tcode, BITS_TCODE)
    if msg.tcode != Tcode.IDLE and cfg.src_bits:
        out.fixed(msg.source, cfg.src_bits)
    _encode_body(msg, out)
    if cfg.has_timestamp:
        out.required(msg.timestamp)
    out.end_field(_MSEO_END_MSG)
    return out.getvalue()