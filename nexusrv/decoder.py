"""Decoding of Nexus-RV wire bytes into messages, one by one or from a stream."""

from __future__ import annotations

from collections.abc import Iterator

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
    DencoderConfig,
    Message,
    Tcode,
)

# Largest single read issued against a stream.
MAX_READ_SIZE = 1000 * 1000 * 1000
DEFAULT_BUFFER_SIZE = 4096

_MSEO_MASK = (1 << 2) - 1
_MDO_MASK = (1 << MDO_BITS) - 1
_U64_MASK = (1 << 64) - 1


def _mseo(byte: int) -> int:
    return byte & _MSEO_MASK


def _mdo(byte: int) -> int:
    return (byte >> 2) & _MDO_MASK


def sync_forward(buffer) -> int:
    """Return the offset just past the first end-of-message byte in ``buffer``.

    Raises NexusRvError(STREAM_TRUNCATE) if there is no such byte.
    """
    for offset, byte in enumerate(buffer, start=1):
        if _mseo(byte) == 3:
            return offset
    raise NexusRvError(ErrorCode.STREAM_TRUNCATE)


def sync_backward(buffer, pos: int) -> int:
    """Return the offset just past the last end-of-message byte before ``pos``.

    Raises NexusRvError(STREAM_TRUNCATE) if there is no such byte.
    """
    for offset in range(pos, 0, -1):
        if _mseo(buffer[offset - 1]) == 3:
            return offset
    raise NexusRvError(ErrorCode.STREAM_TRUNCATE)


class _FieldReader:
    """Walks the MDO bits of a message one MSEO-terminated segment at a time."""

    def __init__(self, buffer) -> None:
        self._buffer = buffer
        self.pos = 0
        self.eom = False
        self._segment = 0
        self._segment_bits = 0
        self._bit_offset = 0

    def next_segment(self) -> None:
        if self.eom:
            raise NexusRvError(ErrorCode.MSG_MISSING_FIELD)
        segment = 0
        shift = 0
        for index in range(self.pos, len(self._buffer)):
            byte = self._buffer[index]
            mseo = _mseo(byte)
            if mseo == 2:
                raise NexusRvError(ErrorCode.STREAM_BAD_MSEO)
            segment |= _mdo(byte) << shift
            shift += MDO_BITS
            if mseo:
                self.eom = mseo == 3
                self.pos = index + 1
                self._segment = segment
                self._segment_bits = shift
                self._bit_offset = 0
                return
        raise NexusRvError(ErrorCode.STREAM_TRUNCATE)

    def fixed(self, bits: int) -> int:
        if self._segment_bits - self._bit_offset < bits:
            raise NexusRvError(ErrorCode.MSG_MISSING_FIELD)
        value = (self._segment >> self._bit_offset) & ((1 << bits) - 1)
        self._bit_offset += bits
        return value

    def variable(self) -> tuple[int, int]:
        """Return the rest of the segment as a value, with its width in bits."""
        left = self._segment_bits - self._bit_offset
        value = (self._segment >> self._bit_offset) & _U64_MASK
        self._bit_offset = self._segment_bits
        return value, left

    def optional(self) -> int:
        return self.variable()[0]

    def required(self) -> int:
        value, left = self.variable()
        if not left:
            raise NexusRvError(ErrorCode.MSG_MISSING_FIELD)
        return value


def _decode_body(msg: Message, fields: _FieldReader) -> None:
    match msg.tcode:
        case Tcode.OWNERSHIP:
            msg.format = fields.fixed(BITS_OWNERSHIP_FMT)
            msg.prv = fields.fixed(BITS_OWNERSHIP_PRV)
            msg.v = fields.fixed(BITS_OWNERSHIP_V)
            msg.context = fields.optional()
        case Tcode.DIRBR:
            msg.icnt = fields.required()
        case Tcode.INDIRBR:
            msg.btype = fields.fixed(BITS_ADDR_BTYPE)
            msg.icnt = fields.required()
            fields.next_segment()
            msg.uaddr = fields.required()
        case Tcode.ERROR:
            msg.etype = fields.fixed(BITS_ETYPE)
            msg.ecode = fields.optional()
        case Tcode.PROG_SYNC | Tcode.DIRBR_SYNC:
            msg.sync = fields.fixed(BITS_ADDR_SYNC)
            msg.icnt = fields.required()
            fields.next_segment()
            msg.faddr = fields.required()
        case Tcode.INDIRBR_SYNC:
            msg.sync = fields.fixed(BITS_ADDR_SYNC)
            msg.btype = fields.fixed(BITS_ADDR_BTYPE)
            msg.icnt = fields.required()
            fields.next_segment()
            msg.faddr = fields.required()
        case Tcode.RESOURCE_FULL:
            msg.rcode = fields.fixed(BITS_RCODE)
            if msg.rcode == 0:
                msg.icnt = fields.required()
            elif msg.rcode > 2:
                msg.rdata = fields.optional()
            else:
                msg.hist = fields.required()
                if msg.rcode == 2:
                    fields.next_segment()
                    msg.hrepeat = fields.required()
        case Tcode.INDIRBR_HIST:
            msg.btype = fields.fixed(BITS_ADDR_BTYPE)
            msg.icnt = fields.required()
            fields.next_segment()
            msg.uaddr = fields.required()
            fields.next_segment()
            msg.hist = fields.required()
        case Tcode.INDIRBR_HIST_SYNC:
            msg.sync = fields.fixed(BITS_ADDR_SYNC)
            msg.btype = fields.fixed(BITS_ADDR_BTYPE)
            msg.icnt = fields.required()
            fields.next_segment()
            msg.faddr = fields.required()
            fields.next_segment()
            msg.hist = fields.required()
        case Tcode.REPEAT_BR:
            msg.hrepeat = fields.required()
        case Tcode.PROG_CORR:
            msg.evcode = fields.fixed(BITS_EVCODE)
            cdf = fields.fixed(BITS_CDF)
            msg.icnt = fields.required()
            msg.hist = 0
            if cdf == 1:
                fields.next_segment()
                msg.hist = fields.required()


def decode_msg(cfg: DencoderConfig, buffer) -> tuple[Message, int]:
    """Decode one full message from the start of ``buffer``.

    Returns the message and the number of bytes it took. Raises NexusRvError
    with STREAM_TRUNCATE when more bytes are needed, STREAM_BAD_MSEO on a
    reserved MSEO value, MSG_INVALID or MSG_MISSING_FIELD on a bad message.
    """
    fields = _FieldReader(buffer)
    fields.next_segment()
    msg = Message(tcode=fields.fixed(BITS_TCODE))
    if msg.tcode != Tcode.IDLE and cfg.src_bits:
        msg.source = fields.fixed(cfg.src_bits)

    if msg.tcode == Tcode.IDLE:
        if not fields.eom:
            raise NexusRvError(ErrorCode.MSG_INVALID)
        return msg, fields.pos

    _decode_body(msg, fields)

    if cfg.has_timestamp and fields.eom:
        raise NexusRvError(ErrorCode.MSG_MISSING_FIELD)
    while not fields.eom:
        fields.next_segment()
    if cfg.has_timestamp:
        msg.timestamp = fields.required()
    return msg, fields.pos


def read_all(stream, count: int) -> bytes:
    """Read up to ``count`` bytes from ``stream``, stopping at a short read."""
    chunks = []
    while count:
        chunk = min(count, MAX_READ_SIZE)
        data = stream.read(chunk) or b""
        chunks.append(data)
        count -= len(data)
        if len(data) < chunk:
            break
    return b"".join(chunks)


class StreamDecoder:
    """Decodes every message of a binary trace stream through a fixed buffer."""

    def __init__(self, stream, cfg=None, bufsz=DEFAULT_BUFFER_SIZE, synced=True):
        if bufsz <= 0:
            raise ValueError("buffer size must be positive")
        self.stream = stream
        self.cfg = cfg if cfg is not None else DencoderConfig()
        self.bufsz = bufsz
        self.synced = synced
        self._buffer = bytearray(bufsz)
        self._filled = 0
        self._pos = 0

    def _refill(self) -> bool:
        """Carry the unread tail to the front and read more; False at EOF."""
        carry = self._filled - self._pos
        self._buffer[:carry] = self._buffer[self._pos:self._filled]
        self._pos = 0
        self._filled = carry
        try:
            data = read_all(self.stream, self.bufsz - carry)
        except OSError as exc:
            raise NexusRvError(ErrorCode.STREAM_READ_FAILED, str(exc)) from exc
        self._buffer[carry:carry + len(data)] = data
        self._filled += len(data)
        if self._filled > 0:
            return True
        self._pos = self._filled = self.bufsz
        return False

    def iterate(self) -> tuple[Message, int] | None:
        """Decode the next message.

        Returns the message with the number of bytes it took, or None at the
        end of the stream. Raises NexusRvError on failure: STREAM_TRUNCATE for
        a partial message at the end, BUFFER_TOO_SMALL when one message does
        not fit the buffer, STREAM_READ_FAILED when reading fails, and the
        decoding errors of decode_msg.
        """
        while True:
            if self._pos == self._filled:
                if self._pos:
                    return None
                if not self._refill():
                    return None
                continue

            window = bytes(self._buffer[self._pos:self._filled])
            try:
                if self.synced:
                    msg, consumed = decode_msg(self.cfg, window)
                else:
                    msg, consumed = None, sync_forward(window)
            except NexusRvError as exc:
                if (self._filled != self.bufsz
                        or exc.code != ErrorCode.STREAM_TRUNCATE):
                    raise
                if not self._pos:
                    raise NexusRvError(ErrorCode.BUFFER_TOO_SMALL) from exc
                if not self._refill():
                    return None
                continue

            self._pos += consumed
            if self._pos == self.bufsz:
                self._pos = self._filled = 0
            if self.synced:
                return msg, consumed
            self.synced = True

    def __iter__(self) -> Iterator[tuple[Message, int]]:
        while (item := self.iterate()) is not None:
            yield item