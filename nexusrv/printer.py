"""Human readable rendering of Nexus-RV messages."""

from __future__ import annotations

from .messages import Message, Tcode, tcode_str


def _icnt(msg: Message) -> str:
    return f" ICNT={msg.icnt}"


def _sync(msg: Message) -> str:
    return f" SYNC={msg.sync}"


def _btype(msg: Message) -> str:
    return f" BTYPE={msg.btype}"


def _uaddr(msg: Message) -> str:
    return f" UADDR=0x{msg.uaddr:x}"


def _faddr(msg: Message) -> str:
    return f" FADDR=0x{msg.faddr:x}"


def _hist(msg: Message) -> str:
    return f" HIST=0x{msg.hist:x}"


def _hrepeat(msg: Message) -> str:
    return f" HREPEAT={msg.hrepeat}"


def _details(msg: Message) -> str:
    match msg.tcode:
        case Tcode.OWNERSHIP:
            return (
                f" FORMAT={msg.format} PRV={msg.prv} V={msg.v}"
                f" CONTEXT=0x{msg.context:x}"
            )
        case Tcode.ERROR:
            return f" ETYPE={msg.etype} ECODE=0x{msg.ecode:x}"
        case Tcode.DIRBR:
            return _icnt(msg)
        case Tcode.INDIRBR:
            return _icnt(msg) + _btype(msg) + _uaddr(msg)
        case Tcode.PROG_SYNC | Tcode.DIRBR_SYNC:
            return _icnt(msg) + _sync(msg) + _faddr(msg)
        case Tcode.INDIRBR_SYNC:
            return _icnt(msg) + _sync(msg) + _btype(msg) + _faddr(msg)
        case Tcode.INDIRBR_HIST:
            return _icnt(msg) + _btype(msg) + _uaddr(msg) + _hist(msg)
        case Tcode.INDIRBR_HIST_SYNC:
            return (
                _icnt(msg) + _sync(msg) + _btype(msg) + _faddr(msg) + _hist(msg)
            )
        case Tcode.RESOURCE_FULL:
            text = f" RCODE={msg.rcode}"
            match msg.rcode:
                case 0:
                    return text + _icnt(msg)
                case 1:
                    return text + _hist(msg)
                case 2:
                    return text + _hist(msg) + _hrepeat(msg)
                case _:
                    return text + f" RDATA=0x{msg.rdata:x}"
        case Tcode.REPEAT_BR:
            return _hrepeat(msg)
        case Tcode.PROG_CORR:
            return f" EVCODE={msg.evcode}" + _icnt(msg) + _hist(msg)
        case _:
            return ""


def format_msg(msg: Message) -> str:
    """Return the one-line text form of ``msg``."""
    header = (
        f"{tcode_str(msg.tcode)} Src={msg.source}"
        f" Time=0x{msg.timestamp:x} TCODE={msg.tcode}"
    )
    return header + _details(msg)


def print_msg(fp, msg: Message) -> int:
    """Write the text form of ``msg`` to ``fp``; return the characters written."""
    text = format_msg(msg)
    fp.write(text)
    return len(text)