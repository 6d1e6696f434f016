import io

import pytest

from nexusrv.errors import ErrorCode, NexusRvError
from nexusrv.messages import Message, Tcode
from nexusrv.printer import format_msg
from nexusrv.reader import parse_msg, read_msg

SAMPLE_MESSAGES = [
    Message(tcode=Tcode.OWNERSHIP, source=2, timestamp=0x99, format=3, prv=1,
            v=1, context=0xCAFE),
    Message(tcode=Tcode.ERROR, etype=5, ecode=0xDEAD),
    Message(tcode=Tcode.DIRBR, icnt=17),
    Message(tcode=Tcode.INDIRBR, btype=2, icnt=9, uaddr=0xABCDE),
    Message(tcode=Tcode.PROG_SYNC, sync=7, icnt=3, faddr=0x80000000),
    Message(tcode=Tcode.DIRBR_SYNC, sync=2, icnt=40, faddr=0x1000),
    Message(tcode=Tcode.INDIRBR_SYNC, sync=4, btype=1, icnt=8, faddr=0x2222),
    Message(tcode=Tcode.RESOURCE_FULL, rcode=0, icnt=100),
    Message(tcode=Tcode.RESOURCE_FULL, rcode=1, hist=0x5A5),
    Message(tcode=Tcode.RESOURCE_FULL, rcode=2, hist=0x3, hrepeat=77),
    Message(tcode=Tcode.RESOURCE_FULL, rcode=9, rdata=0xBEEF),
    Message(tcode=Tcode.INDIRBR_HIST, btype=3, icnt=12, uaddr=0x44, hist=0x9),
    Message(tcode=Tcode.INDIRBR_HIST_SYNC, sync=1, btype=2, icnt=6,
            faddr=0xFFFF0, hist=0x101),
    Message(tcode=Tcode.REPEAT_BR, source=7, timestamp=0x1000, hrepeat=250),
    Message(tcode=Tcode.PROG_CORR, evcode=4, icnt=11, hist=0x77),
]


def _without_name(msg):
    return format_msg(msg).split(" ", 1)[1]


def test_parse_direct_branch():
    msg = parse_msg(" Src=1 Time=0x2a TCODE=3 ICNT=5")
    assert msg == Message(tcode=Tcode.DIRBR, source=1, timestamp=0x2A, icnt=5)


@pytest.mark.parametrize("msg", SAMPLE_MESSAGES)
def test_round_trip_with_printer(msg):
    assert parse_msg(_without_name(msg)) == msg


def test_hex_accepts_uppercase_digits():
    msg = parse_msg("Src=0 Time=0xFF TCODE=4 ICNT=1 BTYPE=0 UADDR=0xABC")
    assert msg.timestamp == 0xFF
    assert msg.uaddr == 0xABC


def test_idle_has_no_text_form():
    with pytest.raises(NexusRvError) as info:
        parse_msg("Src=0 Time=0x0 TCODE=63")
    assert info.value.code == ErrorCode.MSG_UNSUPPORTED


def test_unknown_tcode_is_unsupported():
    with pytest.raises(NexusRvError) as info:
        parse_msg("Src=0 Time=0x0 TCODE=5")
    assert info.value.code == ErrorCode.MSG_UNSUPPORTED


@pytest.mark.parametrize(
    "text",
    [
        "",
        "Src=0",
        "Src=0 Time=0x0",
        "Src=0 Time=0x0 TCODE=3",
        "Src=0 Time=0x0 TCODE=4 ICNT=1 BTYPE=2",
        "Src=x Time=0x0 TCODE=3 ICNT=1",
        "Src=0 Time=0 TCODE=3 ICNT=1",
    ],
)
def test_missing_field(text):
    with pytest.raises(NexusRvError) as info:
        parse_msg(text)
    assert info.value.code == ErrorCode.MSG_MISSING_FIELD


def test_trailing_text_is_rejected():
    with pytest.raises(NexusRvError) as info:
        parse_msg("Src=0 Time=0x0 TCODE=3 ICNT=1 EXTRA")
    assert info.value.code == ErrorCode.MSG_INVALID


def test_fields_are_truncated_to_storage_width():
    msg = parse_msg(f"Src=0 Time=0x0 TCODE=3 ICNT={1 << 22}")
    assert msg.icnt == 0


def test_read_msg_reads_line_by_line():
    first = SAMPLE_MESSAGES[2]
    second = SAMPLE_MESSAGES[3]
    fp = io.StringIO(_without_name(first) + "\n" + _without_name(second) + "\n")
    assert read_msg(fp) == first
    assert read_msg(fp) == second
    with pytest.raises(NexusRvError) as info:
        read_msg(fp)
    assert info.value.code == ErrorCode.MSG_MISSING_FIELD