import io

import pytest

from nexusrv.messages import Message, Tcode
from nexusrv.printer import format_msg, print_msg


def test_direct_branch():
    msg = Message(Tcode.DIRBR, icnt=5)
    assert format_msg(msg) == "DirectBranch Src=0 Time=0x0 TCODE=3 ICNT=5"


def test_indirect_branch_hist_sync_full_line():
    msg = Message(
        Tcode.INDIRBR_HIST_SYNC,
        source=1,
        timestamp=42,
        icnt=7,
        sync=3,
        btype=1,
        faddr=0x80001000,
        hist=5,
    )
    assert format_msg(msg) == (
        "IndirectBranchHistSync Src=1 Time=0x2a TCODE=29 "
        "ICNT=7 SYNC=3 BTYPE=1 FADDR=0x80001000 HIST=0x5"
    )


def test_idle_has_no_details():
    assert format_msg(Message(Tcode.IDLE)) == "Idle Src=0 Time=0x0 TCODE=63"


def test_ownership_fields():
    msg = Message(Tcode.OWNERSHIP, format=1, prv=3, v=1, context=0xABC)
    assert format_msg(msg).endswith(" FORMAT=1 PRV=3 V=1 CONTEXT=0xabc")


def test_error_fields():
    msg = Message(Tcode.ERROR, etype=1, ecode=0xFF)
    assert format_msg(msg).endswith(" ETYPE=1 ECODE=0xff")


def test_indirect_branch_fields():
    msg = Message(Tcode.INDIRBR, icnt=12, btype=2, uaddr=0x1000)
    assert format_msg(msg).endswith(" ICNT=12 BTYPE=2 UADDR=0x1000")


@pytest.mark.parametrize("tcode", [Tcode.PROG_SYNC, Tcode.DIRBR_SYNC])
def test_sync_fields(tcode):
    msg = Message(tcode, icnt=4, sync=2, faddr=0x2000)
    assert format_msg(msg).endswith(" ICNT=4 SYNC=2 FADDR=0x2000")


def test_indirect_branch_sync_fields():
    msg = Message(Tcode.INDIRBR_SYNC, icnt=4, sync=2, btype=1, faddr=0x2000)
    assert format_msg(msg).endswith(" ICNT=4 SYNC=2 BTYPE=1 FADDR=0x2000")


def test_indirect_branch_hist_fields():
    msg = Message(Tcode.INDIRBR_HIST, icnt=4, btype=1, uaddr=0x30, hist=0x6)
    assert format_msg(msg).endswith(" ICNT=4 BTYPE=1 UADDR=0x30 HIST=0x6")


def test_resource_full_rcode_0():
    text = format_msg(Message(Tcode.RESOURCE_FULL, rcode=0, icnt=9, hist=0x3))
    assert text.endswith(" RCODE=0 ICNT=9")
    assert "HIST" not in text


def test_resource_full_rcode_1():
    text = format_msg(Message(Tcode.RESOURCE_FULL, rcode=1, hist=0x3))
    assert text.endswith(" RCODE=1 HIST=0x3")


def test_resource_full_rcode_2():
    text = format_msg(Message(Tcode.RESOURCE_FULL, rcode=2, hist=0x3, hrepeat=4))
    assert text.endswith(" RCODE=2 HIST=0x3 HREPEAT=4")
    assert "ICNT" not in text


def test_resource_full_other_rcode():
    text = format_msg(Message(Tcode.RESOURCE_FULL, rcode=8, rdata=0x10))
    assert text.endswith(" RCODE=8 RDATA=0x10")


def test_repeat_branch():
    text = format_msg(Message(Tcode.REPEAT_BR, hrepeat=17))
    assert text.endswith(" HREPEAT=17")
    assert text.startswith("RepeatBranch ")


def test_prog_corr():
    text = format_msg(Message(Tcode.PROG_CORR, evcode=4, icnt=2, hist=0x1))
    assert text.endswith(" EVCODE=4 ICNT=2 HIST=0x1")


def test_unknown_tcode():
    text = format_msg(Message(5))
    assert text.startswith("Unknown ")
    assert text.endswith(" TCODE=5")


def test_print_msg_writes_and_counts():
    msg = Message(Tcode.DIRBR, icnt=5, source=2)
    fp = io.StringIO()
    written = print_msg(fp, msg)
    assert fp.getvalue() == format_msg(msg)
    assert written == len(fp.getvalue())