# nexusrv

Encode and decode Nexus-RV processor trace messages.

A Nexus-RV trace is a byte stream. In each byte the low 2 bits (MSEO) mark
where a field or message ends, and the high 6 bits (MDO) carry data. This
package turns such streams into `Message` objects and text. It also turns
`Message` objects back into bytes.

The package needs only the standard library. It runs on Python 3.10 or later.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install .[test]
```

## Command-line tools

### nexusrv-dump

This tool decodes a binary trace and prints one line per message:

```
nexusrv-dump [OPTIONS] <trace file>[:offset]
nexusrv-dump [OPTIONS] -          # read from stdin
```

The optional `:offset` gives a byte offset at which decoding starts. It may
be decimal, `0x` hexadecimal, or octal with a leading `0`. If the input
cannot seek, the tool reads and discards bytes up to the offset instead.

Options:

- `-t`, `--timestamp`: messages carry a timestamp
- `-s N`, `--srcbits N`: width of the SRC field in bits (default 0)
- `-y`, `--sync`: skip forward past the first end-of-message byte before decoding
- `-b N`, `--buffersz N`: read buffer size (default 4096, at least 38)
- `-r`, `--raw`: write a fixed-layout binary record for each message instead
  of text. The tool will not write raw output to a terminal.
- `-h`, `--help`: print usage and exit

Each output line has this form:

```
Msg #0 DirectBranch Src=0 Time=0x0 TCODE=3 ICNT=5
```

When it ends, the tool prints a summary to stderr: the message count, the
bytes it decoded and the bytes of raw storage. On an error it returns exit
status 1.

### nexusrv-assemble

This tool reads from stdin the `Msg #N ...` lines that `nexusrv-dump` prints.
It encodes them back to a binary trace and writes the trace to a file, or to
stdout if no file is given:

```
nexusrv-dump trace.bin | nexusrv-assemble out.bin
```

Options:

- `-t`, `--timestamp`: put a timestamp in each message
- `-s N`, `--srcbits N`: width of the SRC field in bits (default 0)
- `-x`, `--text`: write each message as a `[length] xx xx ...` line of hex
  bytes instead of binary. The tool also uses this mode when the output is a
  terminal.
- `-h`, `--help`: print usage and exit

When it ends, the tool prints the last message number and the total bytes it
wrote to stderr.

## Library use

```python
from nexusrv.messages import DencoderConfig, Message, Tcode
from nexusrv.encoder import encode_msg
from nexusrv.decoder import decode_msg, StreamDecoder
from nexusrv.printer import format_msg

cfg = DencoderConfig(src_bits=0, has_timestamp=False)
msg = Message(tcode=Tcode.DIRBR, icnt=5)
data = encode_msg(cfg, msg, 38)
decoded, consumed = decode_msg(cfg, data)
print(format_msg(decoded))

with open("trace.bin", "rb") as f:
    for message, consumed in StreamDecoder(f, cfg, 4096, True):
        print(format_msg(message))
```

Modules:

- `nexusrv.messages`: `Tcode`, `tcode_str`, `DencoderConfig` and `Message`.
  A `Message` truncates each field to its bit width. It also provides
  `storage_size()` and `to_raw()` for the fixed binary record.
- `nexusrv.encoder`: `encode_msg(cfg, msg, limit)` returns the wire bytes.
- `nexusrv.decoder`: `decode_msg`, `sync_forward`, `sync_backward`,
  `read_all` and `StreamDecoder`. `StreamDecoder` reads a binary stream
  through a fixed-size buffer. Its `iterate()` returns `(message, consumed)`,
  or `None` at the end of the stream.
- `nexusrv.printer`: `format_msg(msg)` and `print_msg(fp, msg)` produce the
  text form.
- `nexusrv.reader`: `parse_msg(text)` and `read_msg(fp)` parse the text form
  back into a `Message`. The text starts at its `Src=` field.
- `nexusrv.dump` and `nexusrv.assemble`: the two commands. Their `dump` and
  `assemble` functions can also be called directly.

If a message is malformed, a stream is cut short or a buffer is too small,
the functions raise `nexusrv.errors.NexusRvError`. Its `code` attribute holds
an `nexusrv.errors.ErrorCode`.

## Limitations

- The package decodes trace messages only. It does not rebuild the
  instruction flow of the traced program from those messages.
- The text reader has no form for `Idle` messages or for unknown type codes.
  `parse_msg` raises `MSG_UNSUPPORTED` for them, so `nexusrv-assemble` stops
  at such lines.