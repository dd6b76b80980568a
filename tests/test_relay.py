import asyncio
import json

import pytest

from statusrelay.channel import LineChannel
from statusrelay.config import GeneratorConfig
from statusrelay.models import DecodeError, OutputHandleUnavailable, RelayState, SpawnFailure, StreamClosed, StreamIOFailure
from statusrelay.process import GeneratorProcess
from statusrelay.relay import Relay
from statusrelay.sink import OutputSink

from .testtools import BrokenStream, MockReader, make_stream

I3STATUS_OUTPUT = b'{"version":1}\n[\n[{"full_text":"100%"}]\n,[{"full_text":"101%"}]\n'
RELAYED_OUTPUT = b'{"version":1,"click_events":true}\n[\n[{"full_text":"100%"}]\n,[{"full_text":"101%"}]\n'


def make_relay(data: bytes, sink: OutputSink) -> Relay:
    return Relay(GeneratorConfig(), sink=sink, channel=LineChannel(make_stream(data)))


@pytest.mark.asyncio
async def test_relay_from_stream(sink, output):
    relay = make_relay(I3STATUS_OUTPUT, sink)
    assert relay.state == RelayState.HEADER_EXCHANGE

    assert await relay.run() == RelayState.CLOSED
    assert output.getvalue() == RELAYED_OUTPUT
    assert relay.forwarded == 1
    assert relay.header is not None
    assert relay.header.click_events is True


@pytest.mark.asyncio
async def test_state_transitions(sink, output):
    reader = MockReader()
    relay = Relay(GeneratorConfig(), sink=sink, channel=LineChannel(reader))

    await reader.q.put(b'{"version":1,"stop_signal":10,"cont_signal":12,"click_events":false}\n')
    assert await relay.step() == RelayState.ARRAY_OPEN
    assert json.loads(output.getvalue()) == {"version": 1, "stop_signal": 10, "cont_signal": 12, "click_events": True}

    await reader.q.put(b"[\n")
    assert await relay.step() == RelayState.FIRST_ELEMENT

    await reader.q.put(b'[{"full_text":"a"}]\n')
    assert await relay.step() == RelayState.STEADY_STATE
    assert relay.forwarded == 0

    await reader.q.put(b',[{"full_text":"b"}]\n')
    assert await relay.step() == RelayState.STEADY_STATE
    assert relay.forwarded == 1

    await reader.q.put(b"")
    assert await relay.step() == RelayState.CLOSED
    assert output.getvalue().decode().splitlines()[1:] == ["[", '[{"full_text":"a"}]', ',[{"full_text":"b"}]']

    with pytest.raises(RuntimeError, match="over"):
        await relay.step()


@pytest.mark.asyncio
async def test_header_keeps_present_fields(sink, output):
    relay = make_relay(b'{"version":1,"stop_signal":10}\n', sink)
    await relay.step()
    assert output.getvalue() == b'{"version":1,"stop_signal":10,"click_events":true}\n'


@pytest.mark.asyncio
async def test_missing_trailing_newline(sink, output):
    relay = make_relay(b'{"version":1}\n[\n[{"full_text":"a"}]\n,[{"full_text":"b"}]', sink)
    await relay.run()
    assert output.getvalue().endswith(b',[{"full_text":"b"}]\n')
    assert not output.getvalue().endswith(b"\n\n")


@pytest.mark.asyncio
async def test_steady_state_order_and_volume(sink, output):
    lines = [f',[{{"full_text":"{i}%"}}]' for i in range(200)]
    data = b'{"version":1}\n[\n[]\n' + "\n".join(lines).encode() + b"\n"
    relay = make_relay(data, sink)
    await relay.run()

    relayed = output.getvalue().decode().split("\n")
    assert relayed[3:-1] == lines
    assert relayed[-1] == ""
    assert relay.forwarded == len(lines)


@pytest.mark.asyncio
async def test_invalid_header_writes_nothing(sink, output):
    relay = make_relay(b'{"stop_signal":10}\n[\n', sink)
    with pytest.raises(DecodeError):
        await relay.run()
    assert relay.state == RelayState.ABORTED
    assert output.getvalue() == b""


@pytest.mark.asyncio
async def test_not_json_header_writes_nothing(sink, output):
    relay = make_relay(b"[\n[]\n", sink)
    with pytest.raises(DecodeError):
        await relay.run()
    assert output.getvalue() == b""


@pytest.mark.asyncio
async def test_closed_before_header(sink, output):
    relay = make_relay(b"", sink)
    with pytest.raises(StreamClosed, match="header exchange"):
        await relay.run()
    assert relay.state == RelayState.ABORTED
    assert output.getvalue() == b""


@pytest.mark.asyncio
async def test_closed_before_first_element(sink, output):
    relay = make_relay(b'{"version":1}\n[\n', sink)
    with pytest.raises(StreamClosed, match="first element"):
        await relay.run()
    assert relay.state == RelayState.ABORTED
    assert output.getvalue() == b'{"version":1,"click_events":true}\n[\n'


@pytest.mark.asyncio
async def test_read_failure_ends_run(sink, output):
    reader = MockReader()
    for line in (b'{"version":1}\n', b"[\n", b"[]\n"):
        await reader.q.put(line)
    await reader.q.put(OSError(5, "Input/output error"))
    relay = Relay(GeneratorConfig(), sink=sink, channel=LineChannel(reader))
    with pytest.raises(StreamIOFailure, match="Input/output error"):
        await relay.run()
    assert relay.state == RelayState.ABORTED
    assert output.getvalue().count(b"\n") == 3


@pytest.mark.asyncio
async def test_write_failure_ends_run():
    relay = make_relay(I3STATUS_OUTPUT, OutputSink(BrokenStream()))
    with pytest.raises(StreamIOFailure):
        await relay.run()
    assert relay.state == RelayState.ABORTED


def test_write_message(sink, output):
    relay = Relay(GeneratorConfig(), sink=sink)
    relay.write_message("no data")
    assert output.getvalue() == (
        b'[{"full_text":"no data","short_text":null,"color":null,"min_width":null,"align":null,'
        b'"urgent":null,"name":null,"instance":null,"separator":null,"separator_block_width":null}]\n,'
    )
    assert relay.buffer.text == ""


@pytest.mark.asyncio
async def test_write_message_keeps_array_valid(sink, output):
    relay = make_relay(b'{"version":1}\n[\n[{"full_text":"a"}]\n,[{"full_text":"b"}]\n', sink)
    await relay.step()
    await relay.step()
    relay.write_message("starting")
    await relay.run()

    header, body = output.getvalue().decode().split("\n", 1)
    assert json.loads(header)["click_events"] is True
    status_lines = json.loads(body + "]")
    assert [line[0]["full_text"] for line in status_lines] == ["starting", "a", "b"]


# Subprocess driven runs


@pytest.mark.asyncio
async def test_end_to_end(tmp_path, sink, output):
    source = tmp_path / "i3status.out"
    source.write_bytes(I3STATUS_OUTPUT)
    relay = Relay(GeneratorConfig(command="cat", args=[str(source)]), sink=sink)
    assert relay.state == RelayState.SPAWNING

    assert await relay.run() == RelayState.CLOSED
    assert output.getvalue() == RELAYED_OUTPUT
    assert relay.process is not None
    assert relay.process.returncode == 0


@pytest.mark.asyncio
async def test_end_to_end_no_trailing_newline(sink, output):
    script = 'printf \'{"version":1}\\n[\\n[]\\n,[{"full_text":"last"}]\''
    relay = Relay(GeneratorConfig(command="sh", args=["-c", script]), sink=sink)
    await relay.run()
    assert output.getvalue() == b'{"version":1,"click_events":true}\n[\n[]\n,[{"full_text":"last"}]\n'


@pytest.mark.asyncio
async def test_spawn_failure_writes_nothing(sink, output):
    relay = Relay(GeneratorConfig(command="statusrelay-no-such-program"), sink=sink)
    with pytest.raises(SpawnFailure):
        await relay.run()
    assert relay.process is None
    assert relay.state == RelayState.ABORTED
    assert output.getvalue() == b""


@pytest.mark.asyncio
async def test_unbalanced_quotes_in_command(sink, output):
    relay = Relay(GeneratorConfig(command="i3status 'oops"), sink=sink)
    with pytest.raises(SpawnFailure, match="Invalid generator command"):
        await relay.run()
    assert relay.process is None
    assert relay.state == RelayState.ABORTED
    assert output.getvalue() == b""

@pytest.mark.asyncio
async def test_output_handle_unavailable(mocker, sink, output):
    proc = GeneratorProcess()

    async def spawn_without_stdout(config):
        await proc.start(["sleep", "10"], stdout=asyncio.subprocess.DEVNULL)
        return proc

    mocker.patch("statusrelay.relay.spawn", side_effect=spawn_without_stdout)
    relay = Relay(GeneratorConfig(), sink=sink)
    with pytest.raises(OutputHandleUnavailable):
        await relay.run()
    assert relay.state == RelayState.ABORTED
    assert not proc.is_alive
    assert output.getvalue() == b""


@pytest.mark.asyncio
async def test_generator_stopped_on_error(sink, output):
    relay = Relay(GeneratorConfig(command="sh", args=["-c", "echo '{}'; exec sleep 10"]), sink=sink)
    with pytest.raises(DecodeError):
        await relay.run()
    assert relay.process is not None
    assert not relay.process.is_alive
    assert output.getvalue() == b""
