import pytest

from mipsmachine.console import ConsoleInput, ConsoleOutput
from mipsmachine.interrupt import CallBackObj, Interrupt, IntType
from mipsmachine.stats import CONSOLE_TIME, Statistics


class Recorder(CallBackObj):
    def __init__(self):
        self.calls = 0

    def call_back(self):
        self.calls += 1


@pytest.fixture
def stats():
    return Statistics()


@pytest.fixture
def interrupt(stats):
    return Interrupt(stats)


def make_input(tmp_path, interrupt, stats, content):
    path = tmp_path / "keyboard"
    path.write_bytes(content)
    recorder = Recorder()
    return ConsoleInput(interrupt, stats, recorder, path), recorder


def test_input_schedules_first_poll(tmp_path, interrupt, stats):
    console, _ = make_input(tmp_path, interrupt, stats, b"a")
    with console:
        pending = interrupt.pending
        assert [(p.kind, p.when) for p in pending] == [
            (IntType.CONSOLE_READ, CONSOLE_TIME)
        ]


def test_input_reads_characters_in_order(tmp_path, interrupt, stats):
    console, recorder = make_input(tmp_path, interrupt, stats, b"ab")
    with console:
        assert interrupt.check_if_due(True)
        assert recorder.calls == 1
        assert stats.num_console_chars_read == 1
        assert console.get_char() == "a"
        assert console.get_char() is None

        assert interrupt.check_if_due(True)
        assert console.get_char() == "b"
        assert stats.num_console_chars_read == 2


def test_input_end_of_file_stops_polling(tmp_path, interrupt, stats):
    console, recorder = make_input(tmp_path, interrupt, stats, b"")
    with console:
        assert interrupt.check_if_due(True)
        assert recorder.calls == 1
        assert console.get_char() is None
        assert interrupt.pending == []
        assert stats.num_console_chars_read == 0


def test_get_char_reschedules_only_when_a_char_was_taken(tmp_path, interrupt, stats):
    console, _ = make_input(tmp_path, interrupt, stats, b"x")
    with console:
        interrupt.check_if_due(True)
        assert interrupt.pending == []
        console.get_char()
        assert len(interrupt.pending) == 1


def test_input_callback_with_unread_char_is_an_error(tmp_path, interrupt, stats):
    console, _ = make_input(tmp_path, interrupt, stats, b"xy")
    with console:
        interrupt.check_if_due(True)
        with pytest.raises(RuntimeError):
            console.call_back()


def test_input_missing_file_raises(tmp_path, interrupt, stats):
    with pytest.raises(FileNotFoundError):
        ConsoleInput(interrupt, stats, Recorder(), tmp_path / "missing")


def test_output_writes_and_completes(tmp_path, interrupt, stats):
    path = tmp_path / "display"
    recorder = Recorder()
    with ConsoleOutput(interrupt, stats, recorder, path) as console:
        console.put_char("h")
        assert console.busy
        assert [(p.kind, p.when) for p in interrupt.pending] == [
            (IntType.CONSOLE_WRITE, CONSOLE_TIME)
        ]
        assert interrupt.check_if_due(True)
        assert not console.busy
        assert recorder.calls == 1
        assert stats.num_console_chars_written == 1
        console.put_char("i")
        interrupt.check_if_due(True)
    assert path.read_bytes() == b"hi"


def test_output_rejects_write_while_busy(tmp_path, interrupt, stats):
    with ConsoleOutput(interrupt, stats, Recorder(), tmp_path / "d") as console:
        console.put_char("a")
        with pytest.raises(RuntimeError):
            console.put_char("b")


def test_output_rejects_multiple_characters(tmp_path, interrupt, stats):
    with ConsoleOutput(interrupt, stats, Recorder(), tmp_path / "d") as console:
        with pytest.raises(ValueError):
            console.put_char("ab")
        assert not console.busy


def test_echo_round_trip(tmp_path, interrupt, stats):
    source = tmp_path / "in"
    source.write_bytes(b"ok")
    target = tmp_path / "out"
    with ConsoleInput(interrupt, stats, Recorder(), source) as keyboard, \
            ConsoleOutput(interrupt, stats, Recorder(), target) as display:
        while True:
            interrupt.check_if_due(True)
            ch = keyboard.get_char()
            if ch is None:
                break
            display.put_char(ch)
            while display.busy:
                interrupt.check_if_due(True)
    assert target.read_bytes() == b"ok"
    assert stats.num_console_chars_read == stats.num_console_chars_written == 2