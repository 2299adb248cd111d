"""Tests for authorized_keys output."""

import io

from keyward.keys.formatter import authorized_keys_line, write_authorized_keys
from keyward.keys.models import Key

KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIIbkhpQVQ+puug++hBYT8gHPk764sVZAbI0WhLIZ97+D alice"


class _ClosedPipe(io.StringIO):
    """Accepts ``limit`` writes, then behaves like a pipe whose reader left."""

    def __init__(self, limit):
        super().__init__()
        self.limit = limit

    def write(self, s):
        if self.limit <= 0:
            raise BrokenPipeError(32, "Broken pipe")
        self.limit -= 1
        return super().write(s)


class TestAuthorizedKeysLine:

    def test_with_options(self):
        k = Key(KEY, ssh_options='from="10.0.0.0/8"')
        assert authorized_keys_line(k) == f'from="10.0.0.0/8" {KEY}\n'

    def test_without_options(self):
        assert authorized_keys_line(Key(KEY)) == f"{KEY}\n"

    def test_multiple_options_verbatim(self):
        k = Key(KEY, ssh_options="no-pty,no-port-forwarding")
        assert authorized_keys_line(k) == f"no-pty,no-port-forwarding {KEY}\n"


class TestWriteAuthorizedKeys:

    def test_one_line_per_key_in_order(self, key_fixture):
        keys = key_fixture("keys_ssh_options.json")
        out = io.StringIO()
        assert write_authorized_keys(keys, out) == 3
        lines = out.getvalue().splitlines()
        assert lines[0].startswith('from="10.0.0.0/8" ssh-ed25519 ')
        assert lines[1].startswith("no-pty,no-port-forwarding ssh-ed25519 ")
        assert lines[2].startswith("ssh-ed25519 ")

    def test_duplicates_printed_twice(self):
        out = io.StringIO()
        write_authorized_keys([Key(KEY), Key(KEY)], out)
        assert out.getvalue() == f"{KEY}\n{KEY}\n"

    def test_nothing_to_print(self):
        out = io.StringIO()
        assert write_authorized_keys([], out) == 0
        assert out.getvalue() == ""

    def test_stdout_default(self, capsys):
        write_authorized_keys([Key(KEY)])
        assert capsys.readouterr().out == f"{KEY}\n"

    def test_broken_pipe_stops_quietly(self):
        out = _ClosedPipe(limit=1)
        assert write_authorized_keys([Key(KEY), Key(KEY), Key(KEY)], out) == 1
        assert out.getvalue() == f"{KEY}\n"
