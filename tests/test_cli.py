import json

import pytest

from conftest import python_command
from laundrymon import cli
from laundrymon.constants import VERSION


@pytest.fixture(autouse=True)
def no_signal_handlers(monkeypatch):
    # main() installs SIGINT/SIGTERM handlers; keep them out of the test runner.
    monkeypatch.setattr(cli.signal, "signal", lambda *a, **k: None)


def test_version(capsys):
    assert cli.main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == VERSION


def test_no_pins_prints_help(capsys):
    assert cli.main([]) == 1
    assert "usage:" in capsys.readouterr().out


def test_print_config(capsys):
    assert cli.main(["-p", "14,4", "--filter-size", "5", "--print-config"]) == 0
    doc = json.loads(capsys.readouterr().out)
    assert doc["acquisition"]["pins"] == [14, 4]
    assert doc["sampling"]["filter_size"] == 5


def test_invalid_config_exits_before_polling(capsys, monkeypatch):
    def fail(*a, **k):
        raise AssertionError("poll loop must not be built")

    monkeypatch.setattr(cli.PollLoop, "from_settings", fail)
    assert cli.main(["-p", "14,14"]) == 2
    assert "unique" in capsys.readouterr().err
    assert cli.main(["-p", "14", "--samples-count", "0"]) == 2


def test_bad_config_file(tmp_path, capsys):
    cfg = tmp_path / "broken.toml"
    cfg.write_text("[sampling\n")
    assert cli.main(["--config", str(cfg)]) == 2
    assert "cannot load configuration" in capsys.readouterr().err


def test_wrongly_typed_config_value_exits_2(tmp_path, capsys, monkeypatch):
    def fail(*a, **k):
        raise AssertionError("poll loop must not be built")

    monkeypatch.setattr(cli.PollLoop, "from_settings", fail)
    cfg = tmp_path / "laundrymon.toml"
    cfg.write_text("[acquisition]\npins = [14]\n[sampling]\ncheck_period = \"100\"\n")
    assert cli.main(["--config", str(cfg), "--port", "0"]) == 2
    err = capsys.readouterr().err
    assert err.startswith("ERROR:")
    assert "check_period" in err


def test_doctor_with_mock_source(capsys):
    assert cli.main(["-p", "14,3", "--source", "mock", "--doctor"]) == 0
    out = capsys.readouterr().out
    assert "OK: all 2 pin(s)" in out


def test_failing_command_is_fatal(capsys):
    cmd = python_command("import sys; sys.exit(1)")
    code = cli.main(["-p", "14", "--command", cmd, "--port", "0", "--no-banner"])
    assert code == 1
    out = capsys.readouterr().out
    assert "protocol_violation" in out
    assert "fatal" in out


def test_run_with_mock_source_until_stopped(capsys, monkeypatch):
    ticks = []
    real_tick = cli.PollLoop.tick

    def counting_tick(self):
        outcome = real_tick(self)
        ticks.append(outcome)
        if len(ticks) == 3:
            self.stop()
        return outcome

    monkeypatch.setattr(cli.PollLoop, "tick", counting_tick)
    code = cli.main(["-p", "14,4", "--source", "mock", "--port", "0", "--check-period", "1", "--json"])
    assert code == 0
    assert all(t.ok for t in ticks)
    out = capsys.readouterr().out
    assert "Pins: [14, 4]" in out
    events = [json.loads(line)["event"] for line in out.splitlines() if line.startswith("{")]
    assert events[0] == "startup"
    assert events[-1] == "stopped"
