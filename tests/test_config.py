import pytest

from laundrymon.config import (
    Settings,
    build_arg_parser,
    config_defaults_from,
    get_bool_env,
    get_notifier_config,
    parse_pins,
    resolve_settings,
    resolved_config_dict,
)
from laundrymon.constants import MODE_CHANGES, MODE_THRESHOLD
from laundrymon.errors import ConfigError


def test_parser_leaves_unset_flags_none():
    args = build_arg_parser().parse_args(["-p", "14,4"])
    assert args.pins == [14, 4]
    assert args.command is None
    assert args.verbose is None
    assert args.skip_bad_lines is None


def test_parser_rejects_non_integer_pins():
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args(["-p", "14,x"])


def test_builtin_defaults():
    s = resolve_settings(build_arg_parser().parse_args(["-p", "14"]))
    assert s.command == "pinctrl"
    assert s.check_period == 100
    assert s.samples_count == 10
    assert s.positive_samples_needed == 2
    assert s.port == 8080
    assert s.filter_size == 0
    assert s.mode == MODE_THRESHOLD
    assert s.threshold == 2


def test_toml_backfills_and_cli_wins(tmp_path):
    cfg = tmp_path / "laundrymon.toml"
    cfg.write_text(
        "[acquisition]\n"
        "command = \"mock-pinctrl\"\n"
        "pins = [14, 4]\n"
        "[sampling]\n"
        "samples_count = 1000\n"
        "state_changes_needed = 20\n"
        "filter_size = 50\n"
        "[http]\n"
        "port = 9000\n"
        "[logging]\n"
        "json = true\n"
    )
    args = build_arg_parser().parse_args(["--config", str(cfg), "--port", "0", "-p", "25"])
    s = resolve_settings(args)
    assert s.pins == [25]
    assert s.port == 0
    assert s.command == "mock-pinctrl"
    assert s.samples_count == 1000
    assert s.mode == MODE_CHANGES
    assert s.threshold == 20
    assert s.filter_size == 50
    assert s.json is True
    assert s.verbose is False


def test_toml_values_of_the_wrong_type_fail_validation(tmp_path):
    cfg = tmp_path / "laundrymon.toml"
    cfg.write_text("[acquisition]\npins = [14]\n[sampling]\ncheck_period = \"100\"\n")
    s = resolve_settings(build_arg_parser().parse_args(["--config", str(cfg)]))
    with pytest.raises(ConfigError, match="check_period must be an integer"):
        s.validate()


def test_missing_config_file_raises(tmp_path):
    args = build_arg_parser().parse_args(["--config", str(tmp_path / "nope.toml")])
    with pytest.raises(OSError):
        resolve_settings(args)


def test_config_defaults_from_empty():
    d = config_defaults_from({})
    assert d["pins"] == []
    assert d["state_changes_needed"] is None


@pytest.mark.parametrize("value,expected", [("14,4", [14, 4]), ("14, 4,", [14, 4]), (7, [7]), (["3", 5], [3, 5])])
def test_parse_pins(value, expected):
    assert parse_pins(value) == expected


def test_parse_pins_rejects_garbage():
    with pytest.raises(ConfigError):
        parse_pins("a,b")
    for value in ([14.5], [True], True, {"pin": 14}):
        with pytest.raises(ConfigError):
            parse_pins(value)


@pytest.mark.parametrize(
    "kwargs,message",
    [
        ({"pins": []}, "at least one pin"),
        ({"pins": [14, 14]}, "unique"),
        ({"pins": [-1]}, "non-negative"),
        ({"pins": [1], "check_period": 0}, "check period"),
        ({"pins": [1], "samples_count": 0}, "samples count"),
        ({"pins": [1], "positive_samples_needed": -1}, "threshold"),
        ({"pins": [1], "state_changes_needed": -2}, "threshold"),
        ({"pins": [1], "filter_size": -1}, "filter size"),
        ({"pins": [1], "port": 70000}, "port"),
        ({"pins": [1], "command": "  "}, "command"),
        ({"pins": [1], "source": "serial"}, "source"),
        ({"pins": [1], "command_timeout": -1}, "command timeout"),
        ({"pins": [1], "check_period": "100"}, "check_period must be an integer"),
        ({"pins": [1], "samples_count": 2.5}, "samples_count must be an integer"),
        ({"pins": [1], "port": True}, "port must be an integer"),
        ({"pins": [1], "command_timeout": "5"}, "command_timeout must be a number"),
        ({"pins": [1], "skip_bad_lines": "yes"}, "skip_bad_lines must be true or false"),
    ],
)
def test_validate_rejects(kwargs, message):
    with pytest.raises(ConfigError) as exc:
        Settings(**kwargs).validate()
    assert message in str(exc.value)


def test_validate_accepts_degenerate_thresholds():
    s = Settings(pins=[1], samples_count=5, positive_samples_needed=0).validate()
    assert "always read true" in s.warnings()[0]
    s = Settings(pins=[1], samples_count=5, positive_samples_needed=6).validate()
    assert "never trigger" in s.warnings()[0]
    assert Settings(pins=[1]).validate().warnings() == []


def test_command_not_required_for_mock_source():
    Settings(pins=[1], command="", source="mock").validate()


def test_resolved_config_dict_sections():
    d = resolved_config_dict(Settings(pins=[14], state_changes_needed=3))
    assert set(d) == {"acquisition", "sampling", "http", "logging"}
    assert d["sampling"]["mode"] == MODE_CHANGES
    assert d["acquisition"]["pins"] == [14]


def test_bool_env(monkeypatch):
    monkeypatch.setenv("X_FLAG", "Yes")
    assert get_bool_env("X_FLAG") is True
    monkeypatch.setenv("X_FLAG", "off")
    assert get_bool_env("X_FLAG", True) is False
    monkeypatch.setenv("X_FLAG", "maybe")
    assert get_bool_env("X_FLAG", True) is True
    monkeypatch.delenv("X_FLAG")
    assert get_bool_env("X_FLAG") is False


def test_notifier_config_from_env(monkeypatch):
    monkeypatch.setenv("LAUNDRYMON_NOTIFY", "1")
    monkeypatch.setenv("PUSHOVER_TOKEN", "t")
    monkeypatch.setenv("PUSHOVER_USER", "u")
    assert get_notifier_config() == {"enabled": True, "pushover_token": "t", "pushover_user": "u"}
