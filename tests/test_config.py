import pytest

from octorealm.config import (
    CONFIG_FILE_NAME,
    Config,
    ConfigError,
    GameAction,
    default_binds,
)


def test_default_config_values():
    config = Config()
    assert config.ip == "127.0.0.1"
    assert config.port == 25565
    assert config.name is None
    assert config.keybindings == default_binds()


def test_default_binds_fresh_copy():
    binds = default_binds()
    assert binds[GameAction.MOVE_FORWARD] == ["KeyW"]
    binds[GameAction.MOVE_FORWARD].append("ArrowUp")
    assert default_binds()[GameAction.MOVE_FORWARD] == ["KeyW"]


def test_default_binds_omit_special1():
    assert GameAction.SPECIAL1 not in default_binds()
    assert GameAction.FIRE2 in default_binds()


def test_pressing_keybind_matches_bound_key():
    config = Config()
    pressed = {"KeyW"}
    assert config.pressing_keybind(pressed.__contains__, GameAction.MOVE_FORWARD)
    assert not config.pressing_keybind(pressed.__contains__, GameAction.MOVE_BACKWARD)


def test_pressing_keybind_any_of_several():
    config = Config(keybindings={GameAction.JUMP: ["Space", "KeyJ"]})
    assert config.pressing_keybind({"KeyJ"}.__contains__, GameAction.JUMP)


def test_pressing_keybind_falls_back_to_default():
    config = Config(keybindings={})
    assert config.pressing_keybind({"KeyS"}.__contains__, GameAction.MOVE_BACKWARD)


def test_pressing_unbound_action_raises():
    with pytest.raises(ConfigError):
        Config(keybindings={}).pressing_keybind(lambda key: True, GameAction.SPECIAL1)


def test_plays_sound():
    assert Config().plays_sound() is False
    assert Config(sound=None).plays_sound() is False
    assert Config(sound=True).plays_sound() is True


def test_yaml_round_trip():
    config = Config(ip="10.0.0.2", port=4000, name="tester", sound=True)
    assert Config.from_yaml(config.to_yaml()) == config


def test_default_config_str_round_trip():
    assert Config.from_yaml(Config.default_config_str()) == Config()


def test_from_yaml_missing_field():
    text = "port: 1\nsens: 1.0\nqe_sens: 1.0\nkeybindings: {}\n"
    with pytest.raises(ConfigError):
        Config.from_yaml(text)


def test_from_yaml_optional_fields_default_none():
    text = "ip: a\nport: 1\nsens: 1\nqe_sens: 2\nkeybindings: {}\n"
    config = Config.from_yaml(text)
    assert config.name is None
    assert config.sound is None
    assert config.keybindings == {}


def test_from_yaml_unknown_action():
    text = "ip: a\nport: 1\nsens: 1\nqe_sens: 2\nkeybindings:\n  Fly: [KeyF]\n"
    with pytest.raises(ConfigError):
        Config.from_yaml(text)


def test_from_yaml_invalid_port():
    text = "ip: a\nport: 70000\nsens: 1\nqe_sens: 2\nkeybindings: {}\n"
    with pytest.raises(ConfigError):
        Config.from_yaml(text)


def test_from_yaml_garbage():
    with pytest.raises(ConfigError):
        Config.from_yaml("ip: [unclosed")
    with pytest.raises(ConfigError):
        Config.from_yaml("- just\n- a list\n")


def test_load_creates_default_file(tmp_path):
    config = Config.load_from_dir(tmp_path)
    assert config == Config()
    written = (tmp_path / CONFIG_FILE_NAME).read_text(encoding="utf-8")
    assert Config.from_yaml(written) == Config()


def test_load_merges_default_binds(tmp_path):
    text = (
        "ip: 1.2.3.4\nport: 99\nsens: 0.5\nqe_sens: 1\n"
        "keybindings:\n  MoveForward: [ArrowUp]\n"
    )
    (tmp_path / CONFIG_FILE_NAME).write_text(text, encoding="utf-8")
    config = Config.load_from_dir(tmp_path)
    assert config.ip == "1.2.3.4"
    assert config.keybindings[GameAction.MOVE_FORWARD] == ["ArrowUp"]
    assert config.keybindings[GameAction.MOVE_BACKWARD] == default_binds()[
        GameAction.MOVE_BACKWARD
    ]


def test_load_broken_file_raises(tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text("ip: only\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        Config.load_from_dir(tmp_path)