import pytest

from phashkit import ConfigError, EngineSettings, HashConfig, Linear, Method, Square, parse_geometry


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("8x8", Square(8)),
        ("7X7", Square(7)),
        (" 6 x 6 ", Square(6)),
        ("64", Linear(64)),
        (20, Linear(20)),
        (Square(5), Square(5)),
    ],
)
def test_parse_geometry(raw, expected):
    assert parse_geometry(raw) == expected


@pytest.mark.parametrize("raw", ["8x7", "0x0", "0", "-3", "abc", "8x", "", 0, -1, True, 2.5, None])
def test_parse_geometry_rejects_invalid(raw):
    with pytest.raises(ConfigError):
        parse_geometry(raw)


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)


def test_mirror_and_mirrorproof_are_exclusive():
    with pytest.raises(ConfigError):
        HashConfig(mirror=True, mirrorproof=True)
    with pytest.raises(ConfigError):
        HashConfig().with_options(mirror=True, mirrorproof=True)


def test_reduce_is_dropped_for_linear_geometry():
    cfg = HashConfig.create(geometry="20", reduce=True)
    assert cfg.reduce is False
    assert cfg == HashConfig.create(geometry=20)
    assert hash(cfg) == hash(HashConfig.create(geometry=20))


@pytest.mark.parametrize(
    "geometry, reduce, bits",
    [("8x8", False, 64), ("7x7", True, 27), ("6x6", True, 20), ("2x2", True, 2), ("40", False, 40)],
)
def test_bit_length(geometry, reduce, bits):
    assert HashConfig.create(geometry=geometry, reduce=reduce).bit_length == bits


def test_validate_for_grid_size():
    HashConfig.create(geometry="32x32").validate_for(32)
    with pytest.raises(ConfigError):
        HashConfig.create(geometry="33x33").validate_for(32)
    with pytest.raises(ConfigError):
        HashConfig.create(geometry=1025).validate_for(32)
    HashConfig.create(geometry=512, method="average_x").validate_for(32)
    with pytest.raises(ConfigError):
        HashConfig.create(geometry=600, method="average_x").validate_for(32)


def test_method_parse():
    assert Method.parse("Average-X") is Method.AVERAGE_X
    assert Method.parse("MEDIAN") is Method.MEDIAN
    assert Method.parse(Method.LOG) is Method.LOG
    with pytest.raises(ConfigError):
        Method.parse("mode")


def test_describe():
    cfg = HashConfig.create(geometry="7x7", method="median", reduce=True, mirrorproof=True)
    assert cfg.describe() == "7x7/median/reduce/mirrorproof"


def test_engine_settings_validation():
    with pytest.raises(ConfigError):
        EngineSettings(size=1)
    with pytest.raises(ConfigError):
        EngineSettings(resample="sinc")
    with pytest.raises(ConfigError):
        EngineSettings(backends=())
    with pytest.raises(ConfigError):
        EngineSettings(size=4)  # default 8x8 geometry does not fit
    settings = EngineSettings(resample="LANCZOS", backends=(" Pillow ",))
    assert settings.resample == "lanczos"
    assert settings.backends == ("pillow",)


def test_engine_settings_from_env():
    env = {
        "PHASHKIT_SIZE": "16",
        "PHASHKIT_GEOMETRY": "6x6",
        "PHASHKIT_METHOD": "median",
        "PHASHKIT_REDUCE": "yes",
        "PHASHKIT_BACKENDS": "pillow",
    }
    settings = EngineSettings.from_env(env)
    assert settings.size == 16
    assert settings.backends == ("pillow",)
    assert settings.default_config == HashConfig(Square(6), reduce=True, method=Method.MEDIAN)


def test_engine_settings_from_env_defaults_and_errors():
    assert EngineSettings.from_env({}) == EngineSettings()
    with pytest.raises(ConfigError):
        EngineSettings.from_env({"PHASHKIT_SIZE": "big"})
    with pytest.raises(ConfigError):
        EngineSettings.from_env({"PHASHKIT_REDUCE": "maybe"})
