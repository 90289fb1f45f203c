import pytest

from photobooth.config import BoothConfig


def test_defaults():
    config = BoothConfig()
    assert config.photos_per_strip == 4
    assert config.countdown_seconds == 3
    assert config.default_filter == "color"


def test_from_yaml_keeps_unknown_keys(tmp_path):
    path = tmp_path / "booth.yaml"
    path.write_text(
        "photos_per_strip: 3\n"
        "default_filter: vintage\n"
        "resolution: [1280, 720]\n"
        "printer: dnp-rx1\n"
    )
    config = BoothConfig.from_yaml(str(path))
    assert config.photos_per_strip == 3
    assert config.default_filter == "vintage"
    assert config.resolution == (1280, 720)
    assert config.extra == {"printer": "dnp-rx1"}


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert BoothConfig.from_yaml(str(path)) == BoothConfig()


@pytest.mark.parametrize(
    "kwargs",
    [{"photos_per_strip": 0}, {"countdown_seconds": -1}, {"intensity": 1.2}, {"grain": -0.5}],
)
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        BoothConfig(**kwargs)


def test_ensure_paths(tmp_path):
    config = BoothConfig(output_dir=str(tmp_path / "a" / "b"))
    config.ensure_paths()
    assert (tmp_path / "a" / "b").is_dir()
