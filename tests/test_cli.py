import pytest

from photobooth import cli

from conftest import STRIP_COLORS


def test_filters_command(capsys):
    assert cli.main(["filters"]) == 0
    names = capsys.readouterr().out.split()
    assert "vintage" in names
    assert "color" in names


def test_command_required():
    with pytest.raises(SystemExit):
        cli.main([])


def test_compose_command(tmp_path, png_upload, capsys):
    paths = []
    for i, color in enumerate(STRIP_COLORS[:2]):
        name, data = png_upload(f"{i}.png", color)
        path = tmp_path / name
        path.write_bytes(data)
        paths.append(str(path))

    out_dir = tmp_path / "strips"
    code = cli.main(["compose", *paths, "--filter", "sepia", "--output-dir", str(out_dir), "--seed", "3"])
    assert code == 0
    assert len(list(out_dir.glob("photobooth-sepia-*.png"))) == 1
    assert "Strip saved to" in capsys.readouterr().out


def test_compose_with_unknown_filter(tmp_path):
    assert cli.main(["compose", str(tmp_path / "a.png"), "--filter", "lomo"]) == 2


def test_shoot_single_with_mock_camera(tmp_path, capsys):
    code = cli.main(["shoot", "--single", "--camera", "mock", "--output-dir", str(tmp_path)])
    assert code == 0
    assert len(list(tmp_path.glob("photobooth-single-*.png"))) == 1


def test_config_file(tmp_path):
    config_path = tmp_path / "booth.yaml"
    config_path.write_text(f"default_filter: retro\noutput_dir: {tmp_path}\n")
    args = cli.build_parser().parse_args(["--config", str(config_path), "compose", "x.png", "--grain", "0.2"])
    config = cli._load_config(args)
    assert config.default_filter == "retro"
    assert config.grain == 0.2
