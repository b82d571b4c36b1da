import pytest
import yaml

from dnspipe.cli import main


def test_config_gen(tmp_path):
    out = tmp_path / "config.yaml"
    assert main(["config", "gen", str(out)]) == 0
    assert yaml.safe_load(out.read_text())["plugins"][0]["tag"] == "forward_google"


def test_config_conv(tmp_path):
    src = tmp_path / "config.yaml"
    dst = tmp_path / "config.json"
    assert main(["config", "gen", str(src)]) == 0
    assert main(["config", "conv", "-i", str(src), "-o", str(dst)]) == 0
    assert yaml.safe_load(dst.read_text()) == yaml.safe_load(src.read_text())


def test_config_conv_existing_output_fails(tmp_path):
    src = tmp_path / "config.yaml"
    main(["config", "gen", str(src)])
    assert main(["config", "conv", "--in", str(src), "--out", str(src)]) == 1


def test_config_conv_requires_output(tmp_path):
    with pytest.raises(SystemExit) as info:
        main(["config", "conv", "-i", str(tmp_path / "a.yaml")])
    assert info.value.code == 2


def test_probe_bad_address_fails():
    assert main(["probe", "conn-reuse", "127.0.0.1"]) == 1


def test_command_is_required():
    with pytest.raises(SystemExit) as info:
        main([])
    assert info.value.code == 2