import json

from leafscan import cli
from leafscan.services.fingerprint import ContentFingerprinter


def test_analyze_with_fallback_writes_json(tmp_path, leaf_png, capsys):
    image = tmp_path / "leaf.png"
    image.write_bytes(leaf_png)
    output = tmp_path / "result.json"

    code = cli.main(["analyze", str(image), "--fallback", "--output", str(output)])

    assert code == 0
    records = json.loads(output.read_text())
    assert records[0]["image"] == str(image)
    assert records[0]["source"] == "fallback"
    assert "Disease:" in capsys.readouterr().out


def test_analyze_without_models_fails(tmp_path, leaf_png):
    image = tmp_path / "leaf.png"
    image.write_bytes(leaf_png)

    assert cli.main(["analyze", str(image), "--model-dir", str(tmp_path / "models")]) == 1


def test_fingerprint_command(tmp_path, leaf_png, capsys):
    image = tmp_path / "leaf.png"
    image.write_bytes(leaf_png)

    assert cli.main(["fingerprint", str(image)]) == 0
    assert ContentFingerprinter().fingerprint(leaf_png) in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 2
    assert "usage" in capsys.readouterr().out.lower()
