import json

from typer.testing import CliRunner

from cli import cli_app

runner = CliRunner()

TRACES = [
    {"id": "T1", "steps": [{"page": "A"}, {"page": "B"}, {"page": "C"}]},
    {"id": "T2", "steps": [{"page": "C"}, {"page": "A"}]},
]


def write_source(tmp_path, payload) -> str:
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_layout_prints_every_node(tmp_path):
    result = runner.invoke(cli_app, ["layout", write_source(tmp_path, TRACES)])

    assert result.exit_code == 0
    for node_id in ("A", "B", "C"):
        assert node_id in result.output
    assert "C->A" in result.output


def test_layout_json_output(tmp_path):
    result = runner.invoke(cli_app, ["layout", write_source(tmp_path, TRACES), "--json"])

    assert result.exit_code == 0
    assert '"isStart": true' in result.output


def test_highlight_prints_sets(tmp_path):
    result = runner.invoke(cli_app, ["highlight", write_source(tmp_path, TRACES), "--path", "A, B"])

    assert result.exit_code == 0
    assert "A->B" in result.output


def test_highlight_with_nothing_to_show(tmp_path):
    result = runner.invoke(cli_app, ["highlight", write_source(tmp_path, TRACES), "-p", "X"])

    assert result.exit_code == 0
    assert "Nothing to highlight" in result.output


def test_missing_file_exits_with_error(tmp_path):
    result = runner.invoke(cli_app, ["layout", str(tmp_path / "missing.json")])

    assert result.exit_code == 1
    assert "File not found" in result.output


def test_sample_command():
    result = runner.invoke(cli_app, ["sample"])

    assert result.exit_code == 0
    assert "/login" in result.output


def test_unreadable_paths_exit_with_error(tmp_path):
    binary = tmp_path / "binary.json"
    binary.write_bytes(b"\xff\xfe\x00not json")

    for target, message in ((tmp_path, "Cannot read file"), (binary, "Not UTF-8 text")):
        result = runner.invoke(cli_app, ["layout", str(target)])

        assert result.exit_code == 1
        assert message in result.output
