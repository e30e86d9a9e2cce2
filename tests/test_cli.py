# tests/test_cli.py

"""
Offline session scoring script.
"""

import json

import pytest

from salescoach.scripts.score_session import load_session_file, main


@pytest.fixture
def rubric_file(tmp_path, small_rubric):
    path = tmp_path / "rubric.json"
    document = {"steps": [step.model_dump() for step in small_rubric.steps]}
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


@pytest.fixture
def session_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps({
        "checked": [101, 102, 103, 104, 203],
        "overrides": {"2": 4},
        "assessee_name": "Jane Smith",
    }), encoding="utf-8")
    return path


def write_session(tmp_path, payload):
    path = tmp_path / "broken_session.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestLoadSessionFile:

    def test_keys_converted_to_ints(self, session_file):
        data = load_session_file(session_file)
        assert data["checked"] == [101, 102, 103, 104, 203]
        assert data["overrides"] == {2: 4}
        assert data["title"] == "Offline assessment"

    def test_defaults_for_missing_fields(self, tmp_path):
        data = load_session_file(write_session(tmp_path, {}))
        assert data["checked"] == []
        assert data["overrides"] == {}
        assert data["assessee_name"] == "Unnamed coachee"


class TestMain:

    def test_text_output(self, session_file, rubric_file, capsys):
        assert main([str(session_file), "--rubric", str(rubric_file)]) == 0
        out = capsys.readouterr().out
        assert "Total score:   13" in out
        assert "Observed:      5/11" in out
        assert "Overall level: Experienced" in out
        assert "Opening" in out

    def test_markdown_to_file(self, session_file, rubric_file, tmp_path):
        output = tmp_path / "report.md"
        code = main([str(session_file), "--rubric", str(rubric_file), "--format", "markdown", "-o", str(output)])
        assert code == 0
        report = output.read_text(encoding="utf-8")
        assert report.startswith("# Sales Behavior Assessment Results")
        assert "Jane Smith" in report
        assert "**Total Score:** 13 points" in report

    def test_csv_output(self, session_file, rubric_file, capsys):
        assert main([str(session_file), "--rubric", str(rubric_file), "--format", "csv"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "Step,Score,Level,Source,Progress %,Behaviors"
        assert lines[2].startswith("Active Listening,3,Master,manual")

    def test_json_output_with_benchmark(self, session_file, rubric_file, capsys):
        code = main([str(session_file), "--rubric", str(rubric_file), "--format", "json", "--benchmark-level", "1"])
        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["snapshot"]["total_score"] == 13
        assert payload["benchmark"][0]["target"] == 4
        assert payload["benchmark"][0]["actual_percent"] == 250

    def test_unknown_behavior_fails(self, tmp_path, rubric_file):
        path = write_session(tmp_path, {"checked": [999]})
        assert main([str(path), "--rubric", str(rubric_file)]) == 1

    def test_override_out_of_range_fails(self, tmp_path, rubric_file):
        path = write_session(tmp_path, {"overrides": {"1": 5}})
        assert main([str(path), "--rubric", str(rubric_file)]) == 1

    def test_missing_session_file(self, tmp_path, rubric_file):
        assert main([str(tmp_path / "nope.json"), "--rubric", str(rubric_file)]) == 1

    def test_missing_rubric_file(self, session_file, tmp_path):
        assert main([str(session_file), "--rubric", str(tmp_path / "nope.json")]) == 1
