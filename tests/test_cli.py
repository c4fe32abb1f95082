"""
Tests for the command-line interface.
"""

import json

import pytest

from gamepilot_identity.cli import main


@pytest.fixture
def files(tmp_path, horror_sessions, catalog):
    sessions = tmp_path / "sessions.json"
    sessions.write_text(json.dumps([s.to_dict() for s in horror_sessions]))

    games = tmp_path / "games.json"
    games.write_text(json.dumps([g.metadata() for g in catalog]))

    return {"sessions": str(sessions), "catalog": str(games), "dir": tmp_path}


class TestCli:
    """End-to-end CLI runs against JSON files"""

    def test_recommend_json(self, files, capsys):
        code = main([
            "recommend", "--sessions", files["sessions"], "--user", "me",
            "--catalog", files["catalog"], "-n", "3",
        ])
        output = json.loads(capsys.readouterr().out)

        assert code == 0
        assert output["userId"] == "me"
        assert output["isFallback"] is False
        assert len(output["recommendations"]) == 3

    def test_recommend_csv_to_file(self, files, capsys):
        target = files["dir"] / "recs.csv"
        code = main([
            "recommend", "--sessions", files["sessions"], "--catalog", files["catalog"],
            "--format", "csv", "--genre", "horror", "-o", str(target),
        ])

        lines = target.read_text().splitlines()
        assert code == 0
        assert lines[0] == "game_id,title,score,confidence,reasons"
        assert {line.split(",")[0] for line in lines[1:]} == {"g01", "g02"}
        assert "Output saved to" in capsys.readouterr().out

    def test_recommend_from_identity_file(self, files, capsys, empty_identity):
        identity = files["dir"] / "identity.json"
        identity.write_text(json.dumps(empty_identity.to_dict()))

        code = main([
            "recommend", "--identity", str(identity), "--catalog", files["catalog"], "--format", "simple",
        ])
        out = capsys.readouterr().out

        assert code == 0
        assert "Recommendations for: new-user" in out
        assert "Not enough history yet" in out

    def test_mood_with_forecast(self, files, capsys):
        code = main(["mood", "--sessions", files["sessions"], "--forecast"])
        output = json.loads(capsys.readouterr().out)

        assert code == 0
        assert output["analysis"]["mood"] == "intense"
        assert output["forecast"]["predictedMood"] == "intense"

    def test_identity_command(self, files, capsys):
        code = main(["identity", "--sessions", files["sessions"], "--user", "me"])
        output = json.loads(capsys.readouterr().out)

        assert code == 0
        assert output["id"] == "identity-me"
        assert output["computedMood"] == "intense"

    def test_missing_file_reports_error(self, files, capsys):
        code = main(["mood", "--sessions", str(files["dir"] / "nope.json")])

        assert code == 1
        assert "Error" in capsys.readouterr().err

    def test_invalid_json_reports_error(self, files, capsys):
        broken = files["dir"] / "broken.json"
        broken.write_text("{not json")

        assert main(["identity", "--sessions", str(broken), "--user", "me"]) == 1

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()
