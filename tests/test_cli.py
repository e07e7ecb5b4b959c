"""CLI smoke tests using typer's CliRunner."""

import json

import pytest
from typer.testing import CliRunner

from collectra import config as config_module
from collectra.cli.app import app
from collectra.library import CollectionLibrary

runner = CliRunner()

LIBRARY_YAML = """\
collections:
  - name: forest
    collection_tags: [outdoor]
    entries:
      - asset_path: props/stump
        tags: [wood]
      - is_sub_collection: true
        sub_collection_ref: rocks
        weight: 3
        tags: [stone]
  - name: rocks
    kind: mesh
    collection_tags: [rock]
    entries:
      - asset_path: meshes/rock_a
        weight: 2
        category: small
      - asset_path: meshes/rock_b
        category: large
"""

CYCLE_YAML = """\
collections:
  - name: a
    entries:
      - is_sub_collection: true
        sub_collection_ref: b
  - name: b
    entries:
      - is_sub_collection: true
        sub_collection_ref: a
"""


@pytest.fixture
def library_file(tmp_path):
    path = tmp_path / "library.yaml"
    path.write_text(LIBRARY_YAML)
    return path


def _json(result):
    return json.loads(result.output)


class TestConfigCommand:
    """Tests for the config command."""

    def test_config_show(self):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "Resolution" in result.output
        assert "Defaults" in result.output

    def test_config_set_and_reset(self):
        result = runner.invoke(app, ["config", "set", "resolution.default_pick_mode", "random"])
        assert result.exit_code == 0
        data = json.loads(config_module.CONFIG_FILE.read_text())
        assert data["resolution"]["default_pick_mode"] == "random"

        result = runner.invoke(app, ["config", "reset"])
        assert result.exit_code == 0
        assert not config_module.CONFIG_FILE.exists()

    def test_config_set_seed(self):
        result = runner.invoke(app, ["config", "set", "defaults.seed", "12"])
        assert result.exit_code == 0
        data = json.loads(config_module.CONFIG_FILE.read_text())
        assert data["defaults"]["seed"] == 12

    def test_config_set_invalid_key(self):
        result = runner.invoke(app, ["config", "set", "invalid.key", "value"])
        assert result.exit_code == 1
        assert "Unknown key" in result.output

    def test_config_set_invalid_int_value(self):
        result = runner.invoke(app, ["config", "set", "defaults.seed", "abc"])
        assert result.exit_code == 1
        assert "Invalid integer" in result.output

    def test_config_set_invalid_pick_mode(self):
        result = runner.invoke(app, ["config", "set", "resolution.default_pick_mode", "up"])
        assert result.exit_code == 1
        assert "Invalid pick mode" in result.output

    def test_config_set_invalid_tag_inheritance(self):
        result = runner.invoke(
            app, ["config", "set", "resolution.default_tag_inheritance", "asset,nope"]
        )
        assert result.exit_code == 1

    def test_config_set_missing_args(self):
        result = runner.invoke(app, ["config", "set"])
        assert result.exit_code == 1
        assert "Usage:" in result.output

    def test_config_unknown_action(self):
        result = runner.invoke(app, ["config", "unknown_action"])
        assert result.exit_code == 1
        assert "Unknown action" in result.output


class TestValidateCommand:
    """Tests for the validate command."""

    def test_validate_nonexistent_file(self):
        result = runner.invoke(app, ["validate", "/nonexistent/path.yaml"])
        assert result.exit_code == 3

    def test_validate_valid(self, library_file):
        result = runner.invoke(app, ["--json", "validate", str(library_file)])
        assert result.exit_code == 0
        data = _json(result)
        assert data["status"] == "success"
        assert data["problems"] == []
        assert data["collections"] == 2

    def test_validate_cycle(self, tmp_path):
        path = tmp_path / "cycle.yaml"
        path.write_text(CYCLE_YAML)
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "cycle" in result.output

    def test_validate_unknown_kind(self, tmp_path):
        path = tmp_path / "kind.yaml"
        path.write_text("collections:\n  - name: a\n    kind: sprite\n")
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "Invalid library" in result.output


class TestInspectCommand:
    """Tests for the inspect command."""

    def test_inspect_library(self, library_file):
        result = runner.invoke(app, ["--json", "inspect", str(library_file)])
        assert result.exit_code == 0
        rows = {row["Name"]: row for row in _json(result)["collections"]}
        assert rows["forest"]["Entries"] == "2"
        assert rows["forest"]["Weight"] == "4"
        assert rows["rocks"]["Kind"] == "mesh"
        assert rows["rocks"]["Categories"] == "large, small"

    def test_inspect_collection(self, library_file):
        result = runner.invoke(app, ["--json", "inspect", str(library_file), "-c", "forest"])
        assert result.exit_code == 0
        data = _json(result)
        assert [row["Entry"] for row in data["entries"]] == ["props/stump", "-> rocks"]
        assert data["total_weight"] == 4

    def test_inspect_unknown_collection(self, library_file):
        result = runner.invoke(app, ["inspect", str(library_file), "-c", "lake"])
        assert result.exit_code == 4

    def test_inspect_human(self, library_file):
        result = runner.invoke(app, ["inspect", str(library_file)])
        assert result.exit_code == 0
        assert "2 collections" in result.output


class TestPickCommand:
    """Tests for the pick command."""

    def test_weighted_picks(self, library_file):
        result = runner.invoke(
            app, ["--json", "pick", str(library_file), "-c", "forest", "-s", "10", "-n", "20"]
        )
        assert result.exit_code == 0
        data = _json(result)
        assert data["resolved"] == 20
        assert len(data["picks"]) == 20
        assert data["picks"][0]["Request"] == "10"
        assert {row["Host"] for row in data["picks"]} <= {"forest", "rocks"}

    def test_picks_are_deterministic(self, library_file):
        args = ["--json", "pick", str(library_file), "-c", "forest", "-s", "3", "-n", "10"]
        first = _json(runner.invoke(app, args))
        second = _json(runner.invoke(app, args))
        assert first["picks"] == second["picks"]

    def test_index_mode(self, library_file):
        result = runner.invoke(
            app,
            [
                "--json",
                "pick",
                str(library_file),
                "-c",
                "rocks",
                "--mode",
                "index",
                "--pick-mode",
                "descending",
                "-n",
                "3",
            ],
        )
        assert result.exit_code == 0
        data = _json(result)
        assert [row["Entry"] for row in data["picks"]] == [
            "meshes/rock_b",
            "meshes/rock_a",
            "-",
        ]
        assert data["resolved"] == 2
        assert len(data["warnings"]) == 1

    def test_category(self, library_file):
        result = runner.invoke(
            app,
            ["--json", "pick", str(library_file), "-c", "rocks", "--category", "small", "-n", "5"],
        )
        data = _json(result)
        assert {row["Entry"] for row in data["picks"]} == {"meshes/rock_a"}

    def test_tags(self, library_file):
        result = runner.invoke(
            app,
            [
                "--json",
                "pick",
                str(library_file),
                "-c",
                "forest",
                "--tags",
                "root_collection",
                "-n",
                "5",
            ],
        )
        data = _json(result)
        assert {row["Tags"] for row in data["picks"]} == {"outdoor"}

    def test_invalid_tags(self, library_file):
        result = runner.invoke(
            app, ["pick", str(library_file), "-c", "forest", "--tags", "sideways"]
        )
        assert result.exit_code == 1

    def test_bad_config_pick_mode_falls_back(self, library_file):
        config_module.CONFIG_DIR.mkdir(parents=True)
        config_module.CONFIG_FILE.write_text(
            json.dumps({"resolution": {"default_pick_mode": "sideways"}})
        )
        result = runner.invoke(
            app, ["--json", "pick", str(library_file), "-c", "rocks", "--mode", "index", "-n", "2"]
        )
        assert result.exit_code == 0
        assert _json(result)["resolved"] == 2

    def test_unknown_collection(self, library_file):
        result = runner.invoke(app, ["pick", str(library_file), "-c", "lake"])
        assert result.exit_code == 4
        assert "Unknown collection" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["pick", str(tmp_path / "none.yaml"), "-c", "forest"])
        assert result.exit_code == 3


class TestFlattenCommand:
    """Tests for the flatten command."""

    def test_flatten(self, library_file, tmp_path):
        output = tmp_path / "flat.yaml"
        result = runner.invoke(
            app, ["--json", "flatten", str(library_file), "-c", "forest", "-o", str(output)]
        )
        assert result.exit_code == 0
        assert _json(result)["leaves"] == 3

        flat = CollectionLibrary.load(output).get("forest_flat")
        assert [e.asset_path for e in flat.entries] == [
            "props/stump",
            "meshes/rock_a",
            "meshes/rock_b",
        ]
        assert flat.entries[1].tags == {"stone", "rock"}

    def test_flatten_with_name(self, library_file, tmp_path):
        output = tmp_path / "flat.yaml"
        result = runner.invoke(
            app,
            ["flatten", str(library_file), "-c", "rocks", "-o", str(output), "--name", "r"],
        )
        assert result.exit_code == 0
        assert CollectionLibrary.load(output).get("r").type_id == "mesh"

    def test_flatten_unknown_collection(self, library_file, tmp_path):
        result = runner.invoke(
            app, ["flatten", str(library_file), "-c", "lake", "-o", str(tmp_path / "x.yaml")]
        )
        assert result.exit_code == 4


class TestVersionFlag:
    """Test the --version flag."""

    def test_version_output(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "collectra 0.1.0" in result.output
