"""Tests for graph file models and parsing."""

from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from strata_deploy.config.models import DeployerConfig, LiteralArg, ReferenceArg, ResourceSpec
from strata_deploy.config.parser import Config, ConfigValidationError, DEFAULT_LEDGER_DIR

EXAMPLE_GRAPH = Path(__file__).resolve().parent.parent / "examples" / "kitty_arena.yaml"


def write_graph(tmp_path, text: str, name: str = "graph.yaml") -> Path:
    path = tmp_path / name
    path.write_text(dedent(text))
    return path


class TestResourceSpec:
    def test_bare_values_become_literals(self):
        s = ResourceSpec(name="A", args=[1, "two", None, [3], {"ref": "B"}, {"value": {"x": 1}}])
        assert s.args == [
            LiteralArg(value=1),
            LiteralArg(value="two"),
            LiteralArg(value=None),
            LiteralArg(value=[3]),
            ReferenceArg(ref="B"),
            LiteralArg(value={"x": 1}),
        ]

    def test_literal_that_looks_like_a_name_stays_literal(self):
        s = ResourceSpec(name="B", args=["A"])
        assert s.references == []

    def test_references_in_first_use_order(self):
        s = ResourceSpec(name="C", args=[{"ref": "B"}, {"ref": "A"}, {"ref": "B"}])
        assert s.references == ["B", "A"]

    @pytest.mark.parametrize("name", ["", "  ", " padded", "padded "])
    def test_bad_names_rejected(self, name):
        with pytest.raises(ValidationError):
            ResourceSpec(name=name)

    def test_unknown_binding_keys_rejected(self):
        with pytest.raises(ValidationError):
            ResourceSpec(name="A", args=[{"ref": "B", "extra": 1}])

    def test_specs_are_immutable(self):
        s = ResourceSpec(name="A")
        with pytest.raises(ValidationError):
            s.name = "B"

    def test_binding_kind(self):
        assert ReferenceArg(ref="A").kind == "reference"
        assert LiteralArg(value=1).kind == "literal"


class TestDeployerConfig:
    def test_defaults_to_dry_run(self):
        assert DeployerConfig().type == "dry-run"

    def test_command_type_requires_command(self):
        with pytest.raises(ValidationError):
            DeployerConfig(type="command")

    def test_identifier_pattern_must_compile(self):
        with pytest.raises(ValidationError):
            DeployerConfig(identifier_pattern="0x[")

    def test_retries_bounded(self):
        with pytest.raises(ValidationError):
            DeployerConfig(retries=11)

    def test_command_retries_need_exit_codes(self):
        with pytest.raises(ValidationError, match="retry_exit_codes"):
            DeployerConfig(type="command", command=["deploy"], retries=2)

        config = DeployerConfig(type="command", command=["deploy"], retries=2, retry_exit_codes=[75])
        assert config.retry_exit_codes == [75]


class TestConfig:
    def test_loads_example_graph(self):
        cfg = Config(str(EXAMPLE_GRAPH)).load()

        assert cfg.project == "kitty-arena"
        assert [s.name for s in cfg.resources] == ["KittyCore", "Arena"]
        assert cfg.resources[1].references == ["KittyCore"]
        assert cfg.deployer.type == "command"
        assert cfg.deployer.retries == 2
        assert cfg.deployer.retry_exit_codes == [75]
        assert cfg.get_artifacts() == {"KittyCore": "./KittyCore.sol", "Arena": "./Arena.sol"}

    def test_example_graph_plans(self):
        graph = Config(str(EXAMPLE_GRAPH)).load().build_graph()
        assert graph.topological_sort() == ["KittyCore", "Arena"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config(str(tmp_path / "nope.yaml")).load()

    def test_invalid_yaml(self, tmp_path):
        path = write_graph(tmp_path, "resources: [unclosed\n")
        with pytest.raises(ConfigValidationError, match="Failed to parse YAML"):
            Config(str(path)).load()

    def test_top_level_must_be_mapping(self, tmp_path):
        path = write_graph(tmp_path, "- just\n- a list\n")
        with pytest.raises(ConfigValidationError, match="mapping"):
            Config(str(path)).load()

    def test_missing_resources(self, tmp_path):
        path = write_graph(tmp_path, "project: empty\n")
        with pytest.raises(ConfigValidationError) as exc_info:
            Config(str(path)).load()
        assert exc_info.value.errors[0]["loc"] == ["resources"]

    def test_schema_errors_are_listed(self, tmp_path):
        path = write_graph(tmp_path, """\
            resources:
              - name: A
                unexpected: true
            """)
        with pytest.raises(ConfigValidationError) as exc_info:
            Config(str(path)).load()
        assert "unexpected" in str(exc_info.value)

    def test_duplicate_names(self, tmp_path):
        path = write_graph(tmp_path, """\
            resources:
              - name: A
              - name: A
            """)
        with pytest.raises(ConfigValidationError) as exc_info:
            Config(str(path)).load()
        assert exc_info.value.errors == [
            {"loc": ["resources", 1, "name"], "msg": "Duplicate resource name 'A'"}
        ]

    def test_cycles_are_left_to_the_planner(self, tmp_path):
        path = write_graph(tmp_path, """\
            resources:
              - name: A
                args: [{ref: B}]
              - name: B
                args: [{ref: A}]
            """)
        cfg = Config(str(path)).load()
        assert len(cfg.build_graph()) == 2


class TestLedgerPath:
    def test_override_wins(self, tmp_path):
        path = write_graph(tmp_path, """\
            ledger:
              path: from-file.jsonl
            resources: []
            """)
        cfg = Config(str(path)).load()
        assert cfg.resolve_ledger_path("cli.jsonl") == Path("cli.jsonl")

    def test_file_setting_is_relative_to_graph(self, tmp_path):
        path = write_graph(tmp_path, """\
            ledger:
              path: state/ledger.jsonl
              lock_timeout: 5
            resources: []
            """)
        cfg = Config(str(path)).load()
        assert cfg.resolve_ledger_path() == tmp_path / "state" / "ledger.jsonl"
        assert cfg.ledger.lock_timeout == 5

    def test_default_uses_project_then_stem(self, tmp_path):
        named = Config(str(write_graph(tmp_path, "project: shop\nresources: []\n"))).load()
        unnamed = Config(str(write_graph(tmp_path, "resources: []\n", name="market.yaml"))).load()

        assert named.resolve_ledger_path() == DEFAULT_LEDGER_DIR / "shop.jsonl"
        assert unnamed.resolve_ledger_path() == DEFAULT_LEDGER_DIR / "market.jsonl"
