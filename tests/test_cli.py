import json
import os
import shutil
import subprocess
import sys

from click.testing import CliRunner

from infragraph.cli import cli
from infragraph.detect import detect_format
from infragraph.graph.builder import build_graph
from infragraph.parsers import plan, tfstate
from infragraph.providers import get_provider
from infragraph.reporters import json_reporter, markdown

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")


def _fixture(name):
    return os.path.join(FIXTURES, name)


def test_module_execution():
    """Test that 'python -m infragraph' works."""
    result = subprocess.run(
        [sys.executable, "-m", "infragraph", "--help"],
        capture_output=True,
        text=True
    )
    assert result.returncode == 0
    assert "infragraph" in result.stdout


class TestDetectFormat:
    def test_fixtures(self):
        assert detect_format(_fixture("sample.tfstate")) == "tfstate"
        assert detect_format(_fixture("plan.json")) == "plan"
        assert detect_format(_fixture("main.tf")) == "hcl"
        assert detect_format(_fixture("stack.json")) == "cloudformation"
        assert detect_format(_fixture("stack.yaml")) == "cloudformation"

    def test_unknown(self, tmp_path):
        other = tmp_path / "package.json"
        other.write_text('{"name": "web"}')
        assert detect_format(str(other)) == "unknown"
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")
        assert detect_format(str(notes)) == "unknown"

    def test_state_saved_as_json(self, tmp_path):
        state = tmp_path / "state.json"
        shutil.copy(_fixture("sample.tfstate"), state)
        assert detect_format(str(state)) == "tfstate"


class TestReporters:
    def setup_method(self):
        resources, actions, warnings = plan.parse_file(_fixture("plan.json"))
        self.result = build_graph(resources, warnings, get_provider("aws"))
        self.result.actions = {k: v.value for k, v in actions.items()}

    def test_json_report(self):
        report = json.loads(json_reporter.build_report(self.result, "plan.json", "aws"))
        assert report["meta"]["tool"] == "infragraph"
        assert report["meta"]["provider"] == "aws"
        assert report["actions"]["aws_instance.app"] == "replace"
        assert report["summary"]["generic"] == 1
        assert len(report["nodes"]) == 5

    def test_markdown_report(self):
        report = markdown.build_report(self.result, "plan.json", "Amazon Web Services")
        assert "# Infrastructure Graph Report" in report
        assert "## Planned Changes" in report
        assert "`-/+` replace | `aws_instance.app`" in report
        assert "Unmapped type: aws_kinesis_stream" in report
        assert "```mermaid" in report
        assert "aws_instance_app -->|depends on| aws_subnet_private" in report

    def test_mermaid_nests_containers(self):
        resources, warnings = tfstate.parse_file(_fixture("sample.tfstate"))
        result = build_graph(resources, warnings, get_provider("aws"))
        report = markdown.build_report(result, "sample.tfstate", "Amazon Web Services")
        assert 'subgraph aws_vpc_main["main-vpc"]' in report
        assert 'subgraph aws_subnet_public["public-a"]' in report
        assert 'aws_db_instance_db[("db-primary")]' in report
        assert "## Planned Changes" not in report


class TestGraphCommand:
    def setup_method(self):
        self.runner = CliRunner()

    def _run_json(self, tmp_path, *args):
        out = tmp_path / "graph.json"
        result = self.runner.invoke(cli, ["graph", *args, "--output", str(out)])
        assert result.exit_code == 0, result.output
        return json.loads(out.read_text(encoding="utf-8"))

    def test_tfstate(self, tmp_path):
        report = self._run_json(tmp_path, _fixture("sample.tfstate"))
        assert len(report["nodes"]) == 8
        assert report["meta"]["provider"] == "aws"
        assert "actions" not in report

    def test_plan_actions(self, tmp_path):
        report = self._run_json(tmp_path, _fixture("plan.json"))
        assert report["actions"]["aws_instance.app"] == "replace"
        assert report["actions"]["aws_s3_bucket.logs"] == "delete"

    def test_tf_directory_is_one_configuration(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        shutil.copy(_fixture("main.tf"), src / "main.tf")
        shutil.copy(_fixture("network.tf"), src / "network.tf")
        report = self._run_json(tmp_path, str(src))
        node = next(n for n in report["nodes"] if n["id"] == "aws_instance.web")
        assert node["parent"] == "aws_subnet.public"

    def test_cloudformation_warning(self, tmp_path):
        report = self._run_json(tmp_path, _fixture("stack.json"))
        assert report["warnings"] == ["Unsupported CloudFormation type: AWS::CloudWatch::Alarm (Alerts)"]

    def test_duplicate_ids_across_files(self, tmp_path):
        report = self._run_json(tmp_path, _fixture("sample.tfstate"), _fixture("main.tf"))
        ids = [n["id"] for n in report["nodes"]]
        assert len(ids) == len(set(ids))
        assert any(w.startswith("Duplicate resource id aws_vpc.main") for w in report["warnings"])

    def test_explicit_provider(self, tmp_path):
        report = self._run_json(tmp_path, _fixture("sample.tfstate"), "--provider", "azure")
        assert report["meta"]["provider"] == "azure"
        assert all(n["resource"]["provider"] == "azure" for n in report["nodes"])

    def test_markdown_output(self, tmp_path):
        out = tmp_path / "report.md"
        result = self.runner.invoke(
            cli, ["graph", _fixture("stack.yaml"), "--format", "markdown", "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        with open(out, "rb") as f:
            content = f.read()
        assert b"\r\n" not in content
        assert b"```mermaid" in content

    def test_config_file_extends_provider(self, tmp_path):
        cfg = tmp_path / "infragraph.yaml"
        cfg.write_text(
            "render_categories:\n  aws_kinesis_stream: stream\n"
        )
        report = self._run_json(tmp_path, _fixture("plan.json"), "--config", str(cfg))
        node = next(n for n in report["nodes"] if n["id"] == "aws_kinesis_stream.events")
        assert node["renderCategory"] == "stream"
        assert report["warnings"] == []

    def test_malformed_config_ignored(self, tmp_path):
        cfg = tmp_path / "bad.yaml"
        cfg.write_text("edge_attributes: 12\n")
        out = tmp_path / "graph.json"
        result = self.runner.invoke(
            cli, ["graph", _fixture("sample.tfstate"), "--config", str(cfg), "-o", str(out)]
        )
        assert result.exit_code == 0
        assert "ignoring configuration" in result.output

    def test_summary_only(self, tmp_path):
        result = self.runner.invoke(cli, ["graph", _fixture("sample.tfstate"), "--summary"])
        assert result.exit_code == 0
        assert "Resource Summary" in result.output

    def test_parse_error_exit_code(self, tmp_path):
        bad = tmp_path / "broken.tfstate"
        bad.write_text('{"resources": []}')
        result = self.runner.invoke(cli, ["graph", str(bad)])
        assert result.exit_code == 2
        assert "version" in result.output

    def test_undecodable_file_is_parse_error(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "bad.tf").write_bytes(b"\xff\xfe\x00bad")
        result = self.runner.invoke(cli, ["graph", str(src)])
        assert result.exit_code == 2
        assert "could not read" in result.output

    def test_missing_path(self, tmp_path):
        result = self.runner.invoke(cli, ["graph", str(tmp_path / "nope.tfstate")])
        assert result.exit_code == 2


class TestProvidersCommand:
    def test_json_listing(self):
        result = CliRunner().invoke(cli, ["providers", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [p["id"] for p in data] == ["aws", "azure", "gcp"]
        assert data[0]["containers"] == ["aws_vpc", "aws_subnet"]

    def test_table(self):
        result = CliRunner().invoke(cli, ["providers"])
        assert result.exit_code == 0
        assert "gcp" in result.output
