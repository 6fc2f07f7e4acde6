"""
Unit tests for the command line interface.
"""

import json
import pytest
import yaml
from unittest.mock import patch

from presentation.cli import main, build_parser, format_bytes, format_table
from domain.models import JobStatus


@pytest.fixture
def config_file(tmp_path, clean_env):
    return tmp_path / "config.yaml"


@pytest.fixture
def patched_client(make_client):
    """Route the CLI's client factory to a fake client."""
    with patch('presentation.cli.BatchClientFactory') as factory:
        def _install(client=None):
            client = client or make_client()
            factory.return_value.create_client.return_value = client
            return client
        yield _install


def run(config_file, *args):
    return main(['--config', str(config_file), *args])


def test_format_bytes():
    assert format_bytes(None) == "-"
    assert format_bytes(512) == "512 B"
    assert format_bytes(2048) == "2.0 kB"
    assert format_bytes(3_500_000) == "3.5 MB"


def test_format_table():
    table = format_table(["Name", "Status"], [["batches/1", "running"], ["batches/22", None]])
    lines = table.splitlines()

    assert lines[0] == "Name        Status"
    assert lines[2] == "batches/1   running"
    assert lines[3] == "batches/22  -"


def test_parser_requires_job_action():
    with pytest.raises(SystemExit):
        build_parser().parse_args(['job'])


def test_no_command_prints_help(config_file, capsys):
    assert run(config_file) == 1
    assert "usage:" in capsys.readouterr().out


class TestConfigCommands:

    def test_set_key_then_list(self, config_file, capsys):
        assert run(config_file, 'config', 'set-key', 'abcd1234efgh5678') == 0
        assert yaml.safe_load(config_file.read_text()) == {"api_key": "abcd1234efgh5678"}

        assert run(config_file, 'config', 'list') == 0
        out = capsys.readouterr().out
        assert "API Key: abcd...5678" in out
        assert "Model: gemini-2.5-flash" in out

    def test_set_model(self, config_file):
        assert run(config_file, 'config', 'set-model', 'gemini-2.5-pro') == 0
        assert yaml.safe_load(config_file.read_text())["model"] == "gemini-2.5-pro"

    def test_reset(self, config_file):
        config_file.write_text(yaml.safe_dump({"api_key": "k" * 12, "model": "custom"}))

        assert run(config_file, 'config', 'reset') == 0
        saved = yaml.safe_load(config_file.read_text())
        assert saved["api_key"] == "k" * 12
        assert saved["model"] == "gemini-2.5-flash"


class TestJobCommands:

    def test_submit_requires_inputs(self, config_file):
        assert run(config_file, 'job', 'submit') == 1

    def test_missing_api_key(self, config_file):
        assert run(config_file, 'job', 'list') == 1

    def test_submit_and_wait(self, config_file, patched_client, make_inputs, tmp_path):
        files = make_inputs("a.jsonl", "b.jsonl")
        client = patched_client()
        out = tmp_path / "results"

        code = run(config_file, 'job', 'submit', str(files[0].parent), '--output', str(out))

        assert code == 0
        assert (out / "job-a_results.jsonl").is_file()
        assert (out / "job-b_results.jsonl").is_file()
        assert client.closed

    def test_submit_reports_failures(self, config_file, patched_client, make_client, make_inputs, tmp_path):
        files = make_inputs("a.jsonl", "b.jsonl")
        patched_client(make_client(statuses={"a": [JobStatus.FAILED]}))

        code = run(config_file, 'job', 'submit', *map(str, files), '--output', str(tmp_path / "r"))

        assert code == 1

    def test_submit_no_wait(self, config_file, patched_client, make_inputs, capsys):
        (path,) = make_inputs("a.jsonl")
        client = patched_client()

        assert run(config_file, 'job', 'submit', str(path), '--no-wait') == 0

        assert f"{path.resolve()}\tjob-a" in capsys.readouterr().out
        assert client.calls("status") == []

    def test_missing_input_path(self, config_file, patched_client, tmp_path):
        patched_client()
        assert run(config_file, 'job', 'submit', str(tmp_path / "missing.jsonl")) == 1

    def test_get_job(self, config_file, patched_client, capsys):
        patched_client()

        assert run(config_file, 'job', 'get', 'job-a') == 0
        out = capsys.readouterr().out
        assert "Name: job-a" in out
        assert "Status: succeeded" in out

    def test_cancel_job(self, config_file, patched_client):
        client = patched_client()

        assert run(config_file, 'job', 'cancel', 'job-a') == 0
        assert ("cancel", "job-a") in client.events

    def test_download(self, config_file, patched_client, tmp_path):
        patched_client()

        assert run(config_file, 'job', 'download', 'job-a', '--output', str(tmp_path)) == 0
        assert (tmp_path / "job-a_results.jsonl").is_file()

    def test_list_empty(self, config_file, patched_client):
        patched_client()
        assert run(config_file, 'job', 'list') == 0


class TestFileCommands:

    def test_create(self, config_file, tmp_path):
        (tmp_path / "a.txt").write_text("alpha")
        (tmp_path / "b.txt").write_text("beta")
        output = tmp_path / "batch.jsonl"

        code = run(config_file, 'file', 'create', '--prompt', 'Summarize',
                   '--input', str(tmp_path / "*.txt"), '--output', str(output))

        assert code == 0
        keys = [json.loads(line)["key"] for line in output.read_text().splitlines()]
        assert keys == ["a.txt", "b.txt"]

    def test_create_records_model(self, config_file, tmp_path):
        (tmp_path / "a.txt").write_text("alpha")
        output = tmp_path / "batch.jsonl"

        code = run(config_file, 'file', 'create', '--prompt', 'Summarize', '--model', 'gemini-2.5-pro',
                   '--input', str(tmp_path / "a.txt"), '--output', str(output))

        assert code == 0
        (line,) = [json.loads(text) for text in output.read_text().splitlines()]
        assert line["model"] == "gemini-2.5-pro"

    def test_get_missing_file(self, config_file, patched_client):
        patched_client()
        assert run(config_file, 'file', 'get', 'files/missing') == 1
