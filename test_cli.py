"""Test suite for the jobrunner command line."""

import json

import pytest
from click.testing import CliRunner

from jobrunner.cli import cli
from jobrunner.storage import Storage


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    path = tmp_path / "jobrunner"
    monkeypatch.setenv("JOBRUNNER_DATA_DIR", str(path))
    monkeypatch.setenv("JOBRUNNER_LOG_LEVEL", "CRITICAL")
    return path


@pytest.fixture
def invoke(data_dir):
    runner = CliRunner()

    def _invoke(*args):
        return runner.invoke(cli, list(args))
    return _invoke


def _last_line(output):
    return output.strip().splitlines()[-1]


def test_run_echo(invoke):
    result = invoke("run", "echo", "--payload", '{"hello": "world"}')
    assert result.exit_code == 0, result.output
    assert json.loads(_last_line(result.output)) == {"hello": "world"}


def test_run_invalid_json(invoke):
    result = invoke("run", "echo", "--payload", "{not json")
    assert result.exit_code == 1
    assert "Invalid JSON" in result.output


def test_run_unknown_job(invoke):
    result = invoke("run", "no-such-job")
    assert result.exit_code == 1
    assert "Job not found: no-such-job" in result.output


def test_run_invalid_override(invoke):
    result = invoke("run", "echo", "--timeout-ms", "0")
    assert result.exit_code == 1


def test_run_failure_is_dead_lettered(invoke, data_dir):
    result = invoke("run", "fail", "--payload", '{"message": "nope"}', "--max-retries", "1", "--backoff-ms", "0")
    assert result.exit_code == 1
    assert "Job fail failed: nope" in result.output

    records = Storage(str(data_dir)).get_dead_letters()
    assert len(records) == 1
    assert records[0].job_name == "fail"
    assert records[0].attempts == 2
    assert records[0].payload == {"message": "nope"}


def test_run_flaky_recovers(invoke):
    result = invoke("run", "flaky", "--payload", '{"key": "cli-flaky", "failures": 2}', "--backoff-ms", "0")
    assert result.exit_code == 0, result.output
    assert json.loads(_last_line(result.output)) == {"calls": 3}


def test_run_timeout(invoke, data_dir):
    result = invoke("run", "sleep", "--payload", '{"seconds": 5}', "--timeout-ms", "50",
                    "--max-retries", "0")
    assert result.exit_code == 1
    assert "Job execution timed out" in result.output
    assert Storage(str(data_dir)).get_dead_letters()[0].error_type == "JobTimeoutError"


def test_jobs_lists_builtins(invoke):
    result = invoke("jobs")
    assert result.exit_code == 0
    for name in ("echo", "sleep", "fail", "flaky"):
        assert name in result.output
    assert "60000ms" in result.output


def test_unknown_module(invoke):
    result = invoke("-m", "jobrunner.no_such_module", "jobs")
    assert result.exit_code == 1
    assert "Cannot import job module" in result.output


def test_dlq_list_show_remove(invoke, data_dir):
    invoke("run", "fail", "--max-retries", "0")
    record = Storage(str(data_dir)).get_dead_letters()[0]

    listed = invoke("dlq", "list")
    assert listed.exit_code == 0
    assert record.id in listed.output

    shown = invoke("dlq", "show", record.id)
    assert shown.exit_code == 0
    assert json.loads(shown.output)["job_name"] == "fail"

    removed = invoke("dlq", "remove", record.id)
    assert removed.exit_code == 0
    assert invoke("dlq", "list").output.strip() == "Dead Letter Queue is empty"

    missing = invoke("dlq", "remove", record.id)
    assert missing.exit_code == 1


def test_dlq_list_filters_by_job(invoke):
    invoke("run", "fail", "--max-retries", "0")
    result = invoke("dlq", "list", "--job", "echo")
    assert "Dead Letter Queue is empty" in result.output


def test_dlq_retry_success_removes_record(invoke, data_dir):
    storage = Storage(str(data_dir))
    invoke("run", "flaky", "--payload", '{"key": "cli-retry", "failures": 1}', "--max-retries", "0")
    record = storage.get_dead_letters()[0]

    # Same process, so the flaky counter for this key has already failed once
    result = invoke("dlq", "retry", record.id)
    assert result.exit_code == 0, result.output
    assert "replayed successfully" in result.output
    assert storage.get_dead_letters() == []


def test_dlq_retry_failure_replaces_record(invoke, data_dir):
    storage = Storage(str(data_dir))
    invoke("config", "set", "max-retries", "0")
    invoke("run", "fail")
    original = storage.get_dead_letters()[0]

    result = invoke("dlq", "retry", original.id)
    assert result.exit_code == 1
    assert "failed again" in result.output

    records = storage.get_dead_letters()
    assert len(records) == 1
    assert records[0].id != original.id


def test_dlq_retry_unknown(invoke):
    result = invoke("dlq", "retry", "missing")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_dlq_purge(invoke, data_dir):
    invoke("run", "fail", "--max-retries", "0")
    invoke("run", "fail", "--max-retries", "0")
    result = invoke("dlq", "purge", "--job", "fail")
    assert result.exit_code == 0
    assert "Purged 2 dead letter(s)" in result.output
    assert Storage(str(data_dir)).get_dead_letters() == []


def test_status(invoke):
    invoke("run", "fail", "--max-retries", "0")
    result = invoke("status")
    assert result.exit_code == 0
    assert "Dead Letters:   1" in result.output
    assert "fail:" in result.output
    assert "Max Retries:  3" in result.output


def test_config_set_and_show(invoke):
    result = invoke("config", "set", "backoff-ms", "250")
    assert result.exit_code == 0
    assert "backoff-ms = 250" in result.output

    shown = invoke("config", "show")
    assert "backoff-ms:   250" in shown.output


def test_config_set_rejects_bad_input(invoke):
    assert invoke("config", "set", "colour", "1").exit_code == 1
    assert invoke("config", "set", "max-retries", "many").exit_code == 1
    assert invoke("config", "set", "timeout-ms", "-1").exit_code == 1


def test_config_set_negative_value_reports_error(invoke, data_dir):
    result = invoke("config", "set", "timeout-ms", "-1")
    assert result.exit_code == 1
    assert "✗ Invalid value" in result.output
    assert Storage(str(data_dir)).get_config().timeout_ms == 5000


def test_invalid_log_level_reports_error(invoke, monkeypatch):
    monkeypatch.setenv("JOBRUNNER_LOG_LEVEL", "verbose")
    result = invoke("status")
    assert result.exit_code == 1
    assert "✗ Invalid settings" in result.output
