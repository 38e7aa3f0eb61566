import asyncio
import sys
import time

from tuning_lab.modules.sql.executor import (
    ExecutionOutcome,
    ExecutionRequest,
    ProcessExecutor,
    has_error_marker,
    truncation_notice,
    wrap_script,
)


def python_client(code: str) -> list:
    """用当前解释器跑一段小程序，代替 sqlplus"""
    return [sys.executable, "-c", code]


ECHO = python_client("import sys; sys.stdout.write(sys.stdin.read())")


def run(executor: ProcessExecutor, request: ExecutionRequest):
    return asyncio.run(executor.execute(request))


def test_wrap_script_adds_directives_and_exit():
    wrapped = wrap_script("SELECT 1 FROM dual;", line_size=120, page_size=100)
    lines = wrapped.splitlines()
    assert lines[0] == "SET LINESIZE 120"
    assert lines[1] == "SET PAGESIZE 100"
    assert "SET FEEDBACK ON" in lines
    assert "SET TIMING ON" in lines
    assert lines[-2] == "SELECT 1 FROM dual;"
    assert lines[-1] == "EXIT;"


def test_script_is_streamed_to_stdin():
    result = run(ProcessExecutor(ECHO), ExecutionRequest("SELECT 1 FROM dual;", timeout_ms=10000))
    assert result.succeeded
    assert result.outcome is ExecutionOutcome.COMPLETED
    assert "SELECT 1 FROM dual;" in result.text
    assert result.text.rstrip().endswith("EXIT;")
    assert not result.truncated
    assert result.elapsed_ms >= 0


def test_error_marker_fails_clean_exit():
    client = python_client("import sys; sys.stdin.read(); print('ORA-00942: table or view does not exist')")
    result = run(ProcessExecutor(client), ExecutionRequest("SELECT * FROM nope;", timeout_ms=10000))
    assert not result.succeeded
    assert result.outcome is ExecutionOutcome.FAILED_BY_CONTENT
    assert "ORA-00942" in result.text


def test_error_marker_must_start_a_line():
    assert has_error_marker("ok\nSP2-0042: unknown command")
    assert not has_error_marker("column contains ORA- text in the middle")


def test_output_over_cap_is_truncated_once():
    client = python_client("import sys; sys.stdin.read(); sys.stdout.write('x' * 200000)")
    result = run(ProcessExecutor(client), ExecutionRequest("SELECT 1 FROM dual;", timeout_ms=10000,
                                                           max_output_bytes=1024))
    notice = truncation_notice(1024)
    assert result.truncated
    assert result.succeeded
    assert result.text.count(notice) == 1
    assert result.text == "x" * 1024 + notice
    assert "1KB limit" in notice


def test_timeout_kills_process_and_returns_promptly():
    client = python_client("import time; time.sleep(30)")
    start = time.perf_counter()
    result = run(ProcessExecutor(client), ExecutionRequest("SELECT 1 FROM dual;", timeout_ms=500))
    waited = time.perf_counter() - start

    assert not result.succeeded
    assert result.outcome is ExecutionOutcome.TIMED_OUT
    assert result.text == "Query timed out (0.5s limit exceeded)"
    assert waited < 0.5 + 5


def test_timeout_kills_wrapper_and_its_children():
    # sh 派生的 sleep 会继承输出管道
    start = time.perf_counter()
    client = ["sh", "-c", "sleep 20; echo x"]
    result = run(ProcessExecutor(client), ExecutionRequest("SELECT 1 FROM dual;", timeout_ms=500))
    waited = time.perf_counter() - start

    assert result.outcome is ExecutionOutcome.TIMED_OUT
    assert waited < 0.5 + 5


def test_missing_binary_reports_spawn_failure():
    result = run(ProcessExecutor(["/nonexistent/sqlplus-client"]), ExecutionRequest("SELECT 1 FROM dual;"))
    assert not result.succeeded
    assert result.outcome is ExecutionOutcome.SPAWN_FAILED
    assert result.text


def test_nonzero_exit_reports_stderr():
    client = python_client("import sys; sys.stdin.read(); sys.stderr.write('no such container'); sys.exit(3)")
    result = run(ProcessExecutor(client), ExecutionRequest("SELECT 1 FROM dual;", timeout_ms=10000))
    assert not result.succeeded
    assert result.outcome is ExecutionOutcome.EXITED_NONZERO
    assert result.text == "no such container"


def test_client_that_ignores_stdin_is_handled():
    client = python_client("print('1 row selected.')")
    result = run(ProcessExecutor(client), ExecutionRequest("SELECT 1 FROM dual;", timeout_ms=10000))
    assert result.succeeded
    assert "1 row selected." in result.text


def test_nonzero_exit_with_truncated_stdout_keeps_notice():
    client = python_client("import sys; sys.stdin.read(); sys.stdout.write('y' * 5000); sys.exit(1)")
    result = run(ProcessExecutor(client), ExecutionRequest("SELECT 1 FROM dual;", timeout_ms=10000,
                                                           max_output_bytes=1024))
    assert result.outcome is ExecutionOutcome.EXITED_NONZERO
    assert result.truncated
    assert result.text == "y" * 1024 + truncation_notice(1024)
