import asyncio
import sys

from tuning_lab.modules.sql.health import HealthProbe, HealthStatus


def python_client(code: str) -> list:
    return [sys.executable, "-c", code]


RUNNING = python_client("print('true')")
STOPPED = python_client("print('false')")
READY = python_client("import sys; sys.stdin.read(); print('\\n         1\\n\\n1 row selected.')")


def test_running_and_ready():
    probe = HealthProbe(inspect_command=RUNNING, client_command=READY)
    assert asyncio.run(probe.check()) == HealthStatus(container_running=True, oracle_ready=True)


def test_stopped_container_skips_database_probe():
    probe = HealthProbe(inspect_command=STOPPED, client_command=READY)

    async def must_not_run():
        raise AssertionError("database probe should not run")

    probe.oracle_ready = must_not_run
    assert asyncio.run(probe.check()) == HealthStatus(container_running=False, oracle_ready=False)


def test_missing_docker_binary_means_not_running():
    probe = HealthProbe(inspect_command=["/nonexistent/docker"], client_command=READY)
    assert asyncio.run(probe.check()) == HealthStatus(False, False)


def test_started_but_not_accepting_queries():
    failing = python_client("import sys; sys.stdin.read(); sys.exit(1)")
    probe = HealthProbe(inspect_command=RUNNING, client_command=failing)
    assert asyncio.run(probe.check()) == HealthStatus(container_running=True, oracle_ready=False)


def test_probe_timeout_is_not_ready():
    slow = python_client("import time; time.sleep(30)")
    probe = HealthProbe(inspect_command=RUNNING, client_command=slow, probe_timeout_ms=300)
    assert asyncio.run(probe.check()) == HealthStatus(container_running=True, oracle_ready=False)


def test_missing_marker_is_not_ready():
    silent = python_client("import sys; sys.stdin.read(); print('no answer')")
    probe = HealthProbe(inspect_command=RUNNING, client_command=silent)
    assert asyncio.run(probe.check()).oracle_ready is False
