import asyncio
import os
import signal
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Sequence, Tuple

from tuning_lab.core.errors import ProcessSpawnError, ProcessTimeout
from tuning_lab.core.logger import logger

_CHUNK = 64 * 1024
# 杀掉进程组之后等待回收的上限 (秒)
_REAP_GRACE_S = 2.0


@dataclass(frozen=True)
class ProcessRun:
    returncode: Optional[int]
    stdout: bytes
    stderr: bytes
    stdout_overflow: bool = False


@asynccontextmanager
async def spawned(argv: Sequence[str]) -> AsyncIterator[asyncio.subprocess.Process]:
    """
    启动子进程，退出上下文时保证进程被杀掉并回收 (正常结束 / 超时 / 异常都一样)。

    子进程放在独立的会话里，docker / shell 包装脚本派生的孙进程会随进程组一起被杀掉，
    否则孙进程一直占着输出管道，回收会卡到它自己退出为止。
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=(os.name == "posix"),
        )
    except OSError as e:
        raise ProcessSpawnError(str(e)) from e

    try:
        yield proc
    finally:
        if proc.stdin is not None and not proc.stdin.is_closing():
            proc.stdin.close()
        _kill_tree(proc)
        try:
            await asyncio.wait_for(proc.wait(), _REAP_GRACE_S)
        except asyncio.TimeoutError:
            logger.warning(f"⚠️ [Process] pid={proc.pid} not reaped within {_REAP_GRACE_S:g}s, closing pipes")
            proc._transport.close()


def _kill_tree(proc: asyncio.subprocess.Process) -> None:
    # 子进程自己已退出时，它派生的进程组也可能还活着
    if os.name == "posix":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except (ProcessLookupError, PermissionError):
            pass
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass


async def _feed(stdin: asyncio.StreamWriter, data: bytes) -> None:
    try:
        stdin.write(data)
        await stdin.drain()
    except (BrokenPipeError, ConnectionResetError) as e:
        # 子进程没读完 stdin 就退出了，结果以退出码和 stderr 为准
        logger.debug(f"stdin closed early: {e}")
    finally:
        stdin.close()


async def _read_capped(stream: asyncio.StreamReader, limit: int) -> Tuple[bytes, bool]:
    """读到 EOF，只保留前 limit 字节；超出部分照样读走，避免子进程写满管道卡住。"""
    buf = bytearray()
    overflow = False
    while True:
        chunk = await stream.read(_CHUNK)
        if not chunk:
            break
        room = max(limit - len(buf), 0)
        if room:
            buf.extend(chunk[:room])
        if len(chunk) > room:
            overflow = True
    return bytes(buf), overflow


async def _communicate(proc: asyncio.subprocess.Process, stdin_text: str, max_bytes: int) -> ProcessRun:
    _, (out, overflow), (err, _) = await asyncio.gather(
        _feed(proc.stdin, stdin_text.encode("utf-8")),
        _read_capped(proc.stdout, max_bytes),
        _read_capped(proc.stderr, max_bytes),
    )
    returncode = await proc.wait()
    return ProcessRun(returncode=returncode, stdout=out, stderr=err, stdout_overflow=overflow)


async def run_process(argv: Sequence[str], stdin_text: str, timeout_s: float, max_bytes: int) -> ProcessRun:
    """
    写 stdin -> 关闭 -> 读输出 -> 等退出，整个过程受同一个 deadline 约束。

    Raises:
        ProcessTimeout: 超时 (子进程已被杀掉)
        ProcessSpawnError: 启动失败或管道 I/O 出错
    """
    async with spawned(argv) as proc:
        try:
            return await asyncio.wait_for(_communicate(proc, stdin_text, max_bytes), timeout_s)
        except asyncio.TimeoutError as e:
            raise ProcessTimeout(f"process did not finish within {timeout_s:g}s") from e
        except OSError as e:
            raise ProcessSpawnError(str(e)) from e
