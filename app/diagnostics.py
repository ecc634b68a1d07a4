# app/diagnostics.py
import asyncio
import logging
import shlex
from dataclasses import dataclass
from typing import Optional, Sequence
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger(__name__)

STDERR_LOG_BYTES = 4096

# Operator diagnostics behind /debug/*. Commands never go through a shell and
# only allow-listed programs run; fetches only reach allow-listed hosts.


class DiagnosticsError(Exception):
    """Base class; `status_code` and `message` are safe to show to clients."""

    status_code = 500
    message = "Diagnostics failed."

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class CommandNotAllowed(DiagnosticsError):
    status_code = 403
    message = "Command not allowed."


class CommandParseError(DiagnosticsError):
    status_code = 400
    message = "Command could not be parsed."


class CommandTimeout(DiagnosticsError):
    status_code = 504
    message = "Command timed out."


class CommandFailed(DiagnosticsError):
    status_code = 500

    def __init__(self, returncode: int):
        self.returncode = returncode
        super().__init__(f"Command failed with exit code {returncode}.")


class URLNotAllowed(DiagnosticsError):
    status_code = 403
    message = "URL not allowed."


class FetchFailed(DiagnosticsError):
    status_code = 502
    message = "Error fetching URL."


@dataclass
class CommandResult:
    argv: Sequence[str]
    returncode: int
    stdout: str
    truncated: bool


@dataclass
class FetchResult:
    url: str
    status_code: int
    body: str
    truncated: bool


def _clip(data: bytes, limit: int):
    truncated = len(data) > limit
    return data[:limit].decode("utf-8", errors="replace"), truncated


def parse_command(cmd: str, allowed: Sequence[str]) -> list:
    try:
        argv = shlex.split(cmd)
    except ValueError:
        raise CommandParseError()
    if not argv or argv[0] not in allowed:
        raise CommandNotAllowed()
    return argv


async def _read_capped(stream: asyncio.StreamReader, limit: int) -> bytes:
    """Read until EOF or until more than `limit` bytes have arrived."""
    buf = bytearray()
    while len(buf) <= limit:
        chunk = await stream.read(limit + 1 - len(buf))
        if not chunk:
            break
        buf += chunk
    return bytes(buf)


async def _drain(stream: asyncio.StreamReader, limit: int) -> bytes:
    """Read to EOF, keeping only the first `limit` bytes."""
    kept = bytearray()
    while True:
        chunk = await stream.read(4096)
        if not chunk:
            return bytes(kept)
        if len(kept) < limit:
            kept += chunk[:limit - len(kept)]


async def run_command(cmd: str, allowed: Sequence[str], timeout: float, max_bytes: int) -> CommandResult:
    argv = parse_command(cmd, allowed)
    logger.info("diagnostics exec: %s", argv)
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.warning("diagnostics exec could not start %s: %s", argv[0], e)
        raise DiagnosticsError("Command could not be started.")

    def _kill():
        try:
            proc.kill()
        except ProcessLookupError:
            pass

    async def _stdout() -> bytes:
        data = await _read_capped(proc.stdout, max_bytes)
        if len(data) > max_bytes:
            # Enough output; stop the command instead of buffering the rest.
            _kill()
        return data

    async def _collect():
        out, err = await asyncio.gather(_stdout(), _drain(proc.stderr, STDERR_LOG_BYTES))
        await proc.wait()
        return out, err

    try:
        stdout, stderr = await asyncio.wait_for(_collect(), timeout=timeout)
    except asyncio.TimeoutError:
        _kill()
        await proc.wait()
        logger.warning("diagnostics exec timed out after %ss: %s", timeout, argv)
        raise CommandTimeout()

    text, truncated = _clip(stdout, max_bytes)
    if proc.returncode != 0 and not truncated:
        logger.warning(
            "diagnostics exec %s exited %s: %s",
            argv, proc.returncode, stderr.decode("utf-8", errors="replace").strip(),
        )
        raise CommandFailed(proc.returncode)

    return CommandResult(argv=argv, returncode=proc.returncode, stdout=text, truncated=truncated)


def check_url(url: str, allowed_hosts: Sequence[str]) -> str:
    try:
        parts = urlsplit(url)
        host = (parts.hostname or "").lower()
        # Raises on a non-numeric or out-of-range port.
        parts.port
    except ValueError:
        raise URLNotAllowed()
    if parts.scheme not in ("http", "https") or not host:
        raise URLNotAllowed()
    if host not in {h.lower() for h in allowed_hosts}:
        raise URLNotAllowed()
    return url


async def fetch_url(
    url: str,
    allowed_hosts: Sequence[str],
    timeout: float,
    max_bytes: int,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FetchResult:
    check_url(url, allowed_hosts)
    logger.info("diagnostics fetch: %s", url)
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=False, transport=transport) as client:
            async with client.stream("GET", url) as resp:
                chunks = []
                size = 0
                async for chunk in resp.aiter_bytes():
                    chunks.append(chunk)
                    size += len(chunk)
                    if size > max_bytes:
                        break
                status = resp.status_code
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning("diagnostics fetch of %s failed: %r", url, e)
        raise FetchFailed()

    body, truncated = _clip(b"".join(chunks), max_bytes)
    return FetchResult(url=url, status_code=status, body=body, truncated=truncated)
