"""Resolve a listening TCP port to the PID that owns it."""

from __future__ import annotations

import logging
import subprocess

import psutil

from portwatch.errors import PortLookupError

logger = logging.getLogger(__name__)


def _from_psutil(port: int) -> int | None:
    """PID of the LISTEN socket on ``port``, or None if unknown/not permitted."""
    try:
        conns = psutil.net_connections(kind="tcp")
    except psutil.AccessDenied:
        logger.debug("net_connections denied, falling back to lsof")
        return None

    for conn in conns:
        if conn.status != psutil.CONN_LISTEN or not conn.laddr:
            continue
        if conn.laddr.port == port and conn.pid:
            return conn.pid
    return None


def _from_lsof(port: int) -> int:
    """Ask ``lsof`` for the first PID listening on ``port``."""
    try:
        result = subprocess.run(
            ["lsof", "-i", f":{port}", "-sTCP:LISTEN", "-t"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except FileNotFoundError as e:
        raise PortLookupError(f"nothing found on port {port} and lsof is not installed") from e
    except subprocess.TimeoutExpired as e:
        raise PortLookupError(f"lsof timed out looking up port {port}") from e

    if result.returncode != 0:
        raise PortLookupError(f"no process found. Is anything listening on port {port}?")

    lines = result.stdout.strip().splitlines()
    if not lines:
        raise PortLookupError(f"no process found for port {port}")
    try:
        return int(lines[0].strip())
    except ValueError as e:
        raise PortLookupError(f"could not parse PID from lsof output: {lines[0]!r}") from e


def find_pid_by_port(port: int) -> int:
    """Return the PID listening on ``port``.

    Raises:
        PortLookupError: No listener could be found.
    """
    pid = _from_psutil(port)
    if pid is not None:
        logger.debug("port %d -> pid %d (psutil)", port, pid)
        return pid
    pid = _from_lsof(port)
    logger.debug("port %d -> pid %d (lsof)", port, pid)
    return pid
