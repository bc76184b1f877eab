"""NETCONF over SSH session for Junos devices.

Speaks NETCONF 1.0 (``]]>]]>`` framing) on the ``netconf`` SSH subsystem.
Paramiko is blocking, so every round trip runs in the default executor.
"""
import asyncio
import logging
import re
import xml.etree.ElementTree as ET
from html import unescape
from typing import Any, Optional
from xml.sax.saxutils import escape

import paramiko

from ..errors import DeviceError, CommitError
from ..utils.connection import with_retry
from ..utils.logging_config import timed
from .base import JunosSession, DeviceConfig

logger = logging.getLogger(__name__)

DELIMITER = "]]>]]>"

HELLO = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<hello xmlns="urn:ietf:params:xml:ns:netconf:base:1.0">'
    "<capabilities><capability>urn:ietf:params:netconf:base:1.0</capability></capabilities>"
    "</hello>"
)

RPC_COMMAND = '<command format="text">{command}</command>'
RPC_LOAD_SET = (
    '<load-configuration action="set" format="text">'
    "<configuration-set>{statements}</configuration-set>"
    "</load-configuration>"
)
RPC_LOCK = "<lock><target><candidate/></target></lock>"
RPC_UNLOCK = "<unlock><target><candidate/></target></unlock>"
RPC_DISCARD = "<discard-changes/>"
RPC_COMMIT = "<commit-configuration><log>{label}</log></commit-configuration>"
RPC_CLOSE = "<close-session/>"

CONFIG_OUTPUT = re.compile(r"<configuration-output>.*?</configuration-output>", re.DOTALL)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def rpc_diagnostics(reply: str) -> tuple[list[str], list[str]]:
    """Split ``rpc-error`` entries of a reply into (errors, warnings).

    Entries with severity ``error`` are errors; everything else
    (``warning``, missing severity) is a warning.
    """
    errors: list[str] = []
    warnings: list[str] = []
    try:
        root = ET.fromstring(reply)
    except ET.ParseError as e:
        raise DeviceError(f"malformed rpc-reply: {e}") from e

    for element in root.iter():
        tag = _local(element.tag)
        # commit-results report xnm:error / xnm:warning entries
        if tag in ("error", "warning"):
            message = " ".join(
                (child.text or "").strip() for child in element if _local(child.tag) == "message"
            )
            (errors if tag == "error" else warnings).append(message or tag)
            continue
        if tag != "rpc-error":
            continue
        severity = ""
        message = ""
        for child in element:
            name = _local(child.tag)
            if name == "error-severity":
                severity = (child.text or "").strip()
            elif name == "error-message":
                message = (child.text or "").strip()
        if severity == "error":
            errors.append(message or "unknown error")
        else:
            warnings.append(message)
    return errors, warnings


def command_output(reply: str) -> str:
    """Extract text output of a ``<command format="text">`` reply.

    Configuration queries keep their ``<configuration-output>`` wrapper so
    the parser can use it as start and stop marker.
    """
    match = CONFIG_OUTPUT.search(reply)
    if match:
        return unescape(match.group(0))
    try:
        root = ET.fromstring(reply)
    except ET.ParseError as e:
        raise DeviceError(f"malformed rpc-reply: {e}") from e
    for element in root.iter():
        if _local(element.tag) == "output":
            return element.text or ""
    return ""


class NetconfSession(JunosSession):
    """Junos configuration session over NETCONF."""

    def __init__(self, device_id: str, config: DeviceConfig):
        super().__init__(device_id, config)
        self._client: Optional[paramiko.SSHClient] = None
        self._channel: Any = None
        self._message_id = 0

    async def _connect(self) -> None:
        loop = asyncio.get_event_loop()

        @with_retry(
            max_attempts=max(self.config.retries, 1),
            min_wait=self.config.retry_delay,
            max_wait=max(self.config.retry_delay * 5, 10),
        )
        async def attempt() -> None:
            await loop.run_in_executor(None, self._connect_blocking)

        await attempt()

    def _connect_blocking(self) -> None:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        client.connect(
            hostname=self.config.host,
            port=self.config.port,
            username=self.config.username,
            password=self.config.get_password() or None,
            key_filename=self.config.key_file,
            timeout=self.config.timeout,
            look_for_keys=self.config.key_file is None,
            allow_agent=False,
        )
        channel = client.get_transport().open_session()
        channel.settimeout(self.config.timeout)
        channel.invoke_subsystem("netconf")
        self._client = client
        self._channel = channel

        self._read_message()  # server hello
        self._write_message(HELLO)

    @timed("netconf_open")
    async def open(self) -> None:
        try:
            await self._connect()
        except paramiko.AuthenticationException as e:
            raise DeviceError(f"authentication failed for {self.config.host}: {e}") from e
        except (paramiko.SSHException, OSError, EOFError) as e:
            raise DeviceError(f"cannot open NETCONF session to {self.config.host}: {e}") from e
        self._open = True
        logger.info(f"Opened NETCONF session to {self.device_id} ({self.config.host})")

    async def close(self) -> None:
        if not self._open:
            return
        try:
            if self._locked:
                await self._rpc(RPC_UNLOCK)
                self._locked = False
            await self._rpc(RPC_CLOSE)
        except DeviceError as e:
            logger.warning(f"Error closing NETCONF session to {self.device_id}: {e}")
        finally:
            self._locked = False
            self._open = False
            if self._client is not None:
                self._client.close()
            self._client = None
            self._channel = None
            logger.debug(f"Closed NETCONF session to {self.device_id}")

    @timed("netconf_command")
    async def command(self, text: str) -> str:
        reply = await self._rpc(RPC_COMMAND.format(command=escape(text)))
        return command_output(reply)

    @timed("netconf_config_set")
    async def config_set(self, lines: list[str]) -> None:
        statements = escape("\n".join(lines))
        await self._rpc(RPC_LOAD_SET.format(statements=statements))

    async def config_lock(self) -> None:
        await self._rpc(RPC_LOCK)
        self._locked = True

    async def config_clear(self) -> None:
        await self._rpc(RPC_DISCARD)
        if self._locked:
            await self._rpc(RPC_UNLOCK)
            self._locked = False

    @timed("netconf_commit")
    async def commit_conf(self, label: str) -> list[str]:
        reply = await self._rpc(RPC_COMMIT.format(label=escape(label)), error_class=CommitError)
        _, warnings = rpc_diagnostics(reply)
        for warning in warnings:
            logger.warning(f"[{self.device_id}] commit warning: {warning}")
        return warnings

    async def _rpc(self, body: str, error_class: type = DeviceError) -> str:
        if self._channel is None:
            raise DeviceError("NETCONF session is not open")
        self._message_id += 1
        message = (
            f'<rpc xmlns="urn:ietf:params:xml:ns:netconf:base:1.0" message-id="{self._message_id}">'
            f"{body}</rpc>"
        )
        loop = asyncio.get_event_loop()
        try:
            reply = await loop.run_in_executor(None, self._exchange, message)
        except (paramiko.SSHException, OSError, EOFError) as e:
            raise DeviceError(f"NETCONF transport error: {e}") from e

        errors, _ = rpc_diagnostics(reply)
        if errors:
            raise error_class("; ".join(errors))
        return reply

    def _exchange(self, message: str) -> str:
        self._write_message(message)
        return self._read_message()

    def _write_message(self, message: str) -> None:
        self._channel.sendall((message + DELIMITER).encode("utf-8"))

    def _read_message(self) -> str:
        buffer = b""
        marker = DELIMITER.encode("utf-8")
        while marker not in buffer:
            chunk = self._channel.recv(65536)
            if not chunk:
                raise EOFError("NETCONF channel closed by device")
            buffer += chunk
        message, _, _ = buffer.partition(marker)
        return message.decode("utf-8", errors="replace").strip()
