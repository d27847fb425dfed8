"""engineproxy launcher: spawns the proxy binary and waits for its address.

The proxy gets its own config through ``ENGINE_CONFIG`` (or a config file
path) and the handshake payload as ``-defaults=<json>``.  Once it is
listening it prints one JSON line such as ``{"ip": "::", "port": 4000}`` on
stdout; everything else it writes is forwarded to the log.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
from typing import Any

from frontdoor.core.address import ListeningAddress
from frontdoor.core.payload import HandshakePayload
from frontdoor.core.subprocess_tracker import track, untrack
from frontdoor.ports.proxy import LauncherOptions

logger = logging.getLogger(__name__)

DEFAULT_BINARY = "engineproxy"


def _parse_listening_report(text: str) -> ListeningAddress | None:
    """Return the address in a listening-report line, or None for log output."""
    if not text.startswith("{"):
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict) or "port" not in data:
        return None
    address = data.get("ip", data.get("address"))
    if address is None:
        return None
    try:
        return ListeningAddress(address=str(address), port=int(data["port"]))
    except (TypeError, ValueError):
        return None


class EngineProxyLauncher:
    """Manages one engineproxy subprocess."""

    def __init__(
        self,
        config: dict[str, Any] | str | None = None,
        binary_path: str | None = None,
    ) -> None:
        self._config = config if config is not None else {}
        self._binary_path = binary_path
        self._proc: asyncio.subprocess.Process | None = None
        self._drain_tasks: list[asyncio.Task] = []
        self._address: ListeningAddress | None = None

    @property
    def address(self) -> ListeningAddress | None:
        return self._address

    @property
    def is_alive(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    def build_args(
        self, payload: HandshakePayload, options: LauncherOptions | None = None
    ) -> list[str]:
        """Command-line arguments (without the binary) for one start."""
        options = options or LauncherOptions()
        if isinstance(self._config, str):
            config_arg = f"-config={self._config}"
        else:
            config_arg = "-config=env"
        return [
            config_arg,
            "-listening-reporter=stdout",
            *options.extra_args,
            f"-defaults={payload.to_json()}",
        ]

    def _resolve_binary(self, options: LauncherOptions) -> str:
        binary = options.binary_path or self._binary_path or shutil.which(DEFAULT_BINARY)
        if not binary:
            raise RuntimeError(
                f"{DEFAULT_BINARY} not found in PATH. Set FRONTDOOR_PROXY_BINARY "
                "or LauncherOptions.binary_path."
            )
        return binary

    async def start(
        self, payload: HandshakePayload, options: LauncherOptions | None = None
    ) -> ListeningAddress:
        """Spawn engineproxy. Returns the address it reports listening on."""
        if self.is_alive:
            raise RuntimeError("engineproxy is already running")
        options = options or LauncherOptions()
        binary = self._resolve_binary(options)

        env = {**os.environ, **options.env}
        if not isinstance(self._config, str):
            env["ENGINE_CONFIG"] = json.dumps(self._config)

        self._proc = await asyncio.create_subprocess_exec(
            binary,
            *self.build_args(payload, options),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
        track(self._proc.pid, "engineproxy")
        logger.info("Started engineproxy (pid %d)", self._proc.pid)
        self._drain_tasks = [
            asyncio.create_task(self._drain(self._proc.stderr, "err")),
        ]

        try:
            self._address = await asyncio.wait_for(
                self._wait_for_listening(), timeout=options.startup_timeout,
            )
        except asyncio.TimeoutError:
            await self.stop()
            raise RuntimeError(
                f"Timed out after {options.startup_timeout}s waiting for "
                "engineproxy to report its address"
            ) from None
        except BaseException:
            # Covers cancellation and oversized report lines too
            await self.stop()
            raise

        # Keep forwarding the rest of stdout so the pipe never fills up
        self._drain_tasks.append(
            asyncio.create_task(self._drain(self._proc.stdout, "out")),
        )
        logger.info("engineproxy listening on %s", self._address)
        return self._address

    # ------------------------------------------------------------------

    async def _wait_for_listening(self) -> ListeningAddress:
        """Read stdout until the listening report line shows up."""
        if not self._proc or not self._proc.stdout:
            raise RuntimeError("engineproxy process has no stdout")

        while True:
            line = await self._proc.stdout.readline()
            if not line:
                code = await self._proc.wait()
                raise RuntimeError(
                    f"engineproxy exited with code {code} before it started listening"
                )
            text = line.decode("utf-8", errors="replace").strip()
            address = _parse_listening_report(text)
            if address is not None:
                return address
            if text:
                logger.debug("engineproxy(out): %s", text)

    @staticmethod
    async def _drain(stream: asyncio.StreamReader | None, label: str) -> None:
        if not stream:
            return
        while True:
            line = await stream.readline()
            if not line:
                return
            text = line.decode("utf-8", errors="replace").strip()
            if text:
                logger.debug("engineproxy(%s): %s", label, text)

    async def stop(self) -> None:
        """Terminate engineproxy (kill after 5s). No-op when not running."""
        proc = self._proc
        if proc and proc.returncode is None:
            try:
                proc.terminate()
                await asyncio.wait_for(proc.wait(), timeout=5)
            except (asyncio.TimeoutError, ProcessLookupError):
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()
            logger.info("Stopped engineproxy process")
        if proc:
            untrack(proc.pid)

        for task in self._drain_tasks:
            task.cancel()
        self._drain_tasks = []
        self._proc = None
        self._address = None
