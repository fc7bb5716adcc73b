"""
Process lifecycle - spawns assistant subprocesses and pumps their streams.

Handles:
- Spawning one subprocess per unit of work
- Decoding stdout/stderr incrementally and forwarding chunks to callbacks
- Feeding a prompt through stdin
- Waiting with an optional timeout
- Terminating on request, tolerating processes that already exited
"""

import asyncio
import codecs
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ProcessSpawnError, StepTimeoutError

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], None]


@dataclass
class ProcessHandle:
	"""A spawned subprocess owned by exactly one session."""
	pid: int
	role: str
	process: asyncio.subprocess.Process
	pumps: list[asyncio.Task] = field(default_factory=list, repr=False)

	@property
	def returncode(self) -> int | None:
		return self.process.returncode

	@property
	def is_running(self) -> bool:
		return self.process.returncode is None

	def terminate(self) -> bool:
		"""Send SIGTERM. Returns False when the process had already exited."""
		if not self.is_running:
			return False
		try:
			self.process.terminate()
		except ProcessLookupError:
			return False
		return True

	def kill(self) -> bool:
		"""Send SIGKILL. Returns False when the process had already exited."""
		if not self.is_running:
			return False
		try:
			self.process.kill()
		except ProcessLookupError:
			return False
		return True


class ProcessManager:
	"""
	Spawns and supervises assistant subprocesses.

	The manager holds no per-session state; ownership of handles lives in
	the session registry.
	"""

	CHUNK_SIZE = 4096
	KILL_GRACE_PERIOD = 5.0  # Seconds between SIGTERM and SIGKILL on timeout

	def __init__(self, cwd: str | Path | None = None, env: dict[str, str] | None = None):
		self.cwd = str(cwd) if cwd else None
		self.env = env

	async def spawn(
		self,
		argv: list[str],
		role: str,
		stdin_text: str | None = None,
		on_stdout: ChunkCallback | None = None,
		on_stderr: ChunkCallback | None = None,
	) -> ProcessHandle:
		"""
		Start a subprocess and begin pumping its output.

		Args:
			argv: Command and arguments
			role: Label recorded in the process index (e.g. "supervision")
			stdin_text: Text written to stdin, which is then closed
			on_stdout: Called with each decoded stdout chunk
			on_stderr: Called with each decoded stderr chunk

		Raises:
			ProcessSpawnError: If the executable cannot be started
		"""
		env = None
		if self.env:
			env = os.environ.copy()
			env.update(self.env)

		try:
			process = await asyncio.create_subprocess_exec(
				*argv,
				stdin=asyncio.subprocess.PIPE if stdin_text is not None else asyncio.subprocess.DEVNULL,
				stdout=asyncio.subprocess.PIPE,
				stderr=asyncio.subprocess.PIPE,
				cwd=self.cwd,
				env=env,
			)
		except FileNotFoundError as e:
			raise ProcessSpawnError(f"{argv[0]} not found. Is it installed?") from e
		except OSError as e:
			raise ProcessSpawnError(f"Failed to start {argv[0]}: {e}") from e

		handle = ProcessHandle(pid=process.pid, role=role, process=process)
		handle.pumps = [
			asyncio.create_task(self._pump(process.stdout, on_stdout, handle, "stdout")),
			asyncio.create_task(self._pump(process.stderr, on_stderr, handle, "stderr")),
		]
		if stdin_text is not None:
			handle.pumps.append(asyncio.create_task(self._feed_stdin(handle, stdin_text)))

		logger.info(f"Spawned {role} process {process.pid}: {argv[0]} ({len(argv) - 1} args)")
		return handle

	async def wait(self, handle: ProcessHandle, timeout: float | None = None) -> int | None:
		"""
		Wait for the process to exit and its streams to drain.

		Raises:
			StepTimeoutError: If the process outlives ``timeout`` seconds;
				it is terminated (then killed) before this is raised
		"""
		try:
			if timeout is None:
				await handle.process.wait()
			else:
				try:
					await asyncio.wait_for(handle.process.wait(), timeout=timeout)
				except asyncio.TimeoutError:
					logger.warning(f"Process {handle.pid} timed out after {timeout}s, terminating")
					await self._force_stop(handle)
					await asyncio.gather(*handle.pumps, return_exceptions=True)
					raise StepTimeoutError(handle.pid, timeout)
			await asyncio.gather(*handle.pumps)
		except asyncio.CancelledError:
			for pump in handle.pumps:
				pump.cancel()
			raise

		logger.debug(f"Process {handle.pid} exited with code {handle.returncode}")
		return handle.returncode

	async def _force_stop(self, handle: ProcessHandle) -> None:
		handle.terminate()
		try:
			await asyncio.wait_for(handle.process.wait(), timeout=self.KILL_GRACE_PERIOD)
		except asyncio.TimeoutError:
			logger.warning(f"Process {handle.pid} ignored SIGTERM, killing")
			handle.kill()
			await handle.process.wait()

	async def _pump(
		self,
		stream: asyncio.StreamReader | None,
		callback: ChunkCallback | None,
		handle: ProcessHandle,
		name: str,
	) -> None:
		"""Read a stream to EOF, decoding UTF-8 across chunk boundaries."""
		if stream is None:
			return
		decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
		while True:
			data = await stream.read(self.CHUNK_SIZE)
			text = decoder.decode(data, final=not data)
			if text and callback:
				try:
					callback(text)
				except Exception as e:
					logger.error(f"{name} callback failed for process {handle.pid}: {e}")
			if not data:
				break

	async def _feed_stdin(self, handle: ProcessHandle, text: str) -> None:
		stdin = handle.process.stdin
		if stdin is None:
			return
		try:
			stdin.write(text.encode("utf-8"))
			await stdin.drain()
		except (BrokenPipeError, ConnectionResetError) as e:
			logger.warning(f"Process {handle.pid} closed stdin early: {e}")
		finally:
			stdin.close()
