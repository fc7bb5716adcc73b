"""
Session event fan-out.

Two event kinds leave the engine:
- ``OutputEvent`` for every classified/attributed chunk of text
- ``SessionCompleteEvent`` exactly once per session

Each session gets its own ``EventChannel`` when it is created, so nothing
is lost between ``start_*`` returning and the caller subscribing. Process
wide listeners receive the same events synchronously.
"""

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputEvent:
	"""A chunk of ANSI-coloured text for a session."""
	session_id: str
	text: str


@dataclass(frozen=True)
class SessionCompleteEvent:
	"""Final notice for a session; duration in seconds."""
	session_id: str
	duration: float


Event = OutputEvent | SessionCompleteEvent


class EventChannel:
	"""
	Per-session event stream.

	Unbounded queue so publishing never blocks the engine. Async iteration
	yields events in order and stops after the completion event.
	"""

	def __init__(self, session_id: str):
		self.session_id = session_id
		self._queue: asyncio.Queue[Event] = asyncio.Queue()
		self._closed = False

	@property
	def closed(self) -> bool:
		return self._closed

	def put(self, event: Event) -> None:
		if self._closed:
			logger.debug(f"Dropping event for closed channel {self.session_id}")
			return
		self._queue.put_nowait(event)
		if isinstance(event, SessionCompleteEvent):
			self._closed = True

	async def get(self) -> Event:
		return await self._queue.get()

	def drain(self) -> list[Event]:
		"""Everything queued right now, without waiting."""
		events = []
		while not self._queue.empty():
			events.append(self._queue.get_nowait())
		return events

	def __aiter__(self):
		return self._iterate()

	async def _iterate(self):
		while True:
			event = await self._queue.get()
			yield event
			if isinstance(event, SessionCompleteEvent):
				return


OutputListener = Callable[[OutputEvent], None]
CompleteListener = Callable[[SessionCompleteEvent], None]


class EventBus:
	"""Routes events to per-session channels and process-wide listeners."""

	def __init__(self, retained_channels: int = 32):
		self.retained_channels = retained_channels
		self._channels: dict[str, EventChannel] = {}
		self._finished: OrderedDict[str, EventChannel] = OrderedDict()
		self._output_listeners: list[OutputListener] = []
		self._complete_listeners: list[CompleteListener] = []

	def on_output(self, listener: OutputListener) -> None:
		self._output_listeners.append(listener)

	def on_session_complete(self, listener: CompleteListener) -> None:
		self._complete_listeners.append(listener)

	def open_channel(self, session_id: str) -> EventChannel:
		"""Create the channel for a new session (replacing a finished one with the same id)."""
		self._finished.pop(session_id, None)
		channel = EventChannel(session_id)
		self._channels[session_id] = channel
		return channel

	def channel(self, session_id: str) -> EventChannel | None:
		"""The live or retained channel for a session."""
		return self._channels.get(session_id) or self._finished.get(session_id)

	def release(self, session_id: str) -> None:
		"""Forget a finished channel once its consumer is done with it."""
		self._finished.pop(session_id, None)

	def emit_output(self, session_id: str, text: str) -> None:
		event = OutputEvent(session_id=session_id, text=text)
		channel = self._channels.get(session_id)
		if channel is not None:
			channel.put(event)
		for listener in list(self._output_listeners):
			try:
				listener(event)
			except Exception as e:
				logger.error(f"Output listener failed for session {session_id}: {e}")

	def emit_complete(self, session_id: str, duration: float) -> None:
		"""Publish the completion notice; the registry calls this once per session."""
		event = SessionCompleteEvent(session_id=session_id, duration=duration)
		channel = self._channels.pop(session_id, None)
		if channel is not None:
			channel.put(event)
			self._retain(channel)
		for listener in list(self._complete_listeners):
			try:
				listener(event)
			except Exception as e:
				logger.error(f"Completion listener failed for session {session_id}: {e}")

	def _retain(self, channel: EventChannel) -> None:
		self._finished[channel.session_id] = channel
		while len(self._finished) > self.retained_channels:
			dropped, _ = self._finished.popitem(last=False)
			logger.debug(f"Dropped retained channel {dropped}")
