"""Dispatch coach websocket events and stream staged replies."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import WebSocket

from services.coach.chat_session import CoachSession
from services.coach.stager import StagedDelivery

LOGGER = logging.getLogger(__name__)


class CoachSocketHandler:
	"""Run chat turns for one coach session over one websocket.

	Only one turn may be in flight; a ``chat.send`` that arrives while a reply
	is still being requested or delivered is rejected.
	"""

	def __init__(self, session: CoachSession, websocket: WebSocket) -> None:
		self.session = session
		self.websocket = websocket
		self._task: Optional[asyncio.Task] = None
		self._delivery: Optional[StagedDelivery] = None

	@property
	def busy(self) -> bool:
		return self._task is not None and not self._task.done()

	async def handle(self, payload: Dict[str, Any]) -> None:
		"""Process a single inbound websocket payload."""
		request_id = payload.get("request_id")
		message_type = payload.get("type")
		try:
			if message_type == "chat.send":
				self._start_turn(request_id, payload)
			elif message_type == "chat.cancel":
				await self._cancel(request_id)
			else:
				raise ValueError("Unsupported message type.")
		except Exception as exc:
			await self._send_error(request_id, str(exc))

	async def close(self) -> None:
		"""Stop any running turn when the socket goes away."""
		if self._delivery is not None:
			self._delivery.cancel()
		if self.busy:
			self._task.cancel()
			try:
				await self._task
			except asyncio.CancelledError:
				pass

	def _start_turn(self, request_id: Any, payload: Dict[str, Any]) -> None:
		if self.busy:
			raise RuntimeError("Still replying; wait for the current answer or cancel it.")
		text = (payload.get("text") or "").strip()
		if not text:
			raise ValueError("Message text is required.")
		self._task = asyncio.create_task(self._run_turn(request_id, text))

	async def _run_turn(self, request_id: Any, text: str) -> None:
		try:
			reply = await self.session.send_message(text)
			if reply.user_message is not None:
				await self._send({"type": "chat.user", "request_id": request_id, "message": reply.user_message.to_dict()})
			if not reply.ok:
				await self._send(
					{"type": "chat.notice", "request_id": request_id, "status": reply.status.value, "notice": reply.notice}
				)
				return
			delivery = reply.delivery
			self._delivery = delivery
			async for message in delivery:
				await self._send({"type": "chat.bubble", "request_id": request_id, "message": message.to_dict()})
			await self._send(
				{
					"type": "chat.cancelled" if delivery.cancelled else "chat.done",
					"request_id": request_id,
					"delivered": len(delivery.delivered),
					"total": delivery.total,
				}
			)
		except Exception as exc:
			LOGGER.exception("Coach turn failed for session %s", self.session.session_id)
			try:
				await self._send_error(request_id, str(exc))
			except Exception as send_exc:
				LOGGER.debug("Could not report turn failure, socket gone: %s", send_exc)
		finally:
			if self._delivery is not None and not self._delivery.finished:
				self._delivery.cancel()
			self._delivery = None

	async def _cancel(self, request_id: Any) -> None:
		if self._delivery is not None:
			# The running turn reports chat.cancelled once the stream stops.
			self._delivery.cancel()
			return
		if not self.busy:
			raise RuntimeError("No reply in progress.")
		self._task.cancel()
		await self._send({"type": "chat.cancelled", "request_id": request_id, "delivered": 0, "total": 0})

	async def _send_error(self, request_id: Any, detail: str) -> None:
		await self._send({"type": "error", "request_id": request_id, "detail": detail})

	async def _send(self, payload: Dict[str, Any]) -> None:
		await self.websocket.send_text(json.dumps(payload))
