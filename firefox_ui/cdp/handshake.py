"""
Session bootstrap run once after the transport connects.

Uses the reserved message ids 0 (target discovery) and 1 (attach); the
request table starts allocating at 2 so these never collide.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from firefox_ui.cdp.connection import CDPConnection
from firefox_ui.errors import AttachError, ConnectionClosedError, NoPageTargetError, ProtocolError
from firefox_ui.models import Envelope, SessionIdentity, TargetInfo

logger = logging.getLogger(__name__)

DISCOVER_ID = 0
ATTACH_ID = 1


async def _next_envelope(connection: CDPConnection) -> Envelope:
    """Receive the next decodable frame, skipping malformed ones."""
    while True:
        try:
            return await connection.receive()
        except ProtocolError as e:
            logger.warning(f"Skipping malformed frame during handshake: {e}")


async def discover_page_target(connection: CDPConnection) -> str:
    """Enable target discovery and return the id of the first page target.

    Raises:
        NoPageTargetError: If the connection closes first.
    """
    await connection.send_message(
        {"id": DISCOVER_ID, "method": "Target.setDiscoverTargets", "params": {"discover": True}}
    )
    while True:
        try:
            envelope = await _next_envelope(connection)
        except ConnectionClosedError as e:
            raise NoPageTargetError("Connection closed before a page target appeared") from e

        if envelope.method != "Target.targetCreated":
            continue
        try:
            info = TargetInfo.model_validate(envelope.params.get("targetInfo") or {})
        except ValidationError as e:
            logger.warning(f"Ignoring malformed targetCreated event: {e}")
            continue
        if info.type == "page":
            logger.debug(f"Found page target {info.target_id} ({info.url})")
            return info.target_id
        logger.debug(f"Ignoring {info.type} target {info.target_id}")


async def attach_to_target(connection: CDPConnection, target_id: str) -> str:
    """Attach to a target and return the session id.

    Raises:
        AttachError: If the reply carries an error, lacks a session id, or
            the connection closes first.
    """
    await connection.send_message(
        {"id": ATTACH_ID, "method": "Target.attachToTarget", "params": {"targetId": target_id}}
    )
    while True:
        try:
            envelope = await _next_envelope(connection)
        except ConnectionClosedError as e:
            raise AttachError(f"Connection closed while attaching to {target_id}") from e

        if envelope.id != ATTACH_ID or envelope.method:
            continue
        if envelope.error is not None:
            raise AttachError("Target error: " + json.dumps(envelope.error))

        result = envelope.result if isinstance(envelope.result, dict) else {}
        session_id = result.get("sessionId")
        if not isinstance(session_id, str) or not session_id:
            raise AttachError(f"No session id in attach reply: {envelope.result!r}")
        logger.debug(f"Attached session {session_id} to target {target_id}")
        return session_id


async def handshake(connection: CDPConnection) -> SessionIdentity:
    """Discover the page target and attach a session to it."""
    target_id = await discover_page_target(connection)
    session_id = await attach_to_target(connection, target_id)
    return SessionIdentity(target_id=target_id, session_id=session_id)
