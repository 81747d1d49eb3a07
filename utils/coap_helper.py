# utils/coap_helper.py
"""Translate power commands into CoAP exchanges with the switch device.

The device exposes three POST resources below a common base URL
(``pwr_on``, ``pwr_off`` and ``pwr_get_t``). Each request carries the current
Unix time as its payload and the device answers with ``"<flag>:<epoch>"``,
where ``flag`` is ``1`` for ON and ``epoch`` is the time of the last state
change (``0`` if none is recorded).
"""
import asyncio
import logging
import re
import time
from datetime import datetime, timezone, tzinfo
from typing import Optional

import aiocoap
from aiocoap import error as coap_errors

from utils.data_models import Command, PowerState, PowerStatus
from utils.errors import MalformedReply, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %Z"

_EPOCH_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1


def classify_command(command: str) -> Command:
    """Map a caller-supplied command name; anything unknown is a status query."""
    if command == Command.ON.value:
        return Command.ON
    if command == Command.OFF.value:
        return Command.OFF
    return Command.STATUS


def build_request_url(endpoint: str, command: Command) -> str:
    return endpoint + command.coap_suffix


def build_request_payload(now: Optional[float] = None) -> bytes:
    if now is None:
        now = time.time()
    return str(int(now)).encode("ascii")


def format_timestamp(epoch: int, tz: Optional[tzinfo] = None) -> str:
    """Render epoch seconds in ``tz``, or the local zone when ``tz`` is None."""
    moment = datetime.fromtimestamp(epoch, tz=timezone.utc).astimezone(tz)
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_epoch(field: str) -> int:
    if not _EPOCH_PATTERN.fullmatch(field):
        raise MalformedReply(field, f"epoch is not a decimal integer: '{field}'")
    value = int(field)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise MalformedReply(field, f"epoch out of 64-bit range: '{field}'")
    return value


def parse_reply(payload: bytes, tz: Optional[tzinfo] = None) -> PowerStatus:
    """Parse a raw device reply into a PowerStatus.

    Only a flag of exactly ``"1"`` reads as ON; every other flag reads as OFF.
    Raises MalformedReply when the reply is not ``<flag>:<epoch>`` or the
    epoch cannot be read.
    """
    message = payload.decode("utf-8", errors="replace")

    fields = message.split(":")
    if len(fields) != 2:
        raise MalformedReply(message)
    flag, epoch_field = fields

    state = PowerState.ON if flag == "1" else PowerState.OFF
    changed = parse_epoch(epoch_field)
    if changed == 0:
        return PowerStatus(state=state, last_change=None)

    try:
        last_change = format_timestamp(changed, tz)
    except (OverflowError, OSError, ValueError) as e:
        raise MalformedReply(epoch_field, f"epoch cannot be represented as a date: '{epoch_field}' ({e})") from e
    return PowerStatus(state=state, last_change=last_change)


async def _exchange(url: str, payload: bytes) -> bytes:
    context = await aiocoap.Context.create_client_context()
    try:
        request = aiocoap.Message(code=aiocoap.POST, uri=url, payload=payload)
        response = await context.request(request).response
    finally:
        await context.shutdown()
    return response.payload


async def post_with_timeout(url: str, payload: bytes, timeout: float) -> bytes:
    """Send one CoAP POST and return the reply payload.

    A client context is created for this exchange only and shut down before
    returning; the timeout covers context setup and shutdown as well. Raises
    TransportError on timeout or any CoAP/socket failure.
    """
    try:
        return await asyncio.wait_for(_exchange(url, payload), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise TransportError(e) from e
    except (coap_errors.Error, OSError) as e:
        raise TransportError(e) from e


async def execute(command: str, endpoint: str, timeout: float = DEFAULT_TIMEOUT,
                  tz: Optional[tzinfo] = None) -> PowerStatus:
    """Run a single power command against the device at ``endpoint``."""
    coap_url = build_request_url(endpoint, classify_command(command))
    coap_data = build_request_payload()

    logger.debug(f"CoAP POST: {coap_url} <-- {coap_data.decode('ascii')}")
    reply = await post_with_timeout(coap_url, coap_data, timeout)
    logger.debug(f"CoAP reply: \"{reply.decode('utf-8', errors='replace')}\"")

    return parse_reply(reply, tz)
