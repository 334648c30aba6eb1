"""
Inbound message boundary between the chat transport and the dialog engine.

The transport (a webhook endpoint, the console loop) hands each text message
to InboundMessageProcessor.process, which never raises: unexpected errors are
logged with their traceback and reported as an InboundResult.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from loguru import logger

from conversation.dialog_engine import DialogEngine
from error_handling.error_messages import GENERIC_APOLOGY

WHATSAPP_BUSINESS_OBJECT = "whatsapp_business_account"


@dataclass
class InboundResult:
    """Outcome of processing one inbound message."""

    ok: bool
    replies: List[str] = field(default_factory=list)
    error: Optional[str] = None


class InboundMessageProcessor:
    """
    Top-level error boundary around DialogEngine.handle_message.

    Attributes:
        engine: Dialog engine handling the messages
    """

    def __init__(self, engine: DialogEngine):
        self.engine = engine

    def process(self, phone_number: str, text: str) -> InboundResult:
        """
        Handle one text message.

        Args:
            phone_number: Sender phone number
            text: Message body

        Returns:
            InboundResult with the replies sent, or ``error="internal_error"``
        """
        try:
            replies = self.engine.handle_message(phone_number, text)
            return InboundResult(ok=True, replies=replies)
        except Exception:
            logger.exception(f"Unhandled error processing message from {phone_number}")
            self.engine.send_reply(phone_number, GENERIC_APOLOGY)
            return InboundResult(ok=False, error="internal_error")

    def process_webhook(self, payload: Dict[str, Any]) -> List[InboundResult]:
        """
        Handle every text message in a WhatsApp Cloud webhook body.

        Args:
            payload: Decoded JSON body

        Returns:
            One result per text message, in delivery order
        """
        return [
            self.process(phone_number, text)
            for phone_number, text in extract_text_messages(payload)
        ]


def extract_text_messages(payload: Dict[str, Any]) -> Iterator[Tuple[str, str]]:
    """
    Yield ``(phone_number, text)`` for each text message in a webhook body.

    Non-text messages (images, locations, reactions...) and status updates are
    skipped.

    Args:
        payload: WhatsApp Cloud webhook body

    Yields:
        Sender id and message text
    """
    if not isinstance(payload, dict) or payload.get("object") != WHATSAPP_BUSINESS_OBJECT:
        logger.warning("Ignoring webhook payload that is not from a WhatsApp business account")
        return

    for entry in payload.get("entry") or []:
        for change in entry.get("changes") or []:
            if change.get("field") != "messages":
                continue

            for message in (change.get("value") or {}).get("messages") or []:
                sender = message.get("from")
                if message.get("type") != "text":
                    logger.info(f"Skipping {message.get('type')} message from {sender}")
                    continue

                body = (message.get("text") or {}).get("body")
                if not sender or body is None:
                    logger.warning(f"Skipping text message without sender or body: {message.get('id')}")
                    continue

                yield sender, body
