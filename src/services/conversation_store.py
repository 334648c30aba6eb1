"""
ConversationStore - persistence of dialog state keyed by phone number.
"""
from typing import Optional, Union

from loguru import logger
from sqlalchemy.exc import IntegrityError

from models.database import Conversation, Database, utcnow
from models.schemas import ConversationRecord
from error_handling.handlers import retry_on_db_error, translate_db_errors

INITIAL_STATE = "welcome"
EMPTY_CONTEXT = "{}"


class ConversationStore:
    """
    Reads and writes conversation rows.

    Every call opens its own session; nothing is cached between calls.
    """

    def __init__(self, database: Database):
        """
        Initialize the store.

        Args:
            database: Database handle
        """
        self.database = database

    @translate_db_errors("get_conversation")
    @retry_on_db_error()
    def get(self, phone_number: str) -> Optional[ConversationRecord]:
        """
        Fetch the conversation for a phone number.

        Args:
            phone_number: Sender phone number

        Returns:
            ConversationRecord, or None if this number has never written in
        """
        with self.database.session() as session:
            row = session.get(Conversation, phone_number)
            if row is None:
                return None
            return ConversationRecord(
                phone_number=row.phone_number,
                state=row.current_state,
                context=row.context,
                last_activity=row.last_activity,
                created_at=row.created_at,
            )

    @translate_db_errors("create_conversation")
    @retry_on_db_error()
    def create(self, phone_number: str) -> ConversationRecord:
        """
        Create a conversation at WELCOME with an empty context.

        If another writer created the row first, the existing row is returned.

        Args:
            phone_number: Sender phone number

        Returns:
            The stored ConversationRecord
        """
        now = utcnow()
        try:
            with self.database.session() as session:
                session.add(Conversation(
                    phone_number=phone_number,
                    current_state=INITIAL_STATE,
                    context=EMPTY_CONTEXT,
                    last_activity=now,
                    created_at=now,
                ))
        except IntegrityError:
            logger.info(f"Conversation for {phone_number} already exists, reusing it")
            existing = self.get(phone_number)
            if existing is not None:
                return existing
            raise

        logger.info(f"New conversation created for {phone_number}")
        return ConversationRecord(
            phone_number=phone_number,
            state=INITIAL_STATE,
            context=EMPTY_CONTEXT,
            last_activity=now,
            created_at=now,
        )

    def get_or_create(self, phone_number: str) -> ConversationRecord:
        """
        Fetch the conversation, creating it on first contact.

        Args:
            phone_number: Sender phone number

        Returns:
            ConversationRecord
        """
        conversation = self.get(phone_number)
        if conversation is None:
            conversation = self.create(phone_number)
        return conversation

    @translate_db_errors("update_conversation")
    @retry_on_db_error()
    def update(self, phone_number: str, state: Union[str, object], context_json: str) -> None:
        """
        Write the new state and context in one statement and touch last_activity.

        Args:
            phone_number: Sender phone number
            state: New state (ConversationState or its string value)
            context_json: Serialized context for the new state
        """
        state_value = str(state)
        with self.database.session() as session:
            row = session.get(Conversation, phone_number)
            if row is None:
                logger.warning(f"Updating missing conversation for {phone_number}, creating it")
                row = Conversation(phone_number=phone_number, created_at=utcnow())
                session.add(row)
            row.current_state = state_value
            row.context = context_json
            row.last_activity = utcnow()

        logger.debug(f"Conversation {phone_number} saved in state {state_value}")
