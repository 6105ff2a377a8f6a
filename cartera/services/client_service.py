"""Client registry service for the Cartera ledger."""
import logging
import re

from cartera.config import CLIENTS, PHONE_PATTERN
from cartera.exceptions import ClientNotFoundError, InvalidInputError

logger = logging.getLogger(__name__)


def format_phone(value):
    """Normalise a phone number to 0000-0000, keeping digits only."""
    digits = re.sub(r"\D", "", str(value or ""))
    if len(digits) > 4:
        return f"{digits[:4]}-{digits[4:8]}"
    return digits


class ClientService:
    """Handles client registration and lookups."""

    def __init__(self, db_manager):
        self.db = db_manager

    def _validate(self, name, phone):
        if not name or not str(name).strip():
            raise InvalidInputError("Client name is required", 'name')
        phone = format_phone(phone)
        if not re.match(PHONE_PATTERN, phone):
            raise InvalidInputError("Phone must have the format 0000-0000", 'phone', phone)
        return str(name).strip(), phone

    def add_client(self, name, phone):
        """Register a client.

        Returns:
            The new client id.

        Raises:
            InvalidInputError: If the name is blank or the phone is malformed.
        """
        name, phone = self._validate(name, phone)
        client_id = self.db.create_record(CLIENTS, {'name': name, 'phone': phone})
        logger.info("Registered client %s", client_id)
        return client_id

    def get_clients(self):
        return self.db.list_records(CLIENTS, order_by='name')

    def get_client(self, client_id):
        client = self.db.get_record(CLIENTS, client_id)
        if client is None:
            raise ClientNotFoundError(client_id)
        return client

    def update_client(self, client_id, name, phone):
        self.get_client(client_id)
        name, phone = self._validate(name, phone)
        self.db.update_record(CLIENTS, client_id, {'name': name, 'phone': phone})

    def find_clients(self, search):
        """Case-insensitive substring search on client names."""
        term = (search or "").strip().lower()
        return [c for c in self.get_clients() if term in c.get('name', '').lower()]
