"""
Contact Book and Incident Log

Thin helpers over the key-value store for the user's emergency contacts,
display name and the log of past SOS presses. Contact input is validated
here, before anything is persisted.
"""

import logging
from typing import List, Optional

from safesignal.core.errors import InvalidInputError
from safesignal.core.storage import KeyValueStore
from safesignal.models.alert import Contact, IncidentRecord


CONTACTS_KEY = "contacts"
USER_NAME_KEY = "user_name"
INCIDENTS_KEY = "incidents"


class ContactBook:
    """Ordered list of emergency contacts"""

    def __init__(self, store: KeyValueStore):
        self.logger = logging.getLogger(__name__)
        self.store = store

    def list(self) -> List[Contact]:
        """Stored contacts in insertion order; invalid entries are skipped"""
        raw = self.store.get(CONTACTS_KEY, [])
        if not isinstance(raw, list):
            self.logger.warning("Stored contacts are not a list, ignoring")
            return []

        contacts = []
        for entry in raw:
            try:
                contacts.append(Contact.from_dict(entry))
            except (InvalidInputError, AttributeError, TypeError) as e:
                self.logger.warning(f"Skipping invalid stored contact {entry!r}: {e}")
        return contacts

    def add(self, display_name: str, phone: str) -> Contact:
        """
        Add a contact

        Args:
            display_name: Name to show; may be empty
            phone: Phone number in any format

        Returns:
            The normalized contact that was stored

        Raises:
            InvalidInputError: If the phone number has no digits
        """
        contact = Contact.create(display_name, phone)
        contacts = self.list()
        contacts.append(contact)
        self._save(contacts)
        self.logger.info(f"Added contact {contact.label}")
        return contact

    def remove(self, index: int) -> Contact:
        """
        Remove the contact at index

        Raises:
            InvalidInputError: If index is out of range
        """
        contacts = self.list()
        if not 0 <= index < len(contacts):
            raise InvalidInputError(f"No contact at position {index}")
        removed = contacts.pop(index)
        self._save(contacts)
        self.logger.info(f"Removed contact {removed.label}")
        return removed

    def get_user_name(self) -> Optional[str]:
        name = self.store.get(USER_NAME_KEY)
        if isinstance(name, str) and name.strip():
            return name.strip()
        return None

    def set_user_name(self, name: Optional[str]):
        name = (name or "").strip()
        if name:
            self.store.set(USER_NAME_KEY, name)
        else:
            self.store.delete(USER_NAME_KEY)

    def _save(self, contacts: List[Contact]):
        self.store.set(CONTACTS_KEY, [contact.to_dict() for contact in contacts])


class IncidentLog:
    """Append-only log of SOS presses, newest last"""

    def __init__(self, store: KeyValueStore, max_entries: int = 100):
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.max_entries = max_entries

    def list(self) -> List[IncidentRecord]:
        raw = self.store.get(INCIDENTS_KEY, [])
        if not isinstance(raw, list):
            return []

        records = []
        for entry in raw:
            try:
                records.append(IncidentRecord.from_dict(entry))
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                self.logger.warning(f"Skipping invalid incident entry: {e}")
        return records

    def record(self, record: IncidentRecord) -> IncidentRecord:
        records = self.list()
        records.append(record)
        records = records[-self.max_entries:]
        self.store.set(INCIDENTS_KEY, [r.to_dict() for r in records])
        return record

    def clear(self):
        self.store.delete(INCIDENTS_KEY)
