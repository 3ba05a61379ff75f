"""
Signal Dispatch

Sends composed alert text through the best available channel:
- Native share capability when the host offers one
- Otherwise a chat-app deep link opened in a new browser context
Also derives per-contact SMS/chat links and copies text to the clipboard.
"""

import asyncio
import logging
import webbrowser
from typing import Callable, Dict, Iterable, List, Optional, Protocol

import pyperclip

from safesignal.core.errors import CancelledByUserError
from safesignal.models.alert import (
    Contact,
    ContactLinks,
    DispatchChannel,
    DispatchOutcome,
    DispatchResult,
)
from .composer import DEFAULT_CHAT_SERVICE, chat_link, sms_link


class ShareCapability(Protocol):
    """Host native share sheet"""

    def is_available(self) -> bool:
        ...

    async def share(self, title: str, text: str) -> None:
        """Resolve on success, raise ShareCancelledError when dismissed"""
        ...


def open_in_new_context(url: str) -> bool:
    """Open a URL in a new browser window/tab"""
    return webbrowser.open(url, new=2)


class SignalDispatcher:
    """Hands alert text to a messaging channel; one attempt per call"""

    def __init__(
        self,
        share: Optional[ShareCapability] = None,
        open_link: Callable[[str], bool] = open_in_new_context,
        clipboard_writer: Callable[[str], None] = pyperclip.copy,
        config: Dict = None
    ):
        self.logger = logging.getLogger(__name__)
        self.share = share
        self.open_link = open_link
        self.clipboard_writer = clipboard_writer
        self.config = config or {}

        self.share_title = self.config.get('share_title', 'SOS')
        self.chat_service = self.config.get('chat_service', DEFAULT_CHAT_SERVICE)

    def native_share_available(self) -> bool:
        if self.share is None:
            return False
        try:
            return bool(self.share.is_available())
        except Exception as e:
            self.logger.warning(f"Share capability check failed: {e}")
            return False

    async def dispatch(self, text: str) -> DispatchResult:
        """
        Send text through the first available channel

        Args:
            text: Composed alert text

        Returns:
            DispatchResult describing what happened; never raises
        """
        if self.native_share_available():
            return await self._dispatch_native(text)
        return await self._dispatch_deep_link(text)

    async def _dispatch_native(self, text: str) -> DispatchResult:
        try:
            await self.share.share(title=self.share_title, text=text)
        except CancelledByUserError:
            self.logger.info("Share cancelled by user")
            return DispatchResult(DispatchOutcome.CANCELLED, DispatchChannel.NATIVE_SHARE, text)
        except Exception as e:
            self.logger.error(f"Native share failed: {e}")
            return DispatchResult(
                DispatchOutcome.FAILED, DispatchChannel.NATIVE_SHARE, text,
                error=str(e) or e.__class__.__name__
            )

        self.logger.info("Alert handed to native share")
        return DispatchResult(DispatchOutcome.SENT, DispatchChannel.NATIVE_SHARE, text)

    async def _dispatch_deep_link(self, text: str) -> DispatchResult:
        url = chat_link(text, service=self.chat_service)
        try:
            opened = await asyncio.to_thread(self.open_link, url)
        except Exception as e:
            self.logger.error(f"Could not open chat link: {e}")
            return DispatchResult(
                DispatchOutcome.FAILED, DispatchChannel.DEEP_LINK, text, url=url,
                error=str(e) or e.__class__.__name__
            )

        if opened is False:
            self.logger.warning("No handler accepted the chat link")
            return DispatchResult(
                DispatchOutcome.FAILED, DispatchChannel.DEEP_LINK, text, url=url,
                error="No application could open the link"
            )

        self.logger.info("Alert handed to chat deep link")
        return DispatchResult(DispatchOutcome.SENT, DispatchChannel.DEEP_LINK, text, url=url)

    def contact_links(self, contact: Contact, text: str) -> ContactLinks:
        """SMS and chat-app links for one contact, pre-filled with text"""
        return ContactLinks(
            contact=contact,
            sms=sms_link(contact.phone_digits, text),
            chat=chat_link(text, contact.phone_digits, service=self.chat_service)
        )

    def links_for(self, contacts: Iterable[Contact], text: str) -> List[ContactLinks]:
        return [self.contact_links(contact, text) for contact in contacts]

    async def copy_to_clipboard(self, text: str) -> bool:
        """
        Copy text to the system clipboard

        Returns:
            True on success, False if the clipboard could not be written
        """
        try:
            await asyncio.to_thread(self.clipboard_writer, text)
        except Exception as e:
            self.logger.warning(f"Clipboard copy failed: {e}")
            return False
        return True
