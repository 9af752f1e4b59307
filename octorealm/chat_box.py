"""The client's chat input line with its message history."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ChatBox:
    """Text typed into the chat, and the messages sent before."""

    chatting: bool = False
    text: str = ""
    history: List[str] = field(default_factory=list)
    history_ptr: Optional[int] = None

    def toggle(self) -> Optional[str]:
        """Open or close the chat; closing sends the typed text, which is returned."""
        if not self.chatting:
            self.text = ""
            self.chatting = True
            return None

        message, self.text = self.text, ""
        self.history_ptr = None
        self.chatting = False
        if not message:
            return None
        if not self.history or self.history[-1] != message:
            self.history.append(message)
        return message

    def type_text(self, text: str) -> str:
        """Append the printable characters of ``text``."""
        if self.chatting:
            self.text += "".join(c for c in text if unicodedata.category(c) != "Cc")
        return self.text

    def backspace(self) -> str:
        if self.chatting:
            self.text = self.text[:-1]
        return self.text

    def history_up(self) -> str:
        """Recall the previous message in the history."""
        if self.chatting and self.history:
            current = self.history_ptr if self.history_ptr is not None else len(self.history)
            self.history_ptr = max(current - 1, 0)
            self.text = self.history[self.history_ptr]
        return self.text

    def history_down(self) -> str:
        """Recall the next message in the history."""
        if self.chatting and self.history_ptr is not None:
            self.history_ptr = min(self.history_ptr + 1, len(self.history) - 1)
            self.text = self.history[self.history_ptr]
        return self.text