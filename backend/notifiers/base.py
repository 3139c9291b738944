"""
Notification sink contract.

Delivery is best-effort: a sink logs and swallows its own failures so the
caller's match transition or settlement never depends on it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Sequence, Union

logger = logging.getLogger("matchday.notifiers")

Recipients = Union[str, Sequence[str]]


def as_recipient_list(recipients: Recipients) -> List[str]:
    if isinstance(recipients, str):
        return [recipients]
    seen = []
    for recipient in recipients:
        if recipient and recipient not in seen:
            seen.append(recipient)
    return seen


class Notifier(ABC):
    @abstractmethod
    def notify(self, recipients: Recipients, payload: Dict[str, Any]) -> None:
        """Deliver ``payload`` (title, message and context) to one or many players."""

    def dismiss(self, recipient: str, *, match_id: str, type: str) -> None:
        """Withdraw an earlier notification; sinks without an inbox ignore this."""


class FanoutNotifier(Notifier):
    """Sends every notification through each configured sink."""

    def __init__(self, notifiers: Iterable[Notifier]):
        self.notifiers = list(notifiers)

    def notify(self, recipients: Recipients, payload: Dict[str, Any]) -> None:
        for notifier in self.notifiers:
            try:
                notifier.notify(recipients, payload)
            except Exception as e:
                logger.error(f"Notifier {type(notifier).__name__} failed: {e}", exc_info=True)

    def dismiss(self, recipient: str, *, match_id: str, type: str) -> None:
        for notifier in self.notifiers:
            try:
                notifier.dismiss(recipient, match_id=match_id, type=type)
            except Exception as e:
                logger.error(f"Notifier {notifier.__class__.__name__} dismiss failed: {e}", exc_info=True)
