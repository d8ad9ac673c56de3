"""Checkout lock state machine.

A document is either Available or CheckedOut(holder, since, until). The
four checkout columns on the document row are only a projection of this
value: read them with checkout_state_of() and write them back with
project(), never piecemeal.

Expiry is lazy. An expired CheckedOut is treated as Available when a
different user tries to acquire it; no sweeper clears it.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Union
from uuid import UUID

from .errors import AlreadyCheckedOut, NotCheckedOutByYou


@dataclass(frozen=True)
class Available:
    """No one holds the lock."""

    def is_held_by(self, user_id: UUID, now: datetime) -> bool:
        return False

    def blocks(self, user_id: UUID, now: datetime) -> bool:
        return False


@dataclass(frozen=True)
class CheckedOut:
    """Exclusive edit lease held by one user until expires_at."""
    holder_id: UUID
    checked_out_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_held_by(self, user_id: UUID, now: datetime) -> bool:
        return self.holder_id == user_id

    def blocks(self, user_id: UUID, now: datetime) -> bool:
        """True if user_id may not mutate the document right now."""
        return self.holder_id != user_id and not self.is_expired(now)


CheckoutState = Union[Available, CheckedOut]


def checkout_state_of(document: Any) -> CheckoutState:
    """Read the checkout columns of a document into one state value."""
    if not document.is_checked_out or document.checked_out_by_user_id is None:
        return Available()
    return CheckedOut(
        holder_id=document.checked_out_by_user_id,
        checked_out_at=document.checked_out_at,
        expires_at=document.check_out_expires_at,
    )


def project(state: CheckoutState) -> Dict[str, Optional[Any]]:
    """Flatten a state value into the document's checkout columns."""
    if isinstance(state, CheckedOut):
        return {
            "is_checked_out": True,
            "checked_out_by_user_id": state.holder_id,
            "checked_out_at": state.checked_out_at,
            "check_out_expires_at": state.expires_at,
        }
    return {
        "is_checked_out": False,
        "checked_out_by_user_id": None,
        "checked_out_at": None,
        "check_out_expires_at": None,
    }


def acquire(
    state: CheckoutState,
    document_id: UUID,
    user_id: UUID,
    now: datetime,
    lease: timedelta
) -> CheckedOut:
    """Transition to CheckedOut for user_id.

    Succeeds when the document is available, already held by the same user
    (the lease is renewed), or held by someone whose lease has expired.

    Raises:
        AlreadyCheckedOut: If another user holds an unexpired lease
    """
    if isinstance(state, CheckedOut) and state.blocks(user_id, now):
        raise AlreadyCheckedOut(document_id, state.holder_id, state.expires_at)

    return CheckedOut(holder_id=user_id, checked_out_at=now, expires_at=now + lease)


def release(
    state: CheckoutState,
    document_id: UUID,
    user_id: UUID
) -> Available:
    """Transition back to Available.

    The holder may release even after the lease expired, as long as nobody
    else has taken the lock in the meantime.

    Raises:
        NotCheckedOutByYou: If user_id is not the current holder
    """
    if not isinstance(state, CheckedOut) or state.holder_id != user_id:
        holder = state.holder_id if isinstance(state, CheckedOut) else None
        raise NotCheckedOutByYou(document_id, holder)
    return Available()
