# app/services/discounts.py
#
# Regular-customer rewards. A plain record with a claimed flag. Granting one
# also drops a notice into the customer's chat.

import logging
import uuid
from typing import Optional

from app.core.config import settings
from app.models.schemas import DiscountRecord, UserRecord
from app.services.chat_arbiter import ChatOwnershipArbiter
from app.store.repository import RecordStore

logger = logging.getLogger(__name__)


class DiscountService:
    def __init__(self, store: RecordStore, arbiter: ChatOwnershipArbiter):
        self.store = store
        self.arbiter = arbiter

    def grant(self, admin: UserRecord, user_id: str, amount: Optional[float] = None) -> DiscountRecord:
        amount = amount if amount is not None else settings.discount_amount
        discount = DiscountRecord(
            id=uuid.uuid4().hex[:9],
            user_id=user_id,
            amount=amount,
            message=f"Regular customer reward! Use code FRESH{amount:g} for Ksh {amount:g} off.",
            claimed=False,
        )
        self.store.save_discount(discount)
        self.arbiter.post_notice(
            user_id,
            f"🎁 DISCOUNT UNLOCKED: You've been given a special Ksh {amount:g} discount "
            f"for being a regular customer!",
            sender=admin,
        )
        logger.info("🎁 Discount %s (Ksh %g) granted to %s", discount.id, amount, user_id)
        return discount

    def claim(self, user_id: str, discount_id: str) -> Optional[DiscountRecord]:
        """Marks the user's own offer as used. Claiming twice changes nothing."""
        offer = next((d for d in self.store.get_discounts(user_id) if d.id == discount_id), None)
        if offer is None:
            return None
        if offer.claimed:
            return offer
        return self.store.update_discount(discount_id, claimed=True)

    def status_for(self, user_id: str) -> str:
        """'None', 'Pending' (something unclaimed) or 'Claimed'."""
        offers = self.store.get_discounts(user_id)
        if not offers:
            return "None"
        return "Pending" if any(not d.claimed for d in offers) else "Claimed"
