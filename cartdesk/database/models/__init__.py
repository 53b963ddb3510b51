from cartdesk.database.models.abandoned_checkout import AbandonedCheckout
from cartdesk.database.models.cart_remark import CartRemark
from cartdesk.database.models.message_template import MessageTemplate

__all__ = ["AbandonedCheckout", "CartRemark", "MessageTemplate"]
