"""Spoken prompt texts. Rendering them as audio happens elsewhere."""

from __future__ import annotations

ADDED_ASK_MORE_PIZZA = "Great. I added {items}. Would you like another pizza?"
ADDED_ASK_MORE_EXTRAS = "Okay. I added {items}. Anything else to drink or for dessert?"
ASK_WHICH_PIZZA = "Sure. Which pizza would you like to add?"
ASK_WHICH_EXTRA = "Sure. You can say for example: {examples}."
ASK_MORE_PIZZA = "Would you like another pizza?"
OFFER_EXTRAS = "Would you like a drink or a dessert?"
ASK_MORE_EXTRAS = "Anything else to drink or for dessert?"
NOTHING_YET = "I haven't noted anything yet. What would you like to order?"

CLARIFY_LISTEN = (
    "Sorry, I didn't catch that. You can say for example: one Margherita, "
    "a Coca, or a Tiramisu. I can also read you the menu."
)
CLARIFY_EXTRAS = "Sorry, I didn't catch that. Would you like a drink or a dessert? You can also say no thanks."
DIDNT_HEAR = "Sorry, I didn't hear you. {question}"

CONFIRM_YES_NO = "Please say yes to confirm, or tell me what you would like to change."
ASK_EDIT = (
    "Okay. What would you like to change? For example: remove the Coca, "
    "add a Reine, or no olives on the pizza."
)
EDIT_NOT_UNDERSTOOD = "I didn't understand the change. What would you like to change?"
EDIT_NOT_FOUND = "I don't see {label} in your order. What would you like to remove?"
EDIT_EMPTY_CART = "Your order is empty. What would you like to add?"
EDIT_NO_PIZZA = "I don't see a pizza to change. What would you like to add?"

ASK_TYPE = "Perfect. Is that for delivery or takeaway?"
REPEAT_TYPE = "Is that for delivery or takeaway?"
ASK_NAME = "Very good. What name should I put on the order?"
REPEAT_NAME = "What name should I put on the order?"
ASK_PHONE = "Thank you. What is your phone number?"
REPEAT_PHONE = "What is your phone number?"
ASK_ADDRESS = "Perfect. What is the delivery address, with the street number, postal code and city?"
REPEAT_ADDRESS = (
    "I didn't get the full address. Please say the house number, the street name, "
    "then the postal code and the city, for example: 12 Baker Street, 75001 Paris."
)
ADDRESS_MISSING_PARTS = "I still need the {parts} for the delivery. Please say the full address again."

CONFIRMED_TAKEAWAY = (
    "Your order is confirmed. We will call you when it is ready. Thank you and see you soon."
)
CONFIRMED_DELIVERY = "Your order is confirmed and will be delivered soon. Thank you and see you soon."
CANCELLED_BY_CALLER = "Okay, I cancelled your order. Goodbye."
ESCALATE = "I'm having trouble understanding. Let me transfer you to a member of our staff."

TERMINAL_CONFIRMED = "Your order is already confirmed. Thank you for calling."
TERMINAL_CANCELLED = "This call has ended. Please call again if you need anything."
NOT_CONFIGURED = "This number is not configured yet. Please contact the restaurant directly."

QUESTION_FOR_STATE = {
    "listen": "What would you like to order?",
    "more": ASK_MORE_PIZZA,
    "extras": OFFER_EXTRAS,
    "extras_more": ASK_MORE_EXTRAS,
    "edit": "What would you like to change?",
    "type": REPEAT_TYPE,
    "name": REPEAT_NAME,
    "phone": REPEAT_PHONE,
    "address_full": "What is the delivery address?",
}
