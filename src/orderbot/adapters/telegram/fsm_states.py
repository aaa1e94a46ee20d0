"""
Telegram-specific FSM state definitions using aiogram's StatesGroup.

The wizard data itself lives in the core OrderWizard; the FSM only
records what the next text message means. Only Telegram handlers import
from this module — core logic never does.
"""

from aiogram.fsm.state import State, StatesGroup


class OrderCreation(StatesGroup):
    """
    States for the guided order creation flow.

    Flow: lead → project → details → items → submit

    FSM data keys used:
      field_key   — which editable field the next message fills (see order_fields)
      item_index  — item row being edited (items step only)
      lead_search — current search term in the lead picker
    """

    browsing = State()            # A step screen is shown; input comes from buttons
    entering_field = State()      # Waiting for a text value for field_key
    searching_leads = State()     # Waiting for a lead search term
