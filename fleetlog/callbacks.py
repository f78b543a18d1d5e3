"""Callback data carried by inline buttons.

Format is ``prefix:param1:param2``. Telegram limits callback data to 64
bytes, so parameters stay short (ids and values, never labels).
"""

MAX_CALLBACK_BYTES = 64
SEPARATOR = ":"

SHIFT_START = "shift_start"
SHIFT_END = "shift_end"
SHIFT_TODAY = "shift_today"
SHIFT_STATS = "shift_stats"
BATCH_OMIT = "batch_omit"
BATCH_CANCEL = "batch_cancel"

FUEL_UNIT = "fuel_unit"
FUEL_AMOUNT_OK = "fuel_amount_ok"
FUEL_AMOUNT_FIX = "fuel_amount_fix"
FUEL_TYPE = "fuel_type"
FUEL_PAID = "fuel_paid"
FUEL_SAVE = "fuel_save"
FUEL_CANCEL = "fuel_cancel"

PAY_SEARCH = "pay_search"
PAY_CONFIRM = "pay_confirm"
PAY_CANCEL = "pay_cancel"

KM_MANAGE = "km_manage"
KM_EDIT = "km_edit"
KM_FORCE = "km_force"
KM_OMIT = "km_omit"
KM_OMIT_CONFIRM = "km_omit_confirm"
MENU_CANCEL = "menu_cancel"


def encode_action(prefix: str, *params: object) -> str:
    """Build callback data for a button.

    Raises:
        ValueError: A part contains the separator, or the result exceeds 64 bytes.
    """
    parts = [prefix, *(str(p) for p in params)]
    for part in parts:
        if SEPARATOR in part:
            raise ValueError(f"Callback part may not contain '{SEPARATOR}': {part!r}")

    data = SEPARATOR.join(parts)
    if len(data.encode("utf-8")) > MAX_CALLBACK_BYTES:
        raise ValueError(f"Callback data exceeds {MAX_CALLBACK_BYTES} bytes: {data!r}")
    return data


def decode_action(data: str) -> tuple[str, list[str]]:
    """Split callback data into its prefix and parameters."""
    prefix, *params = data.split(SEPARATOR)
    return prefix, params
