from enum import Enum


class CartStatus(str, Enum):
    ACTIVE = "active"
    MERGED = "merged"            # Anonymous cart folded into a user cart after login
    CHECKED_OUT = "checked_out"


class CartAction(str, Enum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"
    CLEAR = "clear"
