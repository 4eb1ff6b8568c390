"""ANSI escape sequences used by the terminal renderer."""

CSI = "\x1b["

HIDE_CURSOR = f"{CSI}?25l"
SHOW_CURSOR = f"{CSI}?25h"
CLEAR_TO_EOL = f"{CSI}K"
CARRIAGE_RETURN = "\r"

RESET = f"{CSI}0m"
BOLD = f"{CSI}1m"

GREEN = f"{CSI}32m"
YELLOW = f"{CSI}33m"
RED = f"{CSI}31m"
CYAN = f"{CSI}36m"


def cursor_up(lines: int) -> str:
    """Move the cursor up ``lines`` rows; empty for zero or less."""
    return f"{CSI}{lines}A" if lines > 0 else ""


def fg256(color: int) -> str:
    return f"{CSI}38;5;{color}m"


def bg256(color: int) -> str:
    return f"{CSI}48;5;{color}m"


def style(text: str, *codes: str, enabled: bool = True) -> str:
    """Wrap ``text`` in SGR codes followed by a reset."""
    if not enabled or not codes:
        return text
    return "".join(codes) + text + RESET
