"""CLI utilities: formatting, console log muting, error printing."""

import logging
from decimal import Decimal
from typing import Callable

from transfer_kernel.db.types import round_money


def fmt_amount(v) -> str:
    """Format amount for display (e.g. 1,234.50)."""
    d = round_money(Decimal(str(v)))
    return f"{d:,.2f}"


def enable_quiet_logging():
    """Mute console handlers so CLI output stays clean. Returns the pairs for restore_logging()."""
    tk_logger = logging.getLogger("transfer_kernel")
    muted = []
    for h in tk_logger.handlers:
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            muted.append((h, h.level))
            h.setLevel(logging.CRITICAL + 1)
    return muted


def restore_logging(muted) -> None:
    """Put muted handlers back to the levels they had."""
    for h, level in muted:
        h.setLevel(level)


def print_exception_chain(exc: BaseException, out: Callable[[str], None] = print) -> None:
    """Print an exception and every cause behind it, outermost first."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        code = getattr(current, "code", None)
        prefix = f"{type(current).__name__}"
        if isinstance(code, str):
            prefix += f" ({code})"
        out(f"  {prefix}: {current}")
        current = current.__cause__ or current.__context__
