"""CLI input: prompted transfer requests from stdin."""

from typing import Callable

from transfer_kernel.db.types import money_from_str
from transfer_kernel.domain.dtos import TransferRequest
from transfer_kernel.exceptions import TransferValidationError
from transfer_kernel.logging_config import get_logger

logger = get_logger("cli.prompts")


def read_entry(prompt: str, input_fn: Callable[[str], str] = input) -> str:
    """Prompt once and return the trimmed answer."""
    return input_fn(prompt).strip()


class PromptRequestSource:
    """
    Reads transfer requests interactively.

    An empty "from account" (or end of input) ends the session.  A
    malformed amount or account is reported and the three prompts start
    over; such input never reaches the store.
    """

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        out: Callable[[str], None] = print,
    ):
        self._input = input_fn
        self._out = out

    def next_request(self) -> TransferRequest | None:
        while True:
            try:
                from_account = read_entry("from account no.: ", self._input)
                if not from_account:
                    return None
                to_account = read_entry("to account no.: ", self._input)
                amount_text = read_entry("amount: ", self._input)
            except EOFError:
                return None

            try:
                amount = money_from_str(amount_text)
            except ValueError as exc:
                self._report_invalid(TransferValidationError("amount", amount_text, str(exc)))
                continue
            try:
                request = TransferRequest(from_account, to_account, amount)
            except TransferValidationError as exc:
                self._report_invalid(exc)
                continue

            self._out(
                f"Doing transfer of {request.amount} from "
                f"{request.from_account} to {request.to_account}"
            )
            return request

    def _report_invalid(self, exc: TransferValidationError) -> None:
        logger.info("transfer_input_rejected", extra={"field": exc.field, "reason": exc.reason})
        self._out(f"  {exc}; try again.")
