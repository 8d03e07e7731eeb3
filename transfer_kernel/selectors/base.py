"""
Module: transfer_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/ and models/.
    MUST NOT import from services/ or domain/.

Invariants enforced:
    - Read-only access: selectors MUST NOT add, delete, flush or commit.
    - Session ownership: selectors do not create sessions; the caller owns
      the session and decides when its read transaction ends.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs or computed results.
    """

    def __init__(self, session: Session):
        self.session = session
