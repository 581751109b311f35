from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller, passed explicitly into the services."""
    user_id: str
    email: Optional[str] = None
