from typing import Dict
from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated user for RBAC checks.
    Issued by the auth service; the ledger only reads id (recorded_by / assigned_by) and role.
    """

    id: UUID
    role: str
    permissions: Dict[str, Dict[str, bool]] = {}
