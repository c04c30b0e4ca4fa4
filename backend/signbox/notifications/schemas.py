from typing import Optional

from pydantic import BaseModel


class NotifyRequest(BaseModel):
    """Body of POST /notify; field names match the web client's JSON."""

    to: Optional[str] = None
    signerName: Optional[str] = None
    documentTitle: Optional[str] = None
    documentUrl: Optional[str] = None
    creatorName: Optional[str] = None

    @property
    def missing_required(self) -> list[str]:
        return [name for name in ("to", "documentTitle", "documentUrl") if not getattr(self, name)]
