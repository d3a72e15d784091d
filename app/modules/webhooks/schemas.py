from pydantic import BaseModel
from typing import Optional, List, Dict, Any


class ClerkEmailAddress(BaseModel):
    id: Optional[str] = None
    email_address: str


class ClerkUserData(BaseModel):
    id: str
    email_addresses: List[ClerkEmailAddress] = []
    primary_email_address_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def primary_email(self) -> Optional[str]:
        for address in self.email_addresses:
            if self.primary_email_address_id and address.id == self.primary_email_address_id:
                return address.email_address
        return self.email_addresses[0].email_address if self.email_addresses else None


class ClerkEvent(BaseModel):
    type: str
    data: Dict[str, Any]
    object: Optional[str] = None
