"""
PurrfectCare Backend - Pet & Owner Models

Purpose: Read-only views of the pets and users tables. Both are owned by other
services; the reminder subsystem only reads them for ownership checks and
email rendering.
"""

from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class Pet(BaseModel):
    """Pet model (subset used by reminders)"""

    pet_id: str = Field(..., description="Unique pet identifier")
    owner_id: str = Field(..., description="Owning user ID")
    name: str
    species: Optional[str] = None
    is_deleted: bool = False

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> 'Pet':
        """Create from DynamoDB item"""
        return cls(
            pet_id=item['pet_id'],
            owner_id=item['owner_id'],
            name=item.get('name', ''),
            species=item.get('species'),
            is_deleted=bool(item.get('is_deleted', False)),
        )

    def to_dynamodb_item(self) -> Dict[str, Any]:
        """Convert to DynamoDB item"""
        item = {
            'pet_id': self.pet_id,
            'owner_id': self.owner_id,
            'name': self.name,
            'is_deleted': self.is_deleted,
        }
        if self.species:
            item['species'] = self.species
        return item


class Owner(BaseModel):
    """User model (subset used by reminder emails)"""

    user_id: str = Field(..., description="Unique user identifier")
    name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> 'Owner':
        """Create from DynamoDB item"""
        return cls(
            user_id=item['user_id'],
            name=item.get('name'),
            email=item.get('email'),
        )

    def to_dynamodb_item(self) -> Dict[str, Any]:
        """Convert to DynamoDB item"""
        item = {'user_id': self.user_id}
        if self.name:
            item['name'] = self.name
        if self.email:
            item['email'] = self.email
        return item
