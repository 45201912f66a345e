#!/usr/bin/env python
"""
    Equipment Schema for Equiplend,
    the serialized form of an Equipment row and its short reference.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from equiplend.core.models import EquipmentStatus, ActiveKind


class EquipmentRef(BaseModel):
    id: str
    code: str
    name: str
    type: str

    class Config:
        from_attributes = True


class Equipment(BaseModel):
    id: str
    code: str
    name: str
    serial: Optional[str] = None
    type: str
    status: EquipmentStatus
    description: Optional[str] = None
    created_by: Optional[str] = None
    active_kind: Optional[ActiveKind] = None
    active_entry_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "5b0c3c3e-8f0e-4a43-a1a9-3f7f6f0c2a11",
                "code": "LAP-001",
                "name": "Dell Latitude 5420",
                "serial": "CN-0X1Y2Z",
                "type": "laptop",
                "status": "loaned",
                "active_kind": "loan",
                "active_entry_id": "0f1e2d3c-4b5a-6978-8695-a4b3c2d1e0f9",
            }
        }
