# backend/otohub/db/models/notification.py
from sqlalchemy import Column, String, Boolean, ForeignKey, Text

from otohub.db.base import BaseModel, new_id


class Notification(BaseModel):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(30), default="INFO", nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
