import datetime
import uuid
from typing import Optional, List

from pydantic import BaseModel, Field


class EmailTemplateDB(BaseModel): # Administrator override of a built-in email template
    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    template_key: str
    name: str
    description: Optional[str] = None
    subject: str
    html_content: str
    variables: List[str] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    updated_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
