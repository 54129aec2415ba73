"""
Client -> server request shape for one chat turn.
Wire field names are camelCase; Python attributes are snake_case.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PageInfo(BaseModel):
    url: str = Field(..., description="Full URL of the page the user is on")
    pathname: str
    title: str
    referrer: str | None = None


class PageContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    headings: list[str] | None = None
    text: str | None = None
    code_blocks: list[str] | None = Field(default=None, alias="codeBlocks")


class RequestContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: PageInfo | None = None
    page_content: PageContent | None = Field(default=None, alias="pageContent")
    metadata: dict[str, Any] | None = None


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str | None = Field(default=None, description="The user's message; validated by the handler")
    session_id: str | None = Field(default=None, alias="sessionId")
    context: RequestContext | None = None
