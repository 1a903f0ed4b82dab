"""
Conversation Models
===================
Messages exchanged with the model provider.

The conversation history of a chat session is a plain list of ChatMessage,
append-only and held in memory only. Assistant replies are stored verbatim,
including any prose after the JSON change array.
"""
from typing import Literal, Optional

from pydantic import BaseModel


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class AiResponse(BaseModel):
    content: str
    usage: Optional[TokenUsage] = None
