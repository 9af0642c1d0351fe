"""Data models for TextWiki."""

from pydantic import BaseModel, Field


class Page(BaseModel):
    """A titled document whose body is an opaque byte sequence."""

    title: str = Field(min_length=1)
    body: bytes = b""

    @property
    def text(self) -> str:
        """Body decoded for display; undecodable bytes are replaced."""
        return self.body.decode("utf-8", errors="replace")

