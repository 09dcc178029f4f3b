"""
Article model used for full-text search.
"""

from pydantic import BaseModel, Field


class Article(BaseModel):
    """
    Attributes:
        id: Identity primary key (None until inserted)
        title: Article title
        body: Article text, indexed for full-text search
        score: Search relevance, only set on search results
    """

    id: int | None = None
    title: str | None = Field(default=None, max_length=255)
    body: str | None = None
    score: float | None = None
