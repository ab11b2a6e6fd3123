"""
Resource reference models produced by the reference tagger.
"""

from typing import List, Literal
from pydantic import BaseModel, ConfigDict

MediaCategory = Literal["video", "image", "audio", "other"]


class ResourceReference(BaseModel):
    """One distinct media locator found in a prompt."""

    model_config = ConfigDict(frozen=True)

    original_locator: str
    canonical_uri: str
    media_category: MediaCategory
    mime_type: str
    tag: str


class TaggingResult(BaseModel):
    """Prompt with locators replaced by tags, plus the references in tag order."""

    tagged_text: str
    references: List[ResourceReference]

    def by_tag(self) -> dict:
        return {ref.tag: ref for ref in self.references}
