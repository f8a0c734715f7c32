"""Program registry entry model."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Program(BaseModel):
    """A monitored admission program and where to look for its notices.

    Attributes:
        id: Stable slug used in URLs, logs and the response payload
        exam_name: Display name shown to users
        official_info_url: Official information page
        official_apply_url: Official application portal
        feed_query: Search query used to pull secondary news coverage
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="Program slug")
    exam_name: str = Field(description="Display name")
    official_info_url: str = Field(description="Official information page URL")
    official_apply_url: str = Field(description="Official application page URL")
    feed_query: str = Field(description="News search query for secondary coverage")

    def __str__(self) -> str:
        return f"Program({self.id})"
