from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class SearchQuery(BaseModel):
    """Advanced article search on the NewsBrief portal.

    ``language`` filters the articles (``"all"`` for every language);
    ``page_language`` only changes the language of the portal's own labels.
    """

    date_from: date = Field(..., description="First publication date to include")
    date_to: Optional[date] = Field(None, description="Last publication date; defaults to date_from")
    language: str = Field("all", description="Article language filter, e.g. 'sv' or 'all'")
    page_language: str = Field("en", description="Interface language of the result page")

    @model_validator(mode="after")
    def _default_date_to(self) -> "SearchQuery":
        if self.date_to is None:
            self.date_to = self.date_from
        if self.date_to < self.date_from:
            raise ValueError("date_to must not be earlier than date_from")
        return self

    @property
    def date_block(self) -> str:
        """Date part of output file names: a single day or ``from--to``."""
        if self.date_from == self.date_to:
            return self.date_from.isoformat()
        return f"{self.date_from.isoformat()}--{self.date_to.isoformat()}"
