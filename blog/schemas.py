from pydantic import BaseModel, ConfigDict, Field


# --- Article form (store / update) ---

class ArticleForm(BaseModel):
    heading: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    category_id: int
    language: str = Field("en", max_length=10)
    is_comment_enabled: bool = False
    keywords: str = ""  # whitespace-separated keyword names


# --- Responses ---

class RedirectResponseBody(BaseModel):
    redirect_url: str


class ErrorResponseBody(BaseModel):
    errorMsg: str


class CategoryResponse(BaseModel):
    id: int
    name: str
    model_config = ConfigDict(from_attributes=True)


# --- Outbound mail ---

class QueuedMail(BaseModel):
    to: str
    subject: str
    body: str
    sender: str


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list
    total: int
    page: int
    page_size: int
    pages: int
    path: str = ""

    def page_url(self, page: int) -> str:
        """Link to *page*, keeping any query string already on ``path``."""
        separator = "&" if "?" in self.path else "?"
        return f"{self.path}{separator}page={page}"

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages
