"""Models for crawled content and LLM analysis."""
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase field names for browser clients."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisConfig(CamelModel):
    """Per-request LLM configuration supplied by the dashboard."""
    api_url: Optional[str] = Field(default=None, description="Chat-completion endpoint URL")
    api_key: Optional[str] = Field(default=None, description="Bearer token for the endpoint")
    model_name: str = Field(default="gpt-4o-mini", description="Model identifier")
    prompt_template: str = Field(
        default=(
            "Decide whether this website is a target customer.\n"
            "URL: {url}\nTitle: {title}\nDescription: {description}\n"
            "Keywords: {keywords}\nPages: {pages}\nCompany: {companyInfo}\n"
            "Footer: {footerContent}\nContent: {content}\n"
            "Answer as JSON: {\"result\": \"Y\" or \"N\", \"reason\": \"...\"}"
        ),
        description="Prompt with {placeholder} tokens"
    )
    company_name_prompt: Optional[str] = Field(
        default=None,
        description="Prompt used to extract the company name, {content} is substituted"
    )
    email_prompt: Optional[str] = Field(
        default=None,
        description="Prompt used to extract email addresses, {content} is substituted"
    )
    extract_contacts: bool = Field(default=False, description="Also extract company name and emails")
    proxies: List[str] = Field(default_factory=list, description="Proxy URLs for crawling")


class CrawledContent(CamelModel):
    """Aggregated text of one crawled site."""
    url: str = ""
    title: str = ""
    description: str = ""
    keywords: str = ""
    content: str = ""
    company_info: str = ""
    footer_content: str = ""
    pages: List[str] = Field(default_factory=list)


class ClassificationResult(CamelModel):
    """Y/N target customer verdict."""
    result: Literal["Y", "N"] = "N"
    reason: str = ""
    confidence: Optional[float] = None


class CompanyInfo(CamelModel):
    """Company names extracted from a site."""
    primary_name: str = ""
    full_name: str = ""
    names: List[str] = Field(default_factory=list)
    brand_names: List[str] = Field(default_factory=list)
    founder_names: List[str] = Field(default_factory=list)


class EmailInfo(CamelModel):
    """One email address and the page it came from."""
    email: str
    source: str = ""
    description: str = ""


class ConnectionCheck(CamelModel):
    """Outcome of a test request against a chat-completion endpoint."""
    status: Literal["success", "error"]
    message: str
    model: str
    response_time: int = Field(..., description="Round trip in milliseconds")
    response: Optional[str] = Field(default=None, description="Start of the model reply")
    error: Optional[str] = Field(default=None, description="Failure code when status is error")
