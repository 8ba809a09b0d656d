import re
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

TEXT_HEADER_RE = re.compile(r'^# (\d+): (.+)$')
IMAGE_HEADER_RE = re.compile(r'^# (\d+)\. (.*)$')


class Ancestor(BaseModel):
    """One element on the path from a clicked node up to <body>."""
    model_config = ConfigDict(populate_by_name=True)

    index: int
    text_content: str = Field("", alias="textContent")
    text_preview: str = Field("", alias="textPreview")


class PageImage(BaseModel):
    """An <img> found on a page."""
    index: int
    src: str
    alt: str = "(no alt)"
    width: int = 0
    height: int = 0

    @field_validator('alt', mode='before')
    @classmethod
    def default_alt(cls, v):
        return v or "(no alt)"

    @field_validator('width', 'height', mode='before')
    @classmethod
    def parse_dimension(cls, v):
        if isinstance(v, str):
            match = re.match(r'\d+', v.strip())
            return int(match.group(0)) if match else 0
        return v or 0


class CapturedText(BaseModel):
    """A saved text capture; the header line records its source URL."""
    number: int
    url: str
    content: str

    def render(self) -> str:
        return f"# {self.number}: {self.url}\n\n{self.content}"

    @staticmethod
    def source_url(text: str) -> Optional[str]:
        """URL recorded in the first line of a rendered capture."""
        match = TEXT_HEADER_RE.match(text.split('\n', 1)[0])
        return match.group(2) if match else None


class ImageMeta(BaseModel):
    """Metadata written beside every downloaded image."""
    number: int
    page_url: str
    image_path: str
    caption: str = "(no caption)"

    @field_validator('caption', mode='before')
    @classmethod
    def default_caption(cls, v):
        return v if v and v.strip() else "(no caption)"

    def render(self) -> str:
        return f"# {self.number}. {self.page_url}\n{self.image_path}\n{self.caption}"

    @classmethod
    def parse(cls, text: str) -> Optional["ImageMeta"]:
        lines = text.split('\n', 2)
        if len(lines) < 2:
            return None
        match = IMAGE_HEADER_RE.match(lines[0])
        if not match:
            return None
        return cls(
            number=int(match.group(1)),
            page_url=match.group(2),
            image_path=lines[1].strip(),
            caption=lines[2] if len(lines) > 2 else "",
        )
