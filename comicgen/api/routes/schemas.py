from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from comicgen.core.comic_styles import ComicStyle
from comicgen.services.script_writer import PanelScript


class GenerateComicRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(min_length=1, max_length=500)
    style: ComicStyle
    panel_count: int = Field(default=4, ge=1, le=6, strict=True, alias="panelCount")

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("prompt must not be blank")
        return stripped


class GenerateComicResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    images: list[str] = Field(description="Base64-encoded panel images, in panel order")
    scripts: list[PanelScript]
    message: str | None = None
    comic_id: int | None = Field(default=None, alias="comicId")
    created_at: datetime | None = Field(default=None, alias="createdAt")


class ComicSummary(BaseModel):
    id: int
    user_prompt: str
    style: str
    panel_count: int
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ComicPanelRead(BaseModel):
    id: int
    panel_number: int
    script_text: str
    dialogue: str | None = None
    mood: str
    image_prompt: str | None = None
    image_url: str

    model_config = {"from_attributes": True}


class ComicDetail(ComicSummary):
    updated_at: datetime | None = None
    panels: list[ComicPanelRead] = Field(default_factory=list)


class ComicListResponse(BaseModel):
    success: bool = True
    comics: list[ComicSummary]
    total: int


class ComicDetailResponse(BaseModel):
    success: bool = True
    comic: ComicDetail


class GalleryResponse(BaseModel):
    success: bool = True
    comics: list[ComicDetail]
    total: int


class DbInitResponse(BaseModel):
    success: bool
    message: str
    missing_tables: list[str] = Field(default_factory=list)
    bucket: str | None = None
    bucket_exists: bool | None = None
    instructions: dict[str, str] | None = None
