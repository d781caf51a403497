from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from comicgen.db.base import Base


class Comic(Base):
    __tablename__ = "comics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    style: Mapped[str] = mapped_column(String(32), nullable=False)
    panel_count: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    panels: Mapped[list["ComicPanel"]] = relationship(
        back_populates="comic",
        cascade="all, delete-orphan",
        order_by="ComicPanel.panel_number",
    )


class ComicPanel(Base):
    __tablename__ = "comic_panels"
    __table_args__ = (UniqueConstraint("comic_id", "panel_number", name="uq_comic_panels_comic_panel"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    comic_id: Mapped[int] = mapped_column(
        ForeignKey("comics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    panel_number: Mapped[int] = mapped_column(Integer, nullable=False)
    script_text: Mapped[str] = mapped_column(Text, nullable=False)
    dialogue: Mapped[str | None] = mapped_column(Text, nullable=True)
    mood: Mapped[str] = mapped_column(String(64), nullable=False)
    image_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    comic: Mapped[Comic] = relationship(back_populates="panels")
