from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from zennote.database import Base


class FolderRow(Base):
    __tablename__ = "folders"

    store_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # No FK: a dangling parent is read back as a root folder
    parent_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_open: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
