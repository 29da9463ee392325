from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, DateTime, String, UniqueConstraint

from checkout.data.database import Base


class LibraryEntryModel(Base):
    __tablename__ = "user_library"
    __table_args__ = (UniqueConstraint("user_id", "game_id", name="u_library_user_game"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    game_id = Column(Integer, nullable=False)
    game_name = Column(String, nullable=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    acquired_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
