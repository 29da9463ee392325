from sqlalchemy import Column, Integer, ForeignKey, Numeric, String, UniqueConstraint

from checkout.data.database import Base


class CartLineModel(Base):
    __tablename__ = "cart_lines"
    __table_args__ = (UniqueConstraint("order_id", "game_id", name="u_cart_line_order_game"),)

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    game_id = Column(Integer, nullable=False)

    # snapshot taken at add time, never refreshed from the catalog
    game_name = Column(String, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
