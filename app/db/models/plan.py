from __future__ import annotations

"""
💳 ReelNest — Plan (subscription catalog)
=========================================

Small reference table: one row per sellable plan. `screens` is the number of
simultaneous screens the plan grants, which is also the family size cap of an
owner on that plan (owner included). Rows are seeded by `scripts/seed_plans.py`.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Numeric, String, text
from sqlalchemy.orm import relationship

from app.db.base_class import Base


class Plan(Base):
    __tablename__ = "plans"

    id = Column(String(32), primary_key=True, doc="Stable id, e.g. 'plan_duo'")
    name = Column(String(64), nullable=False)
    screens = Column(Integer, nullable=False, server_default=text("1"))
    price_monthly = Column(Numeric(10, 2), nullable=True)
    price_yearly = Column(Numeric(10, 2), nullable=True)
    active = Column(Boolean, nullable=False, server_default=text("true"), default=True)

    __table_args__ = (
        CheckConstraint("screens >= 1", name="ck_plans_screens_positive"),
    )

    users = relationship("User", back_populates="plan", passive_deletes=True)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Plan id={self.id} screens={self.screens}>"
