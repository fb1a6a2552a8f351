from sqlalchemy import Column, String, Text, Integer, Date, Time, Index
from .base import Base


class Equipment(Base):
    """A machine known to the plant, rebuilt on every full import."""

    __tablename__ = "equipment"

    name = Column(String(255), nullable=False, unique=True)
    equipment_type = Column(String(100), default="Production Equipment")
    location = Column(String(255), default="Production Floor")
    model = Column(String(255), default="Model TBD")


class EquipmentStatusLog(Base):
    """One observed state interval for one piece of equipment."""

    __tablename__ = "equipment_status_logs"

    equipment_name = Column(String(255), nullable=False)
    status = Column(String(50), nullable=False)  # "Running", "Down", ...
    date = Column(Date, nullable=False)
    start_time = Column(Time)
    end_time = Column(Time)
    duration_minutes = Column(Integer, default=0)

    # Free-text context
    reason = Column(Text)
    issue = Column(Text)
    alert = Column(Text)
    comment = Column(Text)

    __table_args__ = (
        Index("idx_equipment_status_logs_equipment_name", "equipment_name"),
        Index("idx_equipment_status_logs_date", "date"),
        Index("idx_equipment_status_logs_status", "status"),
    )
