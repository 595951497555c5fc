from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from database import Base


class Dataset(Base):
    __tablename__ = "datasets"
    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False, index=True)
    fields = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False)
    last_modified = Column(DateTime, nullable=False)

    # no ORM cascade: record deletion goes through the integrity checks
    records = relationship("Record", back_populates="dataset", passive_deletes=True)


class Record(Base):
    __tablename__ = "records"
    id = Column(String, primary_key=True, index=True)
    dataset_id = Column(String, ForeignKey("datasets.id"), index=True, nullable=False)
    data = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False)
    last_modified = Column(DateTime, nullable=False)

    dataset = relationship("Dataset", back_populates="records")
